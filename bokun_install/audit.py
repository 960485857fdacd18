"""
Audit trail for install attempts. Security-relevant events only; no tokens, signatures or secrets.
Writes are best-effort: a failing audit table never changes the outcome of an install.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bokun_install.database import get_db
from bokun_install.models import AuditLog

logger = logging.getLogger(__name__)

EVENT_INSTALL_STARTED = "install_started"
EVENT_INSTALL_REJECTED = "install_rejected"
EVENT_CALLBACK_REJECTED = "callback_rejected"
EVENT_TOKEN_EXCHANGED = "token_exchanged"
EVENT_TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
EVENT_INSTALLATION_STORED = "installation_stored"
EVENT_PERSISTENCE_FAILED = "persistence_failed"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


def get_client_ip(request: Request | None) -> str | None:
    if request is None or request.client is None:
        return None
    return getattr(request.client, "host", None)


def log_audit(
    db: Session,
    event_type: str,
    *,
    domain: str | None = None,
    user: str | None = None,
    ip: str | None = None,
    outcome: str = OUTCOME_SUCCESS,
) -> bool:
    """Append one audit record. Returns False (after logging) if the database refused it."""
    try:
        db.add(AuditLog(event_type=event_type, domain=domain, user=user, ip=ip, outcome=outcome))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Audit write failed for %s (%s, domain=%s)", event_type, outcome, domain)
        return False
    return True


router = APIRouter(tags=["audit"])


@router.get("/audit")
def list_audit_logs(
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    domain: str | None = None,
    db: Session = Depends(get_db),
):
    """Recent install events, most recent first. Operator use; do not expose publicly."""
    q = db.query(AuditLog).order_by(AuditLog.id.desc())
    if event_type:
        q = q.filter(AuditLog.event_type == event_type)
    if outcome:
        q = q.filter(AuditLog.outcome == outcome)
    if domain:
        q = q.filter(AuditLog.domain == domain)
    rows = q.limit(min(max(1, limit), 500)).all()
    return [
        {
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "event_type": r.event_type,
            "domain": r.domain,
            "user": r.user,
            "ip": r.ip,
            "outcome": r.outcome,
        }
        for r in rows
    ]
