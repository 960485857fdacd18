"""
Where completed installations go. Either an HTTP collector (POST JSON) or the local
database (upsert keyed by vendor_id, so a repeated install replaces the old token).

The token exchange has already succeeded when save() runs; a failure here leaves the
vendor authorized upstream with no local record.
"""
import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Protocol

import httpx
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from bokun_install.config import PERSISTENCE_URL
from bokun_install.database import SessionLocal
from bokun_install.errors import PersistenceFailure
from bokun_install.http_client import get_http_client, post_json
from bokun_install.models import Installation
from bokun_install.nonce_store import InstallContext
from bokun_install.token_exchange import TokenExchangeResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistedRecord:
    user: str
    domain: str
    nonce: str
    access_token: str
    scope: str
    vendor_id: str

    def to_dict(self) -> dict:
        return asdict(self)

    def redacted(self) -> dict:
        """For logs: everything but the access token."""
        return {**asdict(self), "access_token": "***"}


def build_record(context: InstallContext, nonce: str, result: TokenExchangeResult) -> PersistedRecord:
    return PersistedRecord(
        user=context.user,
        domain=context.domain,
        nonce=nonce,
        access_token=result.access_token,
        scope=result.scope,
        vendor_id=result.vendor_id,
    )


class InstallationSink(Protocol):
    async def save(self, record: PersistedRecord) -> None: ...


class HttpCollectorSink:
    """POST the record as JSON to an external collector."""

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def save(self, record: PersistedRecord) -> None:
        logger.info("Storing installation to %s: %s", self.url, record.redacted())
        try:
            r = await post_json(self.client, self.url, record.to_dict())
        except httpx.HTTPError as e:
            logger.error("Persistence POST to %s failed: %s", self.url, e)
            raise PersistenceFailure() from e
        if not r.is_success:
            logger.error("Persistence POST to %s returned %d", self.url, r.status_code)
            raise PersistenceFailure()


class DatabaseSink:
    """Upsert into the installations table, keyed by vendor_id."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def _upsert(self, record: PersistedRecord) -> bool:
        """Returns True if a new row was created."""
        db = self.session_factory()
        try:
            row = db.query(Installation).filter(Installation.vendor_id == record.vendor_id).first()
            created = row is None
            if created:
                row = Installation(vendor_id=record.vendor_id)
                db.add(row)
            row.user = record.user
            row.domain = record.domain
            row.nonce = record.nonce
            row.access_token = record.access_token
            row.scope = record.scope
            db.commit()
            return created
        except SQLAlchemyError:
            db.rollback()
            raise
        finally:
            db.close()

    async def save(self, record: PersistedRecord) -> None:
        try:
            created = await run_in_threadpool(self._upsert, record)
        except SQLAlchemyError as e:
            logger.exception("Storing installation for vendor %s failed", record.vendor_id)
            raise PersistenceFailure() from e
        logger.info("%s installation: %s", "Created" if created else "Updated", record.redacted())


def get_installation_sink(client: httpx.AsyncClient = Depends(get_http_client)) -> InstallationSink:
    """Dependency: HTTP collector when PERSISTENCE_URL is set, else the local database."""
    if PERSISTENCE_URL:
        return HttpCollectorSink(client, PERSISTENCE_URL)
    return DatabaseSink()
