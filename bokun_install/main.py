"""
Bokun marketplace app installer.
GET /install, /callback (OAuth2 app install handshake), /audit, /health.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool

from bokun_install.audit import OUTCOME_FAIL, get_client_ip, log_audit
from bokun_install.audit import router as audit_router
from bokun_install.callback import router as callback_router
from bokun_install.config import LOG_LEVEL, PORT, validate_config
from bokun_install.database import SessionLocal, init_db
from bokun_install.errors import InstallFlowError
from bokun_install.install import router as install_router
from bokun_install.pages import message_page

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Refuse to start on bad configuration; create tables."""
    validate_config()
    init_db()
    yield


app = FastAPI(title="Bokun Install", version="0.1.0", lifespan=lifespan)
app.include_router(install_router, tags=["install"])
app.include_router(callback_router, tags=["install"])
app.include_router(audit_router)


def _record_failure(event_type: str, domain: str | None, ip: str | None) -> None:
    db = SessionLocal()
    try:
        log_audit(db, event_type, domain=domain, ip=ip, outcome=OUTCOME_FAIL)
    finally:
        db.close()


@app.exception_handler(InstallFlowError)
async def install_flow_error_handler(request: Request, exc: InstallFlowError):
    # Domain is as received (possibly unsigned); diagnostic only
    domain = request.query_params.get("domain")
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(level, "%s %s rejected (%s): %s [domain=%s]", request.method, request.url.path, type(exc).__name__, exc.message, domain)
    await run_in_threadpool(_record_failure, exc.event_type, domain, get_client_ip(request))
    return message_page("Error", exc.message, status_code=exc.status_code)


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "bokun_install"}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "bokun_install.main:app",
        host="0.0.0.0",
        port=PORT,
    )
