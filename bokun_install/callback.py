"""
GET /callback: the marketplace sends the vendor back here after they authorize the app.

Order matters: the correlation token is taken from the store before the signature is
checked, so a replayed or unknown token is rejected without computing an HMAC, and a
taken token is gone for good whatever happens next. The outbound calls run after the
take, with no store lock held.
"""
import logging

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from bokun_install.audit import (
    EVENT_INSTALLATION_STORED,
    EVENT_TOKEN_EXCHANGED,
    get_client_ip,
    log_audit,
)
from bokun_install.config import CLIENT_SECRET, FIELDS
from bokun_install.database import get_db
from bokun_install.errors import InvalidSignature, MissingParameter, UnknownCorrelationToken
from bokun_install.http_client import get_http_client
from bokun_install.nonce_store import NonceStore, get_nonce_store
from bokun_install.pages import message_page
from bokun_install.params import is_valid_domain, single_valued_params
from bokun_install.persistence import InstallationSink, build_record, get_installation_sink
from bokun_install.signature import verify
from bokun_install.token_exchange import exchange_code

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/callback", response_class=HTMLResponse)
async def callback(
    request: Request,
    store: NonceStore = Depends(get_nonce_store),
    client: httpx.AsyncClient = Depends(get_http_client),
    sink: InstallationSink = Depends(get_installation_sink),
    db: Session = Depends(get_db),
):
    """Correlate, verify, exchange the code for a token, hand the result to the sink."""
    query = request.query_params
    logger.info("Received /callback request for domain %s", query.get("domain"))

    token = query.get(FIELDS.correlation)
    if not token:
        raise UnknownCorrelationToken()
    context = store.take(token)
    if context is None:
        raise UnknownCorrelationToken()

    params = single_valued_params(request)
    if params is None or not verify(params, params.get(FIELDS.signature), CLIENT_SECRET, FIELDS.signature):
        # Token stays consumed; the vendor has to restart the install
        raise InvalidSignature("Invalid HMAC on callback request")

    domain = params.get("domain")
    code = params.get(FIELDS.code)
    if not is_valid_domain(domain):
        raise MissingParameter("Missing or invalid domain")
    if domain != context.domain:
        logger.warning("Callback domain %s does not match install domain %s", domain, context.domain)
        raise MissingParameter("Domain does not match the pending install")
    if not code:
        raise MissingParameter(f"Missing {FIELDS.code} parameter")

    result = await exchange_code(client, domain, code)
    # Nothing may run between the exchange and the sink: the vendor is already authorized upstream
    await sink.save(build_record(context, token, result))

    ip = get_client_ip(request)
    for event in (EVENT_TOKEN_EXCHANGED, EVENT_INSTALLATION_STORED):
        await run_in_threadpool(log_audit, db, event, domain=domain, user=context.user, ip=ip)

    return message_page("App installed", "App successfully installed and data stored!")
