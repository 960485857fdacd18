"""
GET /install: the marketplace sends the vendor here when they start installing the app.
Verify the signed request, remember the vendor under a fresh correlation token, send the
browser to the marketplace authorize endpoint with that token as state.
"""
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from bokun_install.audit import EVENT_INSTALL_REJECTED, EVENT_INSTALL_STARTED, get_client_ip, log_audit
from bokun_install.config import (
    API_KEY,
    BOKUN_HOST,
    CLIENT_SECRET,
    FIELDS,
    INSTALL_REDIRECT_DELAY_SECONDS,
    REDIRECT_URI,
    SCOPES,
)
from bokun_install.database import get_db
from bokun_install.errors import InvalidSignature, MissingParameter
from bokun_install.nonce_store import InstallContext, NonceStore, generate_token, get_nonce_store
from bokun_install.pages import loading_page
from bokun_install.params import is_valid_domain, single_valued_params
from bokun_install.signature import verify

logger = logging.getLogger(__name__)
router = APIRouter()

AUTHORIZE_PATH = "/appstore/oauth/authorize"


def _encode_component(value: str) -> str:
    """Percent-encode like JavaScript's encodeURIComponent."""
    return quote(value, safe="!~*'()")


def build_authorize_url(
    *,
    domain: str,
    state: str,
    client_id: str = API_KEY,
    scopes: str = SCOPES,
    redirect_uri: str = REDIRECT_URI,
    host: str = BOKUN_HOST,
) -> str:
    """
    Marketplace authorize URL on the vendor's subdomain.
    Only scope and redirect_uri are encoded; client_id and state go in as-is.
    """
    return (
        f"https://{domain}.{host}{AUTHORIZE_PATH}"
        f"?client_id={client_id}"
        f"&scope={_encode_component(scopes)}"
        f"&redirect_uri={_encode_component(redirect_uri)}"
        f"&state={state}"
    )


@router.get("/install")
def install(
    request: Request,
    store: NonceStore = Depends(get_nonce_store),
    db: Session = Depends(get_db),
):
    """Verify the HMAC, store the pending install, redirect to the marketplace."""
    params = single_valued_params(request)
    logger.info("Received /install request for domain %s", request.query_params.get("domain"))
    if params is None:
        raise InvalidSignature("Invalid HMAC on install request: repeated parameters", event_type=EVENT_INSTALL_REJECTED)
    if not verify(params, params.get(FIELDS.signature), CLIENT_SECRET, FIELDS.signature):
        raise InvalidSignature("Invalid HMAC on install request", event_type=EVENT_INSTALL_REJECTED)

    domain = params.get("domain")
    user = params.get("user")
    timestamp = params.get("timestamp")
    if not is_valid_domain(domain):
        raise MissingParameter("Missing or invalid domain", event_type=EVENT_INSTALL_REJECTED)
    if not user or not timestamp:
        raise MissingParameter("Missing user or timestamp", event_type=EVENT_INSTALL_REJECTED)

    token = generate_token()
    store.put(token, InstallContext(user=user, domain=domain, timestamp=timestamp))
    log_audit(db, EVENT_INSTALL_STARTED, domain=domain, user=user, ip=get_client_ip(request))

    url = build_authorize_url(domain=domain, state=token)
    logger.info("Redirecting vendor %s to marketplace authorization: %s", domain, url)
    if INSTALL_REDIRECT_DELAY_SECONDS > 0:
        return loading_page(url, INSTALL_REDIRECT_DELAY_SECONDS)
    return RedirectResponse(url=url, status_code=302)
