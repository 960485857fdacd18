"""
Authorization code -> access token exchange against the vendor's marketplace subdomain.
"""
import logging
from dataclasses import dataclass

import httpx

from bokun_install.config import API_KEY, BOKUN_HOST, CLIENT_SECRET
from bokun_install.errors import UpstreamExchangeFailure
from bokun_install.http_client import post_json

logger = logging.getLogger(__name__)

ACCESS_TOKEN_PATH = "/appstore/oauth/access_token"


@dataclass(frozen=True)
class TokenExchangeResult:
    access_token: str
    scope: str
    vendor_id: str


def access_token_url(domain: str, host: str = BOKUN_HOST) -> str:
    return f"https://{domain}.{host}{ACCESS_TOKEN_PATH}"


def parse_token_response(data: object) -> TokenExchangeResult:
    """Validate the token response body. Raises UpstreamExchangeFailure if unusable."""
    if not isinstance(data, dict):
        raise UpstreamExchangeFailure("Token exchange failed: unexpected response body")
    access_token = data.get("access_token")
    vendor_id = data.get("vendor_id")
    if not isinstance(access_token, str) or not access_token:
        raise UpstreamExchangeFailure("Token exchange failed: no access_token in response")
    if vendor_id is None or vendor_id == "":
        raise UpstreamExchangeFailure("Token exchange failed: no vendor_id in response")
    scope = data.get("scope") or ""
    return TokenExchangeResult(access_token=access_token, scope=str(scope), vendor_id=str(vendor_id))


async def exchange_code(client: httpx.AsyncClient, domain: str, code: str) -> TokenExchangeResult:
    """
    POST {client_id, client_secret, code} to the access_token endpoint.
    Any transport error, non-2xx status or malformed body raises UpstreamExchangeFailure.
    """
    url = access_token_url(domain)
    try:
        r = await post_json(client, url, {"client_id": API_KEY, "client_secret": CLIENT_SECRET, "code": code})
    except httpx.HTTPError as e:
        logger.error("Token exchange with %s failed: %s", url, e)
        raise UpstreamExchangeFailure() from e

    if not r.is_success:
        logger.error("Token exchange with %s returned %d: %s", url, r.status_code, r.text[:200])
        raise UpstreamExchangeFailure()

    try:
        data = r.json()
    except ValueError as e:
        logger.error("Token exchange with %s returned a non-JSON body", url)
        raise UpstreamExchangeFailure("Token exchange failed: response is not JSON") from e

    result = parse_token_response(data)
    logger.info("Received access token for vendor %s on %s (scope=%s)", result.vendor_id, domain, result.scope)
    return result
