"""
Outbound HTTP for the token exchange and the persistence collector.
Bounded timeout on every call; small jittered retry for transient failures only.
"""
import asyncio
import logging
import random

import httpx

from bokun_install.config import HTTP_MAX_RETRIES, HTTP_RETRY_BACKOFF_SECONDS, HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

# Gateway errors are worth another attempt; every other status (4xx in particular) is final
RETRYABLE_STATUS = frozenset({502, 503, 504})


async def get_http_client():
    """Dependency: yield an AsyncClient with the configured timeout."""
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS) as client:
        yield client


def _backoff(attempt: int) -> float:
    # Full jitter: uniform in [0, base * 2^attempt]
    return random.uniform(0, HTTP_RETRY_BACKOFF_SECONDS * (2 ** attempt))


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: dict,
    *,
    max_retries: int | None = None,
) -> httpx.Response:
    """
    POST payload as JSON. Retries transport errors (timeouts included) and 502/503/504
    up to max_retries times. Returns the last response; re-raises the last transport error.
    """
    retries = HTTP_MAX_RETRIES if max_retries is None else max_retries
    attempt = 0
    while True:
        try:
            response = await client.post(url, json=payload, headers={"Accept": "application/json"})
        except httpx.TransportError as e:
            if attempt >= retries:
                raise
            logger.warning("POST %s failed (%s), retry %d/%d", url, type(e).__name__, attempt + 1, retries)
        else:
            if response.status_code not in RETRYABLE_STATUS or attempt >= retries:
                return response
            logger.warning("POST %s returned %d, retry %d/%d", url, response.status_code, attempt + 1, retries)
        await asyncio.sleep(_backoff(attempt))
        attempt += 1
