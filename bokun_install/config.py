"""
Install app configuration. All values come from the environment.
CLIENT_SECRET is the HMAC key and the token-exchange secret; never log it.
"""
import os
from dataclasses import dataclass
from urllib.parse import urlparse

# Client identifier sent to the marketplace (authorize URL and token exchange)
API_KEY = os.environ.get("API_KEY", "")

# Shared secret: signs inbound /install and /callback requests, authenticates the token exchange
CLIENT_SECRET = os.environ.get("CLIENT_SECRET", "")

# Comma-separated capability list requested at authorize time
SCOPES = os.environ.get("SCOPES", "PRODUCTS_MANAGE,BOOKINGS_CREATE")

# Must match the redirect URI registered with the marketplace app
REDIRECT_URI = os.environ.get("REDIRECT_URI", "http://127.0.0.1:3000/callback")

# Marketplace host; bokuntest.com for sandbox
BOKUN_HOST = os.environ.get("BOKUN_HOST", "bokun.io").strip().strip(".")

PORT = int(os.environ.get("PORT", "3000"))

# Query field names. Deployments differ: state vs nonce, code vs authorization_code
SIGNATURE_PARAM = os.environ.get("SIGNATURE_PARAM", "hmac")
CORRELATION_PARAM = os.environ.get("CORRELATION_PARAM", "state")
CODE_PARAM = os.environ.get("CODE_PARAM", "code")

# Pending install lifetime in the nonce store (seconds)
NONCE_TTL_SECONDS = int(os.environ.get("NONCE_TTL_SECONDS", "600"))

# Outbound calls (token exchange, persistence collector)
HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "10"))
HTTP_MAX_RETRIES = int(os.environ.get("HTTP_MAX_RETRIES", "2"))
HTTP_RETRY_BACKOFF_SECONDS = float(os.environ.get("HTTP_RETRY_BACKOFF_SECONDS", "0.5"))

# If set, installation records are POSTed here as JSON; otherwise upserted into the database
PERSISTENCE_URL = os.environ.get("PERSISTENCE_URL", "").strip()

DATABASE_URL = os.environ.get("INSTALL_DATABASE_URL", "sqlite:///./bokun_install.db")

# 0 = plain 302 from /install; >0 = loading page that redirects after this many seconds
INSTALL_REDIRECT_DELAY_SECONDS = int(os.environ.get("INSTALL_REDIRECT_DELAY_SECONDS", "0"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# Signed by the marketplace on every request; field names above must not shadow them
RESERVED_PARAMS = frozenset({"domain", "user", "timestamp"})


class ConfigError(ValueError):
    """Deployment configuration is unusable; raised at startup."""


@dataclass(frozen=True)
class ProtocolFields:
    """Which query fields carry the signature, the correlation token and the authorization code."""

    signature: str = "hmac"
    correlation: str = "state"
    code: str = "code"

    def validate(self) -> None:
        names = [self.signature, self.correlation, self.code]
        for name in names:
            if not name or not name.strip():
                raise ConfigError("query field names must be non-empty")
            if name in RESERVED_PARAMS:
                raise ConfigError(f"query field name {name!r} collides with a signed marketplace parameter")
        if len(set(names)) != len(names):
            raise ConfigError(f"query field names must be distinct: {names}")


FIELDS = ProtocolFields(signature=SIGNATURE_PARAM, correlation=CORRELATION_PARAM, code=CODE_PARAM)


def scope_list(scopes: str = SCOPES) -> list[str]:
    return [s.strip() for s in scopes.split(",") if s.strip()]


def validate_config() -> None:
    """Fail fast on missing credentials or inconsistent settings. Called from the app lifespan."""
    missing = [
        name
        for name, value in (
            ("API_KEY", API_KEY),
            ("CLIENT_SECRET", CLIENT_SECRET),
            ("BOKUN_HOST", BOKUN_HOST),
            ("REDIRECT_URI", REDIRECT_URI),
        )
        if not value
    ]
    if missing:
        raise ConfigError(f"missing required settings: {', '.join(missing)}")
    if not scope_list(SCOPES):
        raise ConfigError("SCOPES must name at least one scope")
    FIELDS.validate()
    if NONCE_TTL_SECONDS <= 0:
        raise ConfigError("NONCE_TTL_SECONDS must be positive")
    if HTTP_TIMEOUT_SECONDS <= 0:
        raise ConfigError("HTTP_TIMEOUT_SECONDS must be positive")
    if HTTP_MAX_RETRIES < 0 or HTTP_RETRY_BACKOFF_SECONDS < 0:
        raise ConfigError("HTTP_MAX_RETRIES and HTTP_RETRY_BACKOFF_SECONDS must not be negative")
    if PERSISTENCE_URL and urlparse(PERSISTENCE_URL).scheme not in ("http", "https"):
        raise ConfigError("PERSISTENCE_URL must be an http(s) URL")
