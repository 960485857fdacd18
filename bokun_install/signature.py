"""
HMAC-SHA256 request signatures for marketplace /install and /callback requests.

Signed message: every query parameter except the signature field, keys sorted by
byte value, joined as key=value with '&'. Values are used as received (already
URL-decoded), never re-encoded. Digest is lowercase hex.
"""
import hashlib
import hmac
import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_FIELD = "hmac"


def _key_bytes(secret: str | bytes) -> bytes:
    return secret.encode("utf-8") if isinstance(secret, str) else secret


def canonical_message(params: Mapping[str, str], signature_field: str = DEFAULT_SIGNATURE_FIELD) -> str:
    """Build the string that gets signed. The signature field itself is never part of it."""
    keys = sorted((k for k in params if k != signature_field), key=lambda k: k.encode("utf-8"))
    return "&".join(f"{k}={params[k]}" for k in keys)


def sign(params: Mapping[str, str], secret: str | bytes, signature_field: str = DEFAULT_SIGNATURE_FIELD) -> str:
    message = canonical_message(params, signature_field)
    return hmac.new(_key_bytes(secret), message.encode("utf-8"), hashlib.sha256).hexdigest()


def verify(
    params: Mapping[str, str],
    provided_signature: str | None,
    secret: str | bytes,
    signature_field: str = DEFAULT_SIGNATURE_FIELD,
) -> bool:
    """
    True if provided_signature is the HMAC of params under secret.
    Returns False (never raises) for a missing signature, non-string values or an empty secret.
    """
    if not provided_signature or not isinstance(provided_signature, str):
        logger.debug("Signature missing or not a string")
        return False
    if not secret:
        logger.error("Refusing to verify signature with an empty secret")
        return False
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in params.items()):
        logger.debug("Signed parameters must be plain strings")
        return False

    message = canonical_message(params, signature_field)
    try:
        computed = hmac.new(_key_bytes(secret), message.encode("utf-8"), hashlib.sha256).hexdigest()
        provided = provided_signature.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates and the like: nothing the marketplace could have signed
        logger.debug("Signed parameters or signature are not valid UTF-8")
        return False
    # Message and signatures are diagnostic only; the secret never appears here
    logger.debug("Message for HMAC: %r", message)
    logger.debug("Provided HMAC: %r / computed HMAC: %s", provided_signature, computed)
    return hmac.compare_digest(computed.encode("ascii"), provided)
