"""
Rejections and failures of the install flow. Each carries the HTTP status, the audit
event to record and the message shown to the vendor. Handlers raise; main.py renders.
"""
from bokun_install.audit import (
    EVENT_CALLBACK_REJECTED,
    EVENT_PERSISTENCE_FAILED,
    EVENT_TOKEN_EXCHANGE_FAILED,
)


class InstallFlowError(Exception):
    status_code = 400
    event_type = EVENT_CALLBACK_REJECTED
    default_message = "Bad request"

    def __init__(self, message: str | None = None, *, event_type: str | None = None):
        self.message = message or self.default_message
        if event_type is not None:
            self.event_type = event_type
        super().__init__(self.message)


class InvalidSignature(InstallFlowError):
    default_message = "Invalid HMAC"


class MissingParameter(InstallFlowError):
    default_message = "Missing or invalid parameter"


class UnknownCorrelationToken(InstallFlowError):
    default_message = "Invalid or missing correlation token"


class UpstreamExchangeFailure(InstallFlowError):
    status_code = 500
    event_type = EVENT_TOKEN_EXCHANGE_FAILED
    default_message = "Token exchange failed"


class PersistenceFailure(InstallFlowError):
    status_code = 500
    event_type = EVENT_PERSISTENCE_FAILED
    default_message = "Failed to store installation"
