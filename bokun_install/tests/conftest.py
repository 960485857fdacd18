"""
Pytest configuration for bokun_install. Environment is set before the app is imported:
in-memory SQLite, fixed credentials, no retry backoff.
"""
import os

os.environ["INSTALL_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["API_KEY"] = "test-api-key"
os.environ["CLIENT_SECRET"] = "test-secret"
os.environ["SCOPES"] = "PRODUCTS_MANAGE,BOOKINGS_CREATE"
os.environ["REDIRECT_URI"] = "https://app.example.com/callback"
os.environ["BOKUN_HOST"] = "bokuntest.com"
os.environ["HTTP_RETRY_BACKOFF_SECONDS"] = "0"
os.environ["HTTP_MAX_RETRIES"] = "2"
os.environ["INSTALL_REDIRECT_DELAY_SECONDS"] = "0"
for name in ("PERSISTENCE_URL", "SIGNATURE_PARAM", "CORRELATION_PARAM", "CODE_PARAM", "NONCE_TTL_SECONDS"):
    os.environ.pop(name, None)

import httpx
import pytest
from fastapi.testclient import TestClient

from bokun_install.database import SessionLocal, init_db
from bokun_install.errors import PersistenceFailure
from bokun_install.http_client import get_http_client
from bokun_install.main import app
from bokun_install.models import AuditLog, Installation
from bokun_install.nonce_store import InMemoryNonceStore, get_nonce_store
from bokun_install.persistence import get_installation_sink
from bokun_install.signature import sign

SECRET = "test-secret"


def signed(params: dict, secret: str = SECRET, field: str = "hmac") -> dict:
    """Copy of params with the marketplace signature added."""
    return {**params, field: sign(params, secret, field)}


class FakeMarketplace:
    """httpx.MockTransport handler standing in for the marketplace token endpoint."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body: object = {"access_token": "tok123", "scope": "PRODUCTS_MANAGE", "vendor_id": "v1"}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.token_status, json=self.token_body)


class RecordingSink:
    def __init__(self):
        self.records = []
        self.fail = False

    async def save(self, record) -> None:
        if self.fail:
            raise PersistenceFailure()
        self.records.append(record)


@pytest.fixture
def db():
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.query(Installation).delete()
        session.query(AuditLog).delete()
        session.commit()
        session.close()


@pytest.fixture
def store():
    return InMemoryNonceStore(ttl_seconds=600)


@pytest.fixture
def marketplace():
    return FakeMarketplace()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def client(db, store, marketplace, sink):
    async def _http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(marketplace)) as c:
            yield c

    app.dependency_overrides[get_nonce_store] = lambda: store
    app.dependency_overrides[get_http_client] = _http_client
    app.dependency_overrides[get_installation_sink] = lambda: sink
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
