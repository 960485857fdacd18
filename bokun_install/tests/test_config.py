"""Tests for startup configuration checks and authorize URL building."""
import pytest

import bokun_install.config as config
from bokun_install.config import ConfigError, ProtocolFields, scope_list, validate_config
from bokun_install.install import build_authorize_url


def test_default_protocol_fields_are_valid():
    ProtocolFields().validate()
    ProtocolFields(correlation="nonce", code="authorization_code").validate()


@pytest.mark.parametrize(
    "fields",
    [
        ProtocolFields(signature=""),
        ProtocolFields(correlation="hmac"),
        ProtocolFields(code="state"),
        ProtocolFields(correlation="domain"),
        ProtocolFields(signature="timestamp"),
    ],
)
def test_invalid_protocol_fields(fields):
    with pytest.raises(ConfigError):
        fields.validate()


def test_validate_config_passes_with_test_environment():
    validate_config()


@pytest.mark.parametrize(
    "name, value",
    [
        ("CLIENT_SECRET", ""),
        ("API_KEY", ""),
        ("SCOPES", " , "),
        ("NONCE_TTL_SECONDS", 0),
        ("HTTP_TIMEOUT_SECONDS", 0),
        ("HTTP_MAX_RETRIES", -1),
        ("PERSISTENCE_URL", "ftp://collector.example"),
        ("FIELDS", ProtocolFields(code="hmac")),
    ],
)
def test_validate_config_rejects(monkeypatch, name, value):
    monkeypatch.setattr(config, name, value)
    with pytest.raises(ConfigError):
        validate_config()


def test_scope_list():
    assert scope_list("PRODUCTS_MANAGE, BOOKINGS_CREATE,") == ["PRODUCTS_MANAGE", "BOOKINGS_CREATE"]


def test_build_authorize_url_encodes_like_encode_uri_component():
    url = build_authorize_url(
        domain="acme",
        state="s1",
        client_id="key",
        scopes="A,B C",
        redirect_uri="https://app.example/cb?x=(1)",
        host="bokun.io",
    )
    assert url == (
        "https://acme.bokun.io/appstore/oauth/authorize?client_id=key"
        "&scope=A%2CB%20C"
        "&redirect_uri=https%3A%2F%2Fapp.example%2Fcb%3Fx%3D(1)"
        "&state=s1"
    )
