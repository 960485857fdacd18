"""Tests for the HMAC request signature."""
import hashlib
import hmac

from bokun_install.signature import canonical_message, sign, verify

PARAMS = {"domain": "acme", "user": "3413", "timestamp": "1700000000"}


def test_canonical_message_sorted_and_without_signature():
    params = {**PARAMS, "hmac": "whatever"}
    assert canonical_message(params) == "domain=acme&timestamp=1700000000&user=3413"


def test_canonical_message_sorts_by_byte_value():
    # Uppercase sorts before lowercase
    assert canonical_message({"b": "1", "B": "2", "a": "3"}) == "B=2&a=3&b=1"


def test_canonical_message_uses_values_verbatim():
    assert canonical_message({"x": "a b&c=d%2F"}) == "x=a b&c=d%2F"


def test_sign_matches_plain_hmac_sha256():
    expected = hmac.new(
        b"s3cret", b"domain=acme&timestamp=1700000000&user=3413", hashlib.sha256
    ).hexdigest()
    assert sign(PARAMS, "s3cret") == expected
    assert sign(PARAMS, b"s3cret") == expected


def test_verify_accepts_own_signature():
    assert verify(PARAMS, sign(PARAMS, "s3cret"), "s3cret") is True


def test_verify_rejects_other_secret():
    assert verify(PARAMS, sign(PARAMS, "s3cret"), "other") is False


def test_verify_rejects_altered_value():
    sig = sign(PARAMS, "s3cret")
    for key in PARAMS:
        tampered = {**PARAMS, key: PARAMS[key] + "x"}
        assert verify(tampered, sig, "s3cret") is False


def test_verify_rejects_removed_or_added_key():
    sig = sign(PARAMS, "s3cret")
    for key in PARAMS:
        reduced = {k: v for k, v in PARAMS.items() if k != key}
        assert verify(reduced, sig, "s3cret") is False
    assert verify({**PARAMS, "extra": "1"}, sig, "s3cret") is False


def test_signature_is_independent_of_insertion_order():
    reordered = dict(reversed(list(PARAMS.items())))
    assert sign(reordered, "s3cret") == sign(PARAMS, "s3cret")


def test_signature_field_is_ignored_when_verifying():
    sig = sign(PARAMS, "s3cret")
    assert verify({**PARAMS, "hmac": sig}, sig, "s3cret") is True


def test_custom_signature_field():
    sig = sign({**PARAMS, "signature": "ignored"}, "s3cret", signature_field="signature")
    assert sig == sign(PARAMS, "s3cret")
    assert verify({**PARAMS, "signature": sig}, sig, "s3cret", signature_field="signature") is True


def test_verify_missing_signature():
    assert verify(PARAMS, None, "s3cret") is False
    assert verify(PARAMS, "", "s3cret") is False


def test_verify_malformed_input_returns_false():
    sig = sign(PARAMS, "s3cret")
    assert verify({**PARAMS, "user": ["a", "b"]}, sig, "s3cret") is False
    assert verify(PARAMS, sig.upper(), "s3cret") is False
    assert verify(PARAMS, "não-hex", "s3cret") is False
    assert verify(PARAMS, sig, "") is False
    # Lone surrogates cannot be UTF-8 encoded
    assert verify({**PARAMS, "user": "\ud800"}, sig, "s3cret") is False
    assert verify(PARAMS, "\ud800", "s3cret") is False
