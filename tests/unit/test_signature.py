"""Tests for webhook HMAC signing."""

from __future__ import annotations

import hashlib
import hmac

from src.webhook.signature import sign_payload, validate_signature

BODY = b'{"id":"evt-1","type":"message_received"}'


def test_sign_matches_hmac_sha256_hex() -> None:
    expected = hmac.new(b"secret", BODY, hashlib.sha256).hexdigest()
    assert sign_payload(BODY, "secret") == expected


def test_valid_signature_accepted() -> None:
    assert validate_signature(BODY, sign_payload(BODY, "secret"), "secret")


def test_wrong_secret_rejected() -> None:
    assert not validate_signature(BODY, sign_payload(BODY, "other"), "secret")


def test_tampered_body_rejected() -> None:
    signature = sign_payload(BODY, "secret")
    assert not validate_signature(BODY + b" ", signature, "secret")


def test_missing_signature_rejected_when_secret_set() -> None:
    assert not validate_signature(BODY, None, "secret")
    assert not validate_signature(BODY, "", "secret")


def test_no_secret_accepts_anything() -> None:
    assert validate_signature(BODY, None, "")
    assert validate_signature(BODY, "garbage", None)


def test_prefixed_signature_not_accepted() -> None:
    signature = "sha256=" + sign_payload(BODY, "secret")
    assert not validate_signature(BODY, signature, "secret")


def test_any_changed_signature_character_rejected() -> None:
    signature = sign_payload(BODY, "secret")
    for i, char in enumerate(signature):
        replacement = "0" if char != "0" else "1"
        altered = signature[:i] + replacement + signature[i + 1:]
        assert not validate_signature(BODY, altered, "secret"), f"accepted change at {i}"
