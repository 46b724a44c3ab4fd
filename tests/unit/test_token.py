"""Tests for inbox_scheduler.delegation.token — signed credentials."""
from __future__ import annotations

import base64
import datetime
import json

import pytest

from inbox_scheduler.delegation.token import (
    DELEGATED,
    SESSION,
    CredentialError,
    SignedCredential,
    verify_token,
)


@pytest.fixture()
def secret_key() -> bytes:
    return b"test-signing-key"


@pytest.fixture()
def session(secret_key: bytes) -> SignedCredential:
    return SignedCredential.issue(
        subject="user@example.com",
        scopes=["email.read", "calendar.write"],
        secret_key=secret_key,
    )


def _forge(claims: dict[str, object], signature: str = "c2ln") -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()
    return f"{payload}.{signature}"


class TestIssue:
    def test_session_has_no_audience(self, session: SignedCredential) -> None:
        assert session.kind == SESSION
        assert session.audience is None

    def test_scopes_sorted_and_deduplicated(self, secret_key: bytes) -> None:
        credential = SignedCredential.issue("u", ["b.x", "a.x", "b.x"], secret_key)
        assert credential.scopes == ["a.x", "b.x"]

    def test_delegated_requires_audience(self, secret_key: bytes) -> None:
        with pytest.raises(ValueError, match="audience"):
            SignedCredential.issue("u", ["calendar.write"], secret_key, kind=DELEGATED)

    def test_unknown_kind_rejected(self, secret_key: bytes) -> None:
        with pytest.raises(ValueError):
            SignedCredential.issue("u", [], secret_key, kind="refresh")

    def test_expiry_from_ttl(self, secret_key: bytes) -> None:
        credential = SignedCredential.issue("u", [], secret_key, ttl_seconds=60)
        assert credential.expires_at - credential.issued_at == datetime.timedelta(seconds=60)


class TestEncodeDecode:
    def test_compact_form_has_two_parts(self, session: SignedCredential) -> None:
        assert session.encode().count(".") == 1

    def test_decode_preserves_claims(self, session: SignedCredential) -> None:
        decoded = SignedCredential.decode(session.encode())
        assert decoded.token_id == session.token_id
        assert decoded.subject == session.subject
        assert decoded.scopes == session.scopes
        assert decoded.expires_at == session.expires_at

    @pytest.mark.parametrize("token", ["", "abc", "a.b.c", ".sig", "!!!.sig"])
    def test_malformed_tokens_raise(self, token: str) -> None:
        with pytest.raises(CredentialError):
            SignedCredential.decode(token)

    def test_unsigned_cannot_encode(self, session: SignedCredential) -> None:
        session.signature = ""
        with pytest.raises(CredentialError):
            session.encode()


class TestVerifyToken:
    def test_valid_token(self, session: SignedCredential, secret_key: bytes) -> None:
        assert verify_token(session.encode(), secret_key).subject == "user@example.com"

    def test_wrong_key_fails(self, session: SignedCredential) -> None:
        with pytest.raises(CredentialError):
            verify_token(session.encode(), b"other-key")

    def test_tampered_payload_fails(self, session: SignedCredential, secret_key: bytes) -> None:
        session.scopes = ["calendar.read", "calendar.write", "email.read"]
        forged = session.encode()
        with pytest.raises(CredentialError):
            verify_token(forged, secret_key)

    def test_expired_fails(self, secret_key: bytes) -> None:
        credential = SignedCredential.issue("u", [], secret_key, ttl_seconds=-1)
        assert credential.signature_valid(secret_key)
        with pytest.raises(CredentialError):
            verify_token(credential.encode(), secret_key)

    def test_kind_enforced(self, session: SignedCredential, secret_key: bytes) -> None:
        with pytest.raises(CredentialError, match="delegated"):
            verify_token(session.encode(), secret_key, kind=DELEGATED)

    def test_audience_enforced_for_delegated(self, secret_key: bytes) -> None:
        credential = SignedCredential.issue(
            "u", ["calendar.write"], secret_key, kind=DELEGATED, audience="agent-b-calendar"
        )
        verify_token(credential.encode(), secret_key, audience="agent-b-calendar")
        with pytest.raises(CredentialError, match="audience"):
            verify_token(credential.encode(), secret_key, audience="agent-a-email")

    def test_audience_ignored_for_session(
        self, session: SignedCredential, secret_key: bytes
    ) -> None:
        assert verify_token(session.encode(), secret_key, audience="agent-b-calendar")


class TestForgedCredentials:
    def test_naive_timestamp_rejected_on_decode(self, session: SignedCredential) -> None:
        claims = {**session.to_dict(), "expires_at": "2099-01-01T00:00:00"}
        with pytest.raises(CredentialError, match="timezone"):
            SignedCredential.decode(_forge(claims))

    def test_naive_timestamp_fails_verification(self, session: SignedCredential, secret_key: bytes) -> None:
        claims = {**session.to_dict(), "expires_at": "2099-01-01T00:00:00"}
        with pytest.raises(CredentialError):
            verify_token(_forge(claims, session.signature), secret_key)

    def test_non_ascii_signature_rejected(self, session: SignedCredential, secret_key: bytes) -> None:
        payload = session.encode().split(".")[0]
        with pytest.raises(CredentialError, match="base64url"):
            verify_token(f"{payload}.é", secret_key)

    def test_non_ascii_signature_does_not_match(
        self, session: SignedCredential, secret_key: bytes
    ) -> None:
        session.signature = "é"
        assert not session.signature_valid(secret_key)
        assert not session.verify(secret_key)

    def test_signature_checked_before_expiry(self, session: SignedCredential) -> None:
        session.expires_at = session.expires_at.replace(tzinfo=None)
        assert not session.verify(b"other-key")
