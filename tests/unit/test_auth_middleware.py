"""Tests for inbox_scheduler.middleware.auth."""
from __future__ import annotations

import base64
import json

import pytest

from inbox_scheduler.delegation.token import DELEGATED, SESSION, SignedCredential
from inbox_scheduler.errors import AppError
from inbox_scheduler.middleware.auth import AuthMiddleware, AuthResult


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def secret_key() -> bytes:
    return b"auth-test-secret"


@pytest.fixture()
def calendar_auth(secret_key: bytes) -> AuthMiddleware:
    return AuthMiddleware(secret_key, audience="agent-b-calendar")


@pytest.fixture()
def email_auth(secret_key: bytes) -> AuthMiddleware:
    return AuthMiddleware(secret_key, audience="agent-a-email", accepted_kinds=(SESSION,))


def _session(secret_key: bytes, scopes: list[str] | None = None) -> str:
    return SignedCredential.issue(
        "user@example.com", scopes or ["email.read", "calendar.write"], secret_key
    ).encode()


def _delegated(secret_key: bytes, audience: str = "agent-b-calendar") -> str:
    return SignedCredential.issue(
        "user@example.com", ["calendar.write"], secret_key, kind=DELEGATED, audience=audience
    ).encode()


# ---------------------------------------------------------------------------
# AuthResult
# ---------------------------------------------------------------------------


class TestAuthResult:
    def test_success_does_not_raise(self) -> None:
        AuthResult(success=True, subject="u").raise_for_failure()

    def test_failure_raises_401(self) -> None:
        with pytest.raises(AppError) as excinfo:
            AuthResult(success=False, reason="bad", code="MISSING_TOKEN").raise_for_failure()
        assert excinfo.value.status == 401
        assert excinfo.value.code == "MISSING_TOKEN"

    def test_failure_default_code(self) -> None:
        with pytest.raises(AppError) as excinfo:
            AuthResult(success=False, reason="bad").raise_for_failure()
        assert excinfo.value.code == "INVALID_TOKEN"


# ---------------------------------------------------------------------------
# Bearer parsing
# ---------------------------------------------------------------------------


class TestExtractBearer:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("  Bearer   abc  ", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header: str | None, expected: str | None) -> None:
        assert AuthMiddleware.extract_bearer(header) == expected


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class TestAuthenticate:
    def test_session_accepted_by_calendar_agent(
        self, calendar_auth: AuthMiddleware, secret_key: bytes
    ) -> None:
        token = _session(secret_key)
        result = calendar_auth.authenticate_from_header(f"Bearer {token}")
        assert result.success
        assert result.kind == SESSION
        assert "calendar.write" in result.scopes
        assert result.token == token

    def test_delegated_for_own_audience_accepted(
        self, calendar_auth: AuthMiddleware, secret_key: bytes
    ) -> None:
        result = calendar_auth.authenticate_bearer(_delegated(secret_key))
        assert result.success
        assert result.kind == DELEGATED
        assert list(result.scopes) == ["calendar.write"]

    def test_delegated_for_other_audience_rejected(
        self, calendar_auth: AuthMiddleware, secret_key: bytes
    ) -> None:
        result = calendar_auth.authenticate_bearer(_delegated(secret_key, "agent-a-email"))
        assert not result.success
        assert result.code == "INVALID_TOKEN"

    def test_email_agent_rejects_delegated(
        self, email_auth: AuthMiddleware, secret_key: bytes
    ) -> None:
        result = email_auth.authenticate_bearer(_delegated(secret_key, "agent-a-email"))
        assert not result.success
        assert "not accepted" in result.reason

    def test_missing_header(self, calendar_auth: AuthMiddleware) -> None:
        result = calendar_auth.authenticate_from_header(None)
        assert not result.success
        assert result.code == "MISSING_TOKEN"
        assert result.reason == "Authorization header required"

    def test_wrong_key(self, calendar_auth: AuthMiddleware) -> None:
        result = calendar_auth.authenticate_bearer(_session(b"another-key"))
        assert not result.success

    def test_garbage_token(self, calendar_auth: AuthMiddleware) -> None:
        result = calendar_auth.authenticate_from_header("Bearer garbage")
        assert not result.success
        assert result.code == "INVALID_TOKEN"

    def test_forged_naive_expiry_rejected(
        self, calendar_auth: AuthMiddleware, secret_key: bytes
    ) -> None:
        token = _session(secret_key)
        payload_b64, signature = token.split(".")
        claims = json.loads(base64.urlsafe_b64decode(payload_b64 + "=" * (-len(payload_b64) % 4)))
        claims["expires_at"] = "2099-01-01T00:00:00"
        forged = base64.urlsafe_b64encode(json.dumps(claims).encode()).rstrip(b"=").decode()
        result = calendar_auth.authenticate_from_header(f"Bearer {forged}.{signature}")
        assert not result.success
        assert result.code == "INVALID_TOKEN"

    def test_non_ascii_signature_rejected(
        self, calendar_auth: AuthMiddleware, secret_key: bytes
    ) -> None:
        payload_b64 = _session(secret_key).split(".")[0]
        result = calendar_auth.authenticate_from_header(f"Bearer {payload_b64}.é")
        assert not result.success
        assert result.code == "INVALID_TOKEN"
