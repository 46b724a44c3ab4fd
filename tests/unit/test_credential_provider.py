"""Tests for inbox_scheduler.delegation.provider — delegated credential minting."""
from __future__ import annotations

import pytest

from inbox_scheduler.delegation.provider import CredentialProvider, DelegationRequest
from inbox_scheduler.delegation.token import DELEGATED, SESSION, verify_token
from inbox_scheduler.errors import AppError


@pytest.fixture()
def secret_key() -> bytes:
    return b"provider-test-key"


@pytest.fixture()
def provider(secret_key: bytes) -> CredentialProvider:
    return CredentialProvider(secret_key, default_ttl_seconds=300, max_ttl_seconds=900)


@pytest.fixture()
def session_token(provider: CredentialProvider) -> str:
    return provider.issue_session(
        "user@example.com", ["email.read", "calendar.read", "calendar.write"]
    ).encode()


def _request(session_token: str, **overrides: object) -> DelegationRequest:
    fields: dict[str, object] = {
        "session_token": session_token,
        "target_audience": "agent-b-calendar",
        "requested_scopes": ["calendar.write"],
    }
    fields.update(overrides)
    return DelegationRequest(**fields)  # type: ignore[arg-type]


class TestIssueSession:
    def test_session_kind(self, provider: CredentialProvider) -> None:
        credential = provider.issue_session("user@example.com", ["email.read"])
        assert credential.kind == SESSION

    def test_empty_subject_rejected(self, provider: CredentialProvider) -> None:
        with pytest.raises(ValueError):
            provider.issue_session("  ", ["email.read"])

    def test_unknown_scope_rejected(self, provider: CredentialProvider) -> None:
        with pytest.raises(ValueError, match="admin"):
            provider.issue_session("user@example.com", ["admin"])


class TestDelegate:
    def test_delegated_credential_is_narrowed(
        self, provider: CredentialProvider, session_token: str, secret_key: bytes
    ) -> None:
        credential = provider.delegate(_request(session_token))
        verified = verify_token(credential.encode(), secret_key, audience="agent-b-calendar")
        assert verified.kind == DELEGATED
        assert verified.scopes == ["calendar.write"]
        assert verified.subject == "user@example.com"
        assert verified.parent_token_id is not None

    def test_default_ttl(self, provider: CredentialProvider, session_token: str) -> None:
        credential = provider.delegate(_request(session_token))
        assert (credential.expires_at - credential.issued_at).total_seconds() == 300

    def test_ttl_hint_capped(self, provider: CredentialProvider, session_token: str) -> None:
        credential = provider.delegate(_request(session_token, expiration_time=99999))
        assert (credential.expires_at - credential.issued_at).total_seconds() == 900

    def test_invalid_session(self, provider: CredentialProvider) -> None:
        with pytest.raises(AppError) as excinfo:
            provider.delegate(_request("not-a-token"))
        assert excinfo.value.status == 401
        assert excinfo.value.code == "INVALID_SESSION"

    def test_delegated_credential_cannot_be_redelegated(
        self, provider: CredentialProvider, session_token: str
    ) -> None:
        delegated = provider.delegate(_request(session_token)).encode()
        with pytest.raises(AppError) as excinfo:
            provider.delegate(_request(delegated))
        assert excinfo.value.code == "INVALID_SESSION"

    def test_empty_scopes(self, provider: CredentialProvider, session_token: str) -> None:
        with pytest.raises(AppError) as excinfo:
            provider.delegate(_request(session_token, requested_scopes=[]))
        assert excinfo.value.status == 400

    def test_unknown_audience(self, provider: CredentialProvider, session_token: str) -> None:
        with pytest.raises(AppError) as excinfo:
            provider.delegate(_request(session_token, target_audience="agent-z"))
        assert excinfo.value.code == "UNKNOWN_AUDIENCE"

    def test_scope_not_held(self, provider: CredentialProvider) -> None:
        narrow = provider.issue_session("user@example.com", ["email.read"]).encode()
        with pytest.raises(AppError) as excinfo:
            provider.delegate(_request(narrow))
        assert excinfo.value.status == 403
        assert excinfo.value.code == "SCOPE_NOT_GRANTED"
        assert excinfo.value.details == {"missing": ["calendar.write"]}


class TestDelegationRequestWire:
    def test_camel_case_fields(self) -> None:
        wire = _request("tok", expiration_time=60).to_wire()
        assert wire == {
            "sessionJwt": "tok",
            "targetAudience": "agent-b-calendar",
            "requestedScopes": ["calendar.write"],
            "expirationTime": 60,
        }

    def test_expiration_omitted_when_unset(self) -> None:
        assert "expirationTime" not in _request("tok").to_wire()
