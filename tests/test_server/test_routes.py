"""Tests for the email agent, calendar agent and provider routes."""
from __future__ import annotations

import json
from collections.abc import Iterator

import httpx
import pytest

from inbox_scheduler.config import Settings
from inbox_scheduler.delegation.provider import CredentialProvider, DelegationRequest
from inbox_scheduler.server.app import Request, ServiceRoutes
from inbox_scheduler.server.calendar_routes import CalendarRoutes, build_calendar_routes
from inbox_scheduler.server.email_routes import EmailRoutes, build_email_routes
from inbox_scheduler.server.provider_routes import ProviderRoutes, build_provider_routes

SIGNING_KEY = "routes-test-key"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        signing_key=SIGNING_KEY,
        provider_url="http://provider.test",
        calendar_agent_url="http://calendar.test",
    )


@pytest.fixture()
def issuer(settings: Settings) -> CredentialProvider:
    return CredentialProvider(settings.signing_key_bytes)


@pytest.fixture()
def services(settings: Settings) -> Iterator[dict[str, ServiceRoutes]]:
    """All three services wired together over an in-process transport."""
    services: dict[str, ServiceRoutes] = {}

    def route(request: httpx.Request) -> httpx.Response:
        target = services["provider"] if request.url.host == "provider.test" else services["calendar"]
        response = target.dispatch(
            Request(
                method=request.method,
                path=request.url.path,
                body=json.loads(request.content) if request.content else None,
                headers=dict(request.headers),
                client="email-agent",
            )
        )
        return httpx.Response(response.status, json=response.body, headers=response.headers)

    with httpx.Client(transport=httpx.MockTransport(route)) as http_client:
        services["provider"] = build_provider_routes(settings)
        services["calendar"] = build_calendar_routes(settings, http_client)
        services["email"] = build_email_routes(settings, http_client)
        yield services


@pytest.fixture()
def email_routes(services: dict[str, ServiceRoutes]) -> EmailRoutes:
    routes = services["email"]
    assert isinstance(routes, EmailRoutes)
    return routes


@pytest.fixture()
def calendar_routes(services: dict[str, ServiceRoutes]) -> CalendarRoutes:
    routes = services["calendar"]
    assert isinstance(routes, CalendarRoutes)
    return routes


@pytest.fixture()
def provider_routes(services: dict[str, ServiceRoutes]) -> ProviderRoutes:
    routes = services["provider"]
    assert isinstance(routes, ProviderRoutes)
    return routes


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _session(issuer: CredentialProvider, *scopes: str) -> str:
    return issuer.issue_session(
        "user@example.com", list(scopes) or ["email.read", "calendar.read", "calendar.write"]
    ).encode()


def _delegated(issuer: CredentialProvider, audience: str, *scopes: str) -> str:
    return issuer.delegate(
        DelegationRequest(
            session_token=_session(issuer),
            target_audience=audience,
            requested_scopes=list(scopes),
        )
    ).encode()


# ---------------------------------------------------------------------------
# Email agent
# ---------------------------------------------------------------------------


class TestEmailRoutes:
    def test_health(self, email_routes: EmailRoutes) -> None:
        response = email_routes.dispatch(Request("GET", "/api/health"))
        assert response.body["service"] == "email-agent"
        assert response.body["version"] == "0.1.0"

    def test_process_emails_requires_auth(self, email_routes: EmailRoutes) -> None:
        response = email_routes.dispatch(Request("POST", "/api/process-emails", body={}))
        assert response.status == 401
        assert response.body["error"]["code"] == "MISSING_TOKEN"  # type: ignore[index]

    def test_delegated_credential_rejected(
        self, email_routes: EmailRoutes, issuer: CredentialProvider
    ) -> None:
        token = _delegated(issuer, "agent-a-email", "email.read")
        response = email_routes.dispatch(
            Request("POST", "/api/process-emails", body={}, headers=_bearer(token))
        )
        assert response.status == 401

    @pytest.mark.parametrize("body", [{"maxResults": 0}, {"maxResults": 51}, {"maxResults": "x"}, {"other": 1}])
    def test_process_emails_validation(
        self, email_routes: EmailRoutes, issuer: CredentialProvider, body: dict[str, object]
    ) -> None:
        response = email_routes.dispatch(
            Request("POST", "/api/process-emails", body=body, headers=_bearer(_session(issuer)))
        )
        assert response.status == 400
        assert response.body["error"]["code"] == "VALIDATION_ERROR"  # type: ignore[index]

    def test_end_to_end_flow(
        self, email_routes: EmailRoutes, calendar_routes: CalendarRoutes, issuer: CredentialProvider
    ) -> None:
        response = email_routes.dispatch(
            Request(
                "POST",
                "/api/process-emails",
                body={"maxResults": 3},
                headers=_bearer(_session(issuer)),
            )
        )
        assert response.status == 200
        data = response.body["data"]
        assert data["processed"] == 3  # type: ignore[index]
        actions = sum(len(s["actionItems"]) for s in data["summaries"])  # type: ignore[index]
        assert actions > 0
        assert len(data["eventsCreated"]) == actions  # type: ignore[index]
        assert all(e["id"].startswith("mock_") for e in data["eventsCreated"])  # type: ignore[index]
        assert data["errors"] == []  # type: ignore[index]

    def test_session_without_calendar_write_fails_delegation(
        self, email_routes: EmailRoutes, issuer: CredentialProvider
    ) -> None:
        token = _session(issuer, "email.read")
        response = email_routes.dispatch(
            Request("POST", "/api/process-emails", body={}, headers=_bearer(token))
        )
        assert response.status == 403
        assert response.body["error"]["code"] == "DELEGATION_FAILED"  # type: ignore[index]

    def test_extract_tasks_missing_email(
        self, email_routes: EmailRoutes, issuer: CredentialProvider
    ) -> None:
        response = email_routes.dispatch(
            Request("POST", "/api/extract-tasks", body={}, headers=_bearer(_session(issuer)))
        )
        assert response.status == 400
        assert response.body["error"]["code"] == "MISSING_EMAIL"  # type: ignore[index]

    def test_extract_tasks(self, email_routes: EmailRoutes, issuer: CredentialProvider) -> None:
        email = {
            "id": "e1",
            "subject": "Budget",
            "from": "finance@example.com",
            "body": "The deadline is friday. Let's have a call tomorrow.",
            "threadId": "t1",
            "receivedAt": "2030-01-01T09:00:00Z",
        }
        response = email_routes.dispatch(
            Request("POST", "/api/extract-tasks", body={"email": email}, headers=_bearer(_session(issuer)))
        )
        assert response.status == 200
        data = response.body["data"]
        assert data["metadata"]["emailId"] == "e1"  # type: ignore[index]
        assert data["metadata"]["actionCount"] == 2  # type: ignore[index]

    def test_email_summary(self, email_routes: EmailRoutes, issuer: CredentialProvider) -> None:
        response = email_routes.dispatch(
            Request("GET", "/api/email/mock_email_2/summary", headers=_bearer(_session(issuer)))
        )
        assert response.status == 200
        assert response.body["data"]["email"]["id"] == "mock_email_2"  # type: ignore[index]


# ---------------------------------------------------------------------------
# Calendar agent
# ---------------------------------------------------------------------------


class TestCalendarRoutes:
    def test_health_capabilities(self, calendar_routes: CalendarRoutes) -> None:
        response = calendar_routes.dispatch(Request("GET", "/api/health"))
        assert response.body["capabilities"] == ["calendar.write", "calendar.read"]

    def test_create_events_with_delegated_credential(
        self, calendar_routes: CalendarRoutes, issuer: CredentialProvider
    ) -> None:
        token = _delegated(issuer, "agent-b-calendar", "calendar.write")
        response = calendar_routes.dispatch(
            Request(
                "POST",
                "/api/create-events",
                body={"events": [{"title": "Review", "startTime": "2030-01-01T10:00:00Z"}]},
                headers={**_bearer(token), "X-Agent": "agent-a-email"},
            )
        )
        assert response.status == 200
        data = response.body["data"]
        assert data["totalCreated"] == 1  # type: ignore[index]
        assert data["created"][0]["endTime"] == "2030-01-01T11:00:00.000Z"  # type: ignore[index]

    def test_wrong_audience_rejected(
        self, calendar_routes: CalendarRoutes, issuer: CredentialProvider
    ) -> None:
        token = _delegated(issuer, "agent-a-email", "calendar.write")
        response = calendar_routes.dispatch(
            Request("POST", "/api/create-events", body={"events": [{}]}, headers=_bearer(token))
        )
        assert response.status == 401

    def test_forged_credential_is_unauthorized(
        self, calendar_routes: CalendarRoutes, issuer: CredentialProvider
    ) -> None:
        payload_b64 = _session(issuer).split(".")[0]
        response = calendar_routes.dispatch(
            Request("POST", "/api/create-events", body={"events": [{}]}, headers=_bearer(f"{payload_b64}.é"))
        )
        assert response.status == 401
        assert response.body["error"]["code"] == "INVALID_TOKEN"  # type: ignore[index]

    def test_missing_scope(self, calendar_routes: CalendarRoutes, issuer: CredentialProvider) -> None:
        token = _delegated(issuer, "agent-b-calendar", "calendar.read")
        response = calendar_routes.dispatch(
            Request("POST", "/api/create-events", body={"events": [{}]}, headers=_bearer(token))
        )
        assert response.status == 403
        assert response.body["error"]["code"] == "INSUFFICIENT_SCOPE"  # type: ignore[index]

    def test_empty_batch(self, calendar_routes: CalendarRoutes, issuer: CredentialProvider) -> None:
        token = _delegated(issuer, "agent-b-calendar", "calendar.read")
        response = calendar_routes.dispatch(
            Request("POST", "/api/create-events", body={"events": []}, headers=_bearer(token))
        )
        assert response.status == 200
        assert response.body["data"]["created"] == []  # type: ignore[index]

    def test_partial_batch_is_207(
        self, calendar_routes: CalendarRoutes, issuer: CredentialProvider
    ) -> None:
        response = calendar_routes.dispatch(
            Request(
                "POST",
                "/api/create-events",
                body={"events": [{"title": "ok"}, {"title": "bad", "startTime": "never"}]},
                headers=_bearer(_session(issuer)),
            )
        )
        assert response.status == 207
        assert response.body["success"] is True
        assert len(response.body["data"]["errors"]) == 1  # type: ignore[index]

    def test_list_events(self, calendar_routes: CalendarRoutes, issuer: CredentialProvider) -> None:
        response = calendar_routes.dispatch(
            Request(
                "GET",
                "/api/events",
                query={"maxResults": ["3"]},
                headers=_bearer(_session(issuer)),
            )
        )
        assert response.status == 200
        data = response.body["data"]
        assert data["count"] == 3  # type: ignore[index]
        assert data["maxResults"] == 3  # type: ignore[index]

    def test_list_events_bad_max(self, calendar_routes: CalendarRoutes, issuer: CredentialProvider) -> None:
        response = calendar_routes.dispatch(
            Request("GET", "/api/events", query={"maxResults": ["lots"]}, headers=_bearer(_session(issuer)))
        )
        assert response.status == 400

    def test_get_update_delete(
        self, calendar_routes: CalendarRoutes, issuer: CredentialProvider
    ) -> None:
        headers = _bearer(_session(issuer))
        got = calendar_routes.dispatch(Request("GET", "/api/events/ev1", headers=headers))
        assert got.body["data"]["event"]["id"] == "ev1"  # type: ignore[index]

        updated = calendar_routes.dispatch(
            Request("PUT", "/api/events/ev1", body={"title": "Moved"}, headers=headers)
        )
        assert updated.body["data"]["event"]["title"] == "Moved"  # type: ignore[index]

        deleted = calendar_routes.dispatch(Request("DELETE", "/api/events/ev1", headers=headers))
        assert deleted.body["data"] == {"deleted": True, "eventId": "ev1"}

    def test_read_scope_required_for_get(
        self, calendar_routes: CalendarRoutes, issuer: CredentialProvider
    ) -> None:
        token = _delegated(issuer, "agent-b-calendar", "calendar.write")
        response = calendar_routes.dispatch(Request("GET", "/api/events/ev1", headers=_bearer(token)))
        assert response.status == 403


# ---------------------------------------------------------------------------
# Credential provider
# ---------------------------------------------------------------------------


class TestProviderRoutes:
    def test_delegate(self, provider_routes: ProviderRoutes, issuer: CredentialProvider) -> None:
        response = provider_routes.dispatch(
            Request(
                "POST",
                "/v1/delegate",
                body={
                    "sessionJwt": _session(issuer),
                    "targetAudience": "agent-b-calendar",
                    "requestedScopes": ["calendar.write"],
                    "expirationTime": 120,
                },
            )
        )
        assert response.status == 200
        data = response.body["data"]
        assert data["audience"] == "agent-b-calendar"  # type: ignore[index]
        assert data["scopes"] == ["calendar.write"]  # type: ignore[index]
        assert data["token"].count(".") == 1  # type: ignore[index]

    def test_malformed_request(self, provider_routes: ProviderRoutes) -> None:
        response = provider_routes.dispatch(Request("POST", "/v1/delegate", body={"sessionJwt": ""}))
        assert response.status == 400

    def test_invalid_session(self, provider_routes: ProviderRoutes) -> None:
        response = provider_routes.dispatch(
            Request(
                "POST",
                "/v1/delegate",
                body={"sessionJwt": "x.y", "targetAudience": "agent-b-calendar", "requestedScopes": ["calendar.write"]},
            )
        )
        assert response.status == 401

    def test_scope_not_held(self, provider_routes: ProviderRoutes, issuer: CredentialProvider) -> None:
        response = provider_routes.dispatch(
            Request(
                "POST",
                "/v1/delegate",
                body={
                    "sessionJwt": _session(issuer, "email.read"),
                    "targetAudience": "agent-b-calendar",
                    "requestedScopes": ["calendar.write"],
                },
            )
        )
        assert response.status == 403
        assert response.body["error"]["code"] == "SCOPE_NOT_GRANTED"  # type: ignore[index]
