"""DelegationClient — Agent A's side of the delegation contract.

Two calls, both single round-trips with no retry:

1. :meth:`DelegationClient.request_delegated_token` exchanges the user's
   session token at the credential provider for a credential scoped to one
   audience.
2. :meth:`DelegationClient.create_events` presents that credential to the
   calendar agent as a bearer token.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from inbox_scheduler.calendars.models import CreateEventRequest
from inbox_scheduler.delegation.provider import DelegationRequest
from inbox_scheduler.delegation.scopes import EMAIL_AGENT_AUDIENCE, ScopeSet
from inbox_scheduler.errors import AppError

logger = logging.getLogger(__name__)

DELEGATE_PATH = "/v1/delegate"
CREATE_EVENTS_PATH = "/api/create-events"


@dataclass
class DelegatedCredential:
    """An opaque, audience-bound bearer credential.

    Used once as a bearer header; never cached or refreshed.
    """

    token: str = field(repr=False)
    audience: str
    scopes: list[str]
    expires_at: str | None = None

    def authorization_header(self) -> str:
        return f"Bearer {self.token}"


class DelegationClient:
    """HTTP client for the credential provider and the calendar agent.

    Parameters
    ----------
    provider_url:
        Base URL of the credential provider.
    calendar_agent_url:
        Base URL of the calendar agent.
    http_client:
        Shared ``httpx.Client``; its timeout bounds each call.
    agent_name:
        Value sent in the ``X-Agent`` marker header.
    """

    def __init__(
        self,
        provider_url: str,
        calendar_agent_url: str,
        http_client: httpx.Client,
        agent_name: str = EMAIL_AGENT_AUDIENCE,
    ) -> None:
        self._provider_url = provider_url.rstrip("/")
        self._calendar_url = calendar_agent_url.rstrip("/")
        self._http = http_client
        self._agent_name = agent_name

    # ------------------------------------------------------------------
    # Token exchange
    # ------------------------------------------------------------------

    def request_delegated_token(
        self,
        session_token: str,
        target_audience: str,
        requested_scopes: Sequence[str],
        expiration_time: int | None = None,
    ) -> DelegatedCredential | None:
        """Exchange *session_token* for a delegated credential.

        Returns None on any failure: transport error, non-2xx status,
        non-JSON body, or a body without a usable ``token``.

        Raises
        ------
        ValueError
            If *session_token* is empty or *requested_scopes* is empty or
            contains unknown scopes.
        """
        if not session_token or not session_token.strip():
            raise ValueError("session_token must be a non-empty bearer value.")
        scopes = ScopeSet(requested_scopes)
        if not len(scopes):
            raise ValueError("requested_scopes must not be empty.")
        unknown = scopes.unknown()
        if unknown:
            raise ValueError(f"Unknown scopes requested: {', '.join(unknown)}")

        request = DelegationRequest(
            session_token=session_token.strip(),
            target_audience=target_audience,
            requested_scopes=scopes.to_list(),
            expiration_time=expiration_time,
        )

        try:
            response = self._http.post(self._provider_url + DELEGATE_PATH, json=request.to_wire())
        except httpx.HTTPError as exc:
            logger.error("Delegated token request failed: %s", exc)
            return None

        if not response.is_success:
            logger.error(
                "Credential provider refused delegation (HTTP %d) for audience=%s",
                response.status_code,
                target_audience,
            )
            return None

        try:
            body = response.json()
        except ValueError:
            logger.error("Credential provider returned a non-JSON body")
            return None

        data = body.get("data", body) if isinstance(body, dict) else None
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            logger.error("Credential provider response carried no usable token")
            return None

        logger.info("Obtained delegated credential for audience=%s", target_audience)
        return DelegatedCredential(
            token=token,
            audience=target_audience,
            scopes=scopes.to_list(),
            expires_at=data.get("expiresAt") if isinstance(data.get("expiresAt"), str) else None,
        )

    # ------------------------------------------------------------------
    # Calendar agent call
    # ------------------------------------------------------------------

    def create_events(
        self,
        credential: DelegatedCredential,
        events: Sequence[CreateEventRequest],
    ) -> dict[str, object]:
        """Submit *events* as one batch to the calendar agent.

        Returns
        -------
        dict
            The ``data`` member of the calendar agent's envelope for a 200
            or 207 response.

        Raises
        ------
        AppError
            With the calendar agent's error code for any other status, or
            502 ``CALENDAR_AGENT_UNAVAILABLE`` on transport failure.
        """
        headers = {
            "Authorization": credential.authorization_header(),
            "X-Agent": self._agent_name,
        }
        payload = {"events": [event.to_wire() for event in events]}
        try:
            response = self._http.post(
                self._calendar_url + CREATE_EVENTS_PATH, json=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            raise AppError(
                f"Calendar agent unreachable: {exc}",
                status=502,
                code="CALENDAR_AGENT_UNAVAILABLE",
            ) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code in (200, 207):
            data = body.get("data")
            return data if isinstance(data, dict) else {"created": []}

        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        raise AppError(
            str(error.get("message") or f"Calendar agent returned HTTP {response.status_code}"),
            status=response.status_code,
            code=str(error.get("code") or "CALENDAR_AGENT_ERROR"),
            details=error.get("details"),
        )


__all__ = ["DelegatedCredential", "DelegationClient"]
