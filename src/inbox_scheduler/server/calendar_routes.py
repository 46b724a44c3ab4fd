"""Route handlers for the calendar agent (Agent B).

Accepts session credentials and delegated credentials minted for the
``agent-b-calendar`` audience. Each route hands the credential's granted
scopes to :class:`CalendarAgent`, which performs the scope check.
"""
from __future__ import annotations

import logging

import httpx

from inbox_scheduler.agents.calendar_agent import (
    DEFAULT_LIST_RESULTS,
    MAX_LIST_RESULTS,
    CalendarAgent,
)
from inbox_scheduler.calendars.gateway import CalendarGateway
from inbox_scheduler.calendars.models import UpdateEventRequest
from inbox_scheduler.config import Settings
from inbox_scheduler.delegation.scopes import (
    CALENDAR_AGENT_AUDIENCE,
    CALENDAR_READ,
    CALENDAR_WRITE,
)
from inbox_scheduler.errors import validation_error
from inbox_scheduler.middleware.auth import AuthMiddleware, AuthResult
from inbox_scheduler.middleware.rate_limit import CALENDAR_AGENT_RULES, SlidingWindowRateLimiter
from inbox_scheduler.server.app import Request, RouteResult, ServiceRoutes
from inbox_scheduler.server.models import CreateEventsRequest, success_envelope

logger = logging.getLogger(__name__)


class CalendarRoutes(ServiceRoutes):
    """HTTP surface of :class:`CalendarAgent`."""

    service_name = "calendar-agent"
    capabilities = [CALENDAR_WRITE, CALENDAR_READ]
    routes = [
        ("POST", r"/api/create-events", "handle_create_events"),
        ("GET", r"/api/events", "handle_list_events"),
        ("GET", r"/api/events/(?P<event_id>[^/]+)", "handle_get_event"),
        ("PUT", r"/api/events/(?P<event_id>[^/]+)", "handle_update_event"),
        ("DELETE", r"/api/events/(?P<event_id>[^/]+)", "handle_delete_event"),
    ]

    def __init__(
        self,
        agent: CalendarAgent,
        auth: AuthMiddleware,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        cors_origin: str = "*",
    ) -> None:
        super().__init__(rate_limiter=rate_limiter, cors_origin=cors_origin)
        self.agent = agent
        self.auth = auth

    def _authenticate(self, request: Request) -> AuthResult:
        result = self.auth.authenticate_from_header(request.header("Authorization"))
        result.raise_for_failure()
        return result

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def handle_create_events(self, request: Request) -> RouteResult:
        auth = self._authenticate(request)
        body = CreateEventsRequest.model_validate(self.body_dict(request))
        source_agent = request.header("X-Agent")
        if source_agent:
            logger.info("create-events from agent %s (%s credential)", source_agent, auth.kind)
        batch = self.agent.create_events(body.events, auth.scopes, source_agent=source_agent)
        return batch.status, success_envelope(batch.to_dict())

    def handle_list_events(self, request: Request) -> RouteResult:
        auth = self._authenticate(request)
        raw_max = request.query_param("maxResults")
        try:
            max_results = int(raw_max) if raw_max else DEFAULT_LIST_RESULTS
        except ValueError:
            raise validation_error(
                [{"field": "maxResults", "message": "must be an integer", "type": "int_parsing"}]
            ) from None
        events = self.agent.list_events(
            auth.scopes, max_results=max_results, time_min=request.query_param("timeMin")
        )
        return 200, success_envelope(
            {
                "events": [event.to_wire() for event in events],
                "count": len(events),
                "maxResults": max(1, min(max_results, MAX_LIST_RESULTS)),
            }
        )

    def handle_get_event(self, request: Request) -> RouteResult:
        auth = self._authenticate(request)
        event = self.agent.get_event(request.path_params["event_id"], auth.scopes)
        return 200, success_envelope({"event": event.to_wire()})

    def handle_update_event(self, request: Request) -> RouteResult:
        auth = self._authenticate(request)
        update = UpdateEventRequest.model_validate(self.body_dict(request))
        event = self.agent.update_event(request.path_params["event_id"], update, auth.scopes)
        return 200, success_envelope({"event": event.to_wire()})

    def handle_delete_event(self, request: Request) -> RouteResult:
        auth = self._authenticate(request)
        event_id = request.path_params["event_id"]
        self.agent.delete_event(event_id, auth.scopes)
        return 200, success_envelope({"deleted": True, "eventId": event_id})


def build_calendar_routes(settings: Settings, http_client: httpx.Client) -> CalendarRoutes:
    """Wire a :class:`CalendarRoutes` instance from *settings*."""
    gateway = CalendarGateway(
        settings.google_access_token, http_client, source_url=settings.frontend_url
    )
    auth = AuthMiddleware(settings.signing_key_bytes, audience=CALENDAR_AGENT_AUDIENCE)
    return CalendarRoutes(
        CalendarAgent(gateway),
        auth,
        rate_limiter=SlidingWindowRateLimiter(CALENDAR_AGENT_RULES),
        cors_origin=settings.cors_origin,
    )


__all__ = ["CalendarRoutes", "build_calendar_routes"]
