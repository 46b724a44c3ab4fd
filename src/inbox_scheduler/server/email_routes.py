"""Route handlers for the email agent (Agent A).

Every route except health requires a session credential. The raw bearer
value is passed on to :meth:`EmailAgent.process_emails`, which exchanges it
for a delegated credential.
"""
from __future__ import annotations

import logging

import httpx

from inbox_scheduler.agents.email_agent import EmailAgent
from inbox_scheduler.config import Settings
from inbox_scheduler.delegation.client import DelegationClient
from inbox_scheduler.delegation.scopes import EMAIL_AGENT_AUDIENCE
from inbox_scheduler.delegation.token import SESSION
from inbox_scheduler.errors import AppError
from inbox_scheduler.mail.gateway import MailGateway
from inbox_scheduler.middleware.auth import AuthMiddleware, AuthResult
from inbox_scheduler.middleware.rate_limit import EMAIL_AGENT_RULES, SlidingWindowRateLimiter
from inbox_scheduler.server.app import Request, RouteResult, ServiceRoutes
from inbox_scheduler.server.models import (
    ExtractTasksRequest,
    ProcessEmailsRequest,
    success_envelope,
)
from inbox_scheduler.summary.engine import SummarizationEngine

logger = logging.getLogger(__name__)


class EmailRoutes(ServiceRoutes):
    """HTTP surface of :class:`EmailAgent`."""

    service_name = "email-agent"
    routes = [
        ("POST", r"/api/process-emails", "handle_process_emails"),
        ("POST", r"/api/extract-tasks", "handle_extract_tasks"),
        ("GET", r"/api/email/(?P<email_id>[^/]+)/summary", "handle_email_summary"),
    ]

    def __init__(
        self,
        agent: EmailAgent,
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

    def handle_process_emails(self, request: Request) -> RouteResult:
        auth = self._authenticate(request)
        body = ProcessEmailsRequest.model_validate(self.body_dict(request))
        logger.info("process-emails requested by %s", auth.subject)
        data = self.agent.process_emails(auth.token, max_results=body.max_results)
        return 200, success_envelope(data)

    def handle_extract_tasks(self, request: Request) -> RouteResult:
        self._authenticate(request)
        raw = self.body_dict(request)
        if not raw.get("email"):
            raise AppError("Email data is required", status=400, code="MISSING_EMAIL")
        body = ExtractTasksRequest.model_validate(raw)
        return 200, success_envelope(self.agent.extract_tasks(body.email))

    def handle_email_summary(self, request: Request) -> RouteResult:
        self._authenticate(request)
        email_id = request.path_params["email_id"]
        return 200, success_envelope(self.agent.email_summary(email_id))


def build_email_routes(settings: Settings, http_client: httpx.Client) -> EmailRoutes:
    """Wire an :class:`EmailRoutes` instance from *settings*."""
    agent = EmailAgent(
        mail=MailGateway(settings.google_access_token, http_client),
        summarizer=SummarizationEngine.from_api_key(
            settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.http_timeout,
        ),
        delegation=DelegationClient(
            settings.provider_url, settings.calendar_agent_url, http_client
        ),
    )
    auth = AuthMiddleware(
        settings.signing_key_bytes, audience=EMAIL_AGENT_AUDIENCE, accepted_kinds=(SESSION,)
    )
    return EmailRoutes(
        agent,
        auth,
        rate_limiter=SlidingWindowRateLimiter(EMAIL_AGENT_RULES),
        cors_origin=settings.cors_origin,
    )


__all__ = ["EmailRoutes", "build_email_routes"]
