"""inbox-scheduler — two cooperating agents that turn an inbox into calendar events.

Agent A (the email agent) reads recent mail, summarizes it and extracts
action items; it then exchanges the user's session credential for a
narrower ``calendar.write`` credential and asks Agent B (the calendar
agent) to create one event per action item.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import inbox_scheduler
>>> inbox_scheduler.__version__
'0.1.0'

Quick start
-----------
::

    from inbox_scheduler import (
        # Settings and errors
        Settings, AppError,
        # Delegation
        CredentialProvider, SignedCredential, ScopeSet, DelegationClient,
        # Agents
        EmailAgent, CalendarAgent,
    )
"""
from __future__ import annotations

__version__: str = "0.1.0"

from inbox_scheduler.config import Settings
from inbox_scheduler.errors import AppError
from inbox_scheduler.result import Err, Ok, ProviderError, resolve_with_fallback

# ------------------------------------------------------------------
# Delegation subsystem
# ------------------------------------------------------------------
from inbox_scheduler.delegation.client import DelegatedCredential, DelegationClient
from inbox_scheduler.delegation.provider import CredentialProvider, DelegationRequest
from inbox_scheduler.delegation.scopes import (
    CALENDAR_READ,
    CALENDAR_WRITE,
    EMAIL_READ,
    NOTIFICATIONS_SEND,
    ScopeSet,
    check_scope,
)
from inbox_scheduler.delegation.token import CredentialError, SignedCredential

# ------------------------------------------------------------------
# Middleware subsystem
# ------------------------------------------------------------------
from inbox_scheduler.middleware.auth import AuthMiddleware, AuthResult
from inbox_scheduler.middleware.rate_limit import RateLimitRule, SlidingWindowRateLimiter

# ------------------------------------------------------------------
# Domain models and services
# ------------------------------------------------------------------
from inbox_scheduler.mail.models import EmailMessage
from inbox_scheduler.summary.models import ActionItem
from inbox_scheduler.summary.engine import SummarizationEngine
from inbox_scheduler.calendars.models import CalendarEvent, CreateEventRequest
from inbox_scheduler.agents.calendar_agent import BatchResult, CalendarAgent
from inbox_scheduler.agents.email_agent import EmailAgent

__all__ = [
    "__version__",
    "ActionItem",
    "AppError",
    "AuthMiddleware",
    "AuthResult",
    "BatchResult",
    "CALENDAR_READ",
    "CALENDAR_WRITE",
    "CalendarAgent",
    "CalendarEvent",
    "CreateEventRequest",
    "CredentialError",
    "CredentialProvider",
    "DelegatedCredential",
    "DelegationClient",
    "DelegationRequest",
    "EMAIL_READ",
    "EmailAgent",
    "EmailMessage",
    "Err",
    "NOTIFICATIONS_SEND",
    "Ok",
    "ProviderError",
    "RateLimitRule",
    "ScopeSet",
    "Settings",
    "SignedCredential",
    "SlidingWindowRateLimiter",
    "SummarizationEngine",
    "check_scope",
    "resolve_with_fallback",
]
