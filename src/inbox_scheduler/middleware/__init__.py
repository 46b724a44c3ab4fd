"""Request middleware: bearer authentication and rate limiting."""
from __future__ import annotations

from inbox_scheduler.middleware.auth import AuthMiddleware, AuthResult
from inbox_scheduler.middleware.rate_limit import (
    CALENDAR_AGENT_RULES,
    EMAIL_AGENT_RULES,
    RateLimitDecision,
    RateLimitRule,
    SlidingWindowRateLimiter,
)

__all__ = [
    "AuthMiddleware",
    "AuthResult",
    "CALENDAR_AGENT_RULES",
    "EMAIL_AGENT_RULES",
    "RateLimitDecision",
    "RateLimitRule",
    "SlidingWindowRateLimiter",
]
