"""In-memory sliding-window rate limiting per client and rule.

Each :class:`RateLimitRule` applies to request paths containing its
``path_fragment`` (an empty fragment matches every path). Windows are kept
in process memory and are not shared across processes.
"""
from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RateLimitRule:
    """A request budget.

    Parameters
    ----------
    name:
        Rule identifier, used in the limiter key.
    limit:
        Maximum requests allowed inside the window.
    window_seconds:
        Window length.
    path_fragment:
        The rule applies when this substring occurs in the request path.
    message:
        Error message returned when the budget is exhausted.
    """

    name: str
    limit: int
    window_seconds: int
    path_fragment: str = ""
    message: str = "Too many requests from this IP, please try again later."

    def applies_to(self, path: str) -> bool:
        return self.path_fragment in path


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0
    rule: RateLimitRule | None = None


class SlidingWindowRateLimiter:
    """Tracks request timestamps per ``(rule, client)`` key.

    Parameters
    ----------
    rules:
        Rules checked in order; the first exhausted rule denies.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        rules: list[RateLimitRule],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rules = list(rules)
        self._clock = clock
        self._hits: dict[tuple[str, str], list[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def check(self, client: str, path: str) -> RateLimitDecision:
        """Record a request from *client* to *path* if every applicable rule allows it."""
        now = self._clock()
        applicable = [rule for rule in self._rules if rule.applies_to(path)]
        with self._lock:
            for rule in applicable:
                key = (rule.name, client)
                cutoff = now - rule.window_seconds
                recent = [ts for ts in self._hits[key] if ts > cutoff]
                self._hits[key] = recent
                if len(recent) >= rule.limit:
                    retry_after = int(recent[0] + rule.window_seconds - now) + 1
                    return RateLimitDecision(allowed=False, retry_after=retry_after, rule=rule)
            for rule in applicable:
                self._hits[(rule.name, client)].append(now)
        return RateLimitDecision(allowed=True)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


# Budgets of the two agents.
EMAIL_AGENT_RULES: list[RateLimitRule] = [
    RateLimitRule("global", limit=100, window_seconds=15 * 60),
    RateLimitRule(
        "process-emails",
        limit=10,
        window_seconds=15 * 60,
        path_fragment="/process-emails",
        message="Too many email processing requests, please try again later.",
    ),
]

CALENDAR_AGENT_RULES: list[RateLimitRule] = [
    RateLimitRule("global", limit=200, window_seconds=15 * 60),
    RateLimitRule(
        "calendar-operations",
        limit=30,
        window_seconds=60,
        path_fragment="/events",
        message="Too many calendar operations, please try again later.",
    ),
]


__all__ = [
    "CALENDAR_AGENT_RULES",
    "EMAIL_AGENT_RULES",
    "RateLimitDecision",
    "RateLimitRule",
    "SlidingWindowRateLimiter",
]
