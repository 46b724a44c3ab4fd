"""Scope vocabulary and the per-request scope gatekeeper.

A scope is a plain permission string such as ``calendar.write``. Checks are
exact string membership: there is no hierarchy (``calendar.write`` does not
imply ``calendar.read``) and no wildcard.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum

from inbox_scheduler.errors import insufficient_scope

EMAIL_READ = "email.read"
CALENDAR_READ = "calendar.read"
CALENDAR_WRITE = "calendar.write"
NOTIFICATIONS_SEND = "notifications.send"

KNOWN_SCOPES: frozenset[str] = frozenset(
    {EMAIL_READ, CALENDAR_READ, CALENDAR_WRITE, NOTIFICATIONS_SEND}
)

EMAIL_AGENT_AUDIENCE = "agent-a-email"
CALENDAR_AGENT_AUDIENCE = "agent-b-calendar"

KNOWN_AUDIENCES: frozenset[str] = frozenset({EMAIL_AGENT_AUDIENCE, CALENDAR_AGENT_AUDIENCE})


class ScopeDecision(str, Enum):
    """Outcome of a scope check."""

    ALLOW = "allow"
    DENY = "deny"


class ScopeSet:
    """An immutable, order-irrelevant set of granted scope names."""

    __slots__ = ("_scopes",)

    def __init__(self, scopes: Iterable[str] = ()) -> None:
        self._scopes: frozenset[str] = frozenset(str(s) for s in scopes)

    def __contains__(self, scope: object) -> bool:
        return scope in self._scopes

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._scopes))

    def __len__(self) -> int:
        return len(self._scopes)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ScopeSet):
            return self._scopes == other._scopes
        if isinstance(other, (set, frozenset)):
            return self._scopes == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._scopes)

    def __repr__(self) -> str:
        return f"ScopeSet({sorted(self._scopes)!r})"

    def issubset(self, other: Iterable[str]) -> bool:
        return self._scopes.issubset(other)

    def unknown(self) -> list[str]:
        """Return sorted scopes not in :data:`KNOWN_SCOPES`."""
        return sorted(self._scopes - KNOWN_SCOPES)

    def to_list(self) -> list[str]:
        return sorted(self._scopes)


def check_scope(required_scope: str, granted_scopes: Iterable[str]) -> ScopeDecision:
    """Return ALLOW iff *required_scope* is an exact member of *granted_scopes*."""
    granted = granted_scopes if isinstance(granted_scopes, ScopeSet) else ScopeSet(granted_scopes)
    return ScopeDecision.ALLOW if required_scope in granted else ScopeDecision.DENY


def require_scope(
    required_scope: str,
    granted_scopes: Iterable[str],
    message: str | None = None,
) -> None:
    """Raise ``INSUFFICIENT_SCOPE`` (403) unless *required_scope* is granted.

    Raises
    ------
    AppError
        If the check denies.
    """
    if check_scope(required_scope, granted_scopes) is ScopeDecision.DENY:
        if message is None:
            raise insufficient_scope()
        raise insufficient_scope(message)


__all__ = [
    "CALENDAR_AGENT_AUDIENCE",
    "CALENDAR_READ",
    "CALENDAR_WRITE",
    "EMAIL_AGENT_AUDIENCE",
    "EMAIL_READ",
    "KNOWN_AUDIENCES",
    "KNOWN_SCOPES",
    "NOTIFICATIONS_SEND",
    "ScopeDecision",
    "ScopeSet",
    "check_scope",
    "require_scope",
]
