"""Application error type and upstream-error classification rules.

Every failure that should reach a client is an :class:`AppError` carrying an
HTTP status and a stable machine-readable ``code``. Upstream provider
failures are reclassified by matching substrings of their message against a
small rule table; anything unmatched is left to the caller's fallback policy.
"""
from __future__ import annotations

from dataclasses import dataclass


class AppError(Exception):
    """An error with an HTTP status and a machine-readable code.

    Parameters
    ----------
    message:
        Human-readable description returned to the client.
    status:
        HTTP status code (default 500).
    code:
        Stable error code, e.g. ``"INSUFFICIENT_SCOPE"``.
    details:
        Optional structured payload (validation errors, upstream body).
    """

    def __init__(
        self,
        message: str,
        status: int = 500,
        code: str = "INTERNAL_ERROR",
        details: object = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details

    def to_dict(self) -> dict[str, object]:
        """Return the ``error`` member of a response envelope."""
        body: dict[str, object] = {"message": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"AppError(status={self.status}, code={self.code!r}, message={self.message!r})"


@dataclass(frozen=True)
class ErrorRule:
    """Maps any of several message substrings onto a typed error.

    Matching is case-insensitive.
    """

    substrings: tuple[str, ...]
    status: int
    code: str
    message: str

    def matches(self, text: str) -> bool:
        lowered = text.lower()
        return any(s.lower() in lowered for s in self.substrings)

    def to_error(self, details: object = None) -> AppError:
        return AppError(self.message, status=self.status, code=self.code, details=details)


def classify(message: str, rules: tuple[ErrorRule, ...]) -> AppError | None:
    """Return the typed error for the first rule matching *message*, or None."""
    for rule in rules:
        if rule.matches(message):
            return rule.to_error()
    return None


# ------------------------------------------------------------------
# Rule tables per upstream operation
# ------------------------------------------------------------------

MAIL_LIST_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(
        ("invalid_grant", "invalid authentication credentials"),
        401,
        "GMAIL_AUTH_EXPIRED",
        "Gmail authentication expired, please re-authenticate",
    ),
    ErrorRule(
        ("insufficient permission", "insufficientpermissions"),
        403,
        "GMAIL_PERMISSIONS_ERROR",
        "Insufficient permissions to access Gmail",
    ),
)

MAIL_GET_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(("not found",), 404, "EMAIL_NOT_FOUND", "Email not found"),
)

CALENDAR_CREATE_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(
        ("invalid_grant", "invalid authentication credentials"),
        401,
        "CALENDAR_AUTH_EXPIRED",
        "Calendar authentication expired, please re-authenticate",
    ),
    ErrorRule(
        ("insufficient permission", "insufficientpermissions"),
        403,
        "CALENDAR_PERMISSIONS_ERROR",
        "Insufficient permissions to create calendar events",
    ),
    ErrorRule(("invalid value",), 400, "INVALID_EVENT_DATA", "Invalid event data provided"),
)

CALENDAR_GET_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(("not found",), 404, "EVENT_NOT_FOUND", "Event not found"),
)

CALENDAR_UPDATE_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(
        ("not found",), 404, "EVENT_UPDATE_FAILED", "Event not found or update failed"
    ),
)

CALENDAR_DELETE_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(
        ("not found",), 404, "EVENT_DELETE_FAILED", "Event not found or deletion failed"
    ),
)

LLM_SUMMARY_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(("rate_limit",), 429, "RATE_LIMIT_EXCEEDED", "OpenAI rate limit exceeded"),
    ErrorRule(("insufficient_quota",), 429, "QUOTA_EXCEEDED", "OpenAI quota exceeded"),
)

LLM_EXTRACTION_RULES: tuple[ErrorRule, ...] = (
    ErrorRule(("rate_limit",), 429, "RATE_LIMIT_EXCEEDED", "OpenAI rate limit exceeded"),
)


# ------------------------------------------------------------------
# Common constructors
# ------------------------------------------------------------------


def validation_error(details: object, message: str = "Invalid request parameters") -> AppError:
    return AppError(message, status=400, code="VALIDATION_ERROR", details=details)


def insufficient_scope(message: str = "Insufficient permissions for calendar operations") -> AppError:
    return AppError(message, status=403, code="INSUFFICIENT_SCOPE")


def delegation_failed() -> AppError:
    return AppError(
        "Failed to obtain delegated token for calendar operations",
        status=403,
        code="DELEGATION_FAILED",
    )


__all__ = [
    "AppError",
    "CALENDAR_CREATE_RULES",
    "CALENDAR_DELETE_RULES",
    "CALENDAR_GET_RULES",
    "CALENDAR_UPDATE_RULES",
    "ErrorRule",
    "LLM_EXTRACTION_RULES",
    "LLM_SUMMARY_RULES",
    "MAIL_GET_RULES",
    "MAIL_LIST_RULES",
    "classify",
    "delegation_failed",
    "insufficient_scope",
    "validation_error",
]
