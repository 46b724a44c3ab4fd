"""Pydantic request models and response envelopes for the agent HTTP servers."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from inbox_scheduler.calendars.models import CreateEventRequest
from inbox_scheduler.clock import to_iso, utcnow
from inbox_scheduler.errors import AppError
from inbox_scheduler.mail.models import EmailMessage


class ProcessEmailsRequest(BaseModel):
    """Request body for POST /api/process-emails."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    max_results: int = Field(default=5, ge=1, le=50, alias="maxResults")


class ExtractTasksRequest(BaseModel):
    """Request body for POST /api/extract-tasks."""

    email: EmailMessage


class CreateEventsRequest(BaseModel):
    """Request body for POST /api/create-events."""

    events: list[CreateEventRequest]


class DelegateRequest(BaseModel):
    """Request body for POST /v1/delegate on the credential provider."""

    model_config = ConfigDict(populate_by_name=True)

    session_jwt: str = Field(min_length=1, alias="sessionJwt")
    target_audience: str = Field(min_length=1, alias="targetAudience")
    requested_scopes: list[str] = Field(alias="requestedScopes")
    expiration_time: Optional[int] = Field(default=None, gt=0, alias="expirationTime")


class HealthResponse(BaseModel):
    """Response body for GET /api/health."""

    status: str = "ok"
    service: str
    timestamp: str
    version: str
    uptime: float
    capabilities: Optional[list[str]] = None


# ------------------------------------------------------------------
# Envelopes
# ------------------------------------------------------------------


def success_envelope(data: object) -> dict[str, object]:
    return {"success": True, "data": data, "timestamp": to_iso(utcnow())}


def error_envelope(error: AppError) -> dict[str, object]:
    return {"success": False, "error": error.to_dict(), "timestamp": to_iso(utcnow())}


def validation_details(exc: ValidationError) -> list[dict[str, object]]:
    """Reduce pydantic errors to JSON-safe ``{field, message, type}`` entries."""
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


__all__ = [
    "CreateEventsRequest",
    "DelegateRequest",
    "ExtractTasksRequest",
    "HealthResponse",
    "ProcessEmailsRequest",
    "error_envelope",
    "success_envelope",
    "validation_details",
]
