"""CalendarAgent — Agent B: scope-gated calendar operations.

Every operation takes the caller's granted :class:`ScopeSet` and checks the
one scope it needs before touching the gateway. Batch creation is
sequential and non-atomic: each draft is created on its own and failures
are reported per item. No idempotency key is attached, so resubmitting a
batch creates its events again.
"""
from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from typing import Callable

from inbox_scheduler.calendars.gateway import (
    CalendarGateway,
    mock_created_event,
    mock_event,
    mock_updated_event,
    mock_upcoming_events,
)
from inbox_scheduler.calendars.models import (
    DEFAULT_REMINDERS,
    CalendarEvent,
    CreateEventRequest,
    UpdateEventRequest,
)
from inbox_scheduler.clock import parse_iso, to_iso, utcnow
from inbox_scheduler.delegation.scopes import CALENDAR_READ, CALENDAR_WRITE, ScopeSet, require_scope
from inbox_scheduler.errors import AppError
from inbox_scheduler.result import Ok, resolve_with_fallback

logger = logging.getLogger(__name__)

MAX_LIST_RESULTS = 50
DEFAULT_LIST_RESULTS = 10

_READ_DENIED = "Insufficient permissions for calendar read operations"
_WRITE_DENIED = "Insufficient permissions for calendar write operations"


class BatchResult:
    """Outcome of a batch creation: created events plus per-item errors."""

    def __init__(self, total_requested: int) -> None:
        self.total_requested = total_requested
        self.created: list[CalendarEvent] = []
        self.errors: list[dict[str, object]] = []

    @property
    def status(self) -> int:
        """200 when nothing failed (including an empty batch), 207 otherwise."""
        return 207 if self.errors else 200

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "created": [event.to_wire() for event in self.created],
            "totalRequested": self.total_requested,
            "totalCreated": len(self.created),
        }
        if self.errors:
            data["errors"] = self.errors
        return data


class CalendarAgent:
    """Agent B service.

    Parameters
    ----------
    gateway:
        Google Calendar gateway.
    clock:
        UTC time source, injectable for tests.
    """

    def __init__(
        self,
        gateway: CalendarGateway,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._gateway = gateway
        self._clock = clock

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def prepare_draft(self, draft: CreateEventRequest) -> CreateEventRequest:
        """Fill per-item defaults and validate times.

        Raises
        ------
        AppError
            ``INVALID_EVENT_DATA`` (400) for unparseable times or an end not
            after the start.
        """
        start_default = self._clock() + datetime.timedelta(hours=1)
        try:
            start = parse_iso(draft.start_time) if draft.start_time else start_default
            end = (
                parse_iso(draft.end_time)
                if draft.end_time
                else start + datetime.timedelta(hours=1)
            )
        except (ValueError, OverflowError) as exc:
            raise AppError(
                f"Invalid event time: {exc}", status=400, code="INVALID_EVENT_DATA"
            ) from exc
        if end <= start:
            raise AppError(
                "Event end time must be after its start time",
                status=400,
                code="INVALID_EVENT_DATA",
            )

        return CreateEventRequest(
            title=draft.title or "Untitled Event",
            description=draft.description or "",
            start_time=to_iso(start),
            end_time=to_iso(end),
            attendees=[a for a in draft.attendees or [] if isinstance(a, str) and "@" in a],
            location=draft.location or "",
            reminders=draft.reminders or DEFAULT_REMINDERS,
        )

    def create_event(self, draft: CreateEventRequest) -> CalendarEvent:
        prepared = self.prepare_draft(draft)
        return resolve_with_fallback(
            self._gateway.create_event(prepared), lambda: mock_created_event(prepared)
        )

    def create_events(
        self,
        drafts: Sequence[CreateEventRequest],
        granted: ScopeSet,
        source_agent: str | None = None,
    ) -> BatchResult:
        """Create *drafts* one by one.

        An empty batch returns immediately with no gateway calls.

        Raises
        ------
        AppError
            ``INSUFFICIENT_SCOPE`` (403) without ``calendar.write``.
        """
        logger.info(
            "Creating %d calendar events (source=%s, scopes=%s)",
            len(drafts),
            source_agent or "direct",
            ",".join(granted),
        )
        batch = BatchResult(total_requested=len(drafts))
        if not drafts:
            return batch

        require_scope(CALENDAR_WRITE, granted)

        for index, draft in enumerate(drafts):
            try:
                event = self.create_event(draft)
            except AppError as exc:
                logger.error("Failed to create event %d (%r): %s", index, draft.title, exc.message)
                batch.errors.append({"event": draft.to_wire(), "error": exc.message})
                continue
            batch.created.append(event)
            logger.info("Created calendar event %s (%s)", event.id, event.start_time)

        logger.info(
            "Calendar batch completed: requested=%d created=%d errors=%d",
            batch.total_requested,
            len(batch.created),
            len(batch.errors),
        )
        return batch

    # ------------------------------------------------------------------
    # Read / update / delete
    # ------------------------------------------------------------------

    def list_events(
        self,
        granted: ScopeSet,
        max_results: int = DEFAULT_LIST_RESULTS,
        time_min: str | None = None,
    ) -> list[CalendarEvent]:
        require_scope(CALENDAR_READ, granted, _READ_DENIED)
        max_results = max(1, min(max_results, MAX_LIST_RESULTS))
        return resolve_with_fallback(
            self._gateway.list_upcoming(max_results, time_min),
            lambda: mock_upcoming_events(max_results),
        )

    def get_event(self, event_id: str, granted: ScopeSet) -> CalendarEvent:
        require_scope(CALENDAR_READ, granted, _READ_DENIED)
        return resolve_with_fallback(
            self._gateway.get_event(event_id), lambda: mock_event(event_id)
        )

    def update_event(
        self, event_id: str, update: UpdateEventRequest, granted: ScopeSet
    ) -> CalendarEvent:
        require_scope(CALENDAR_WRITE, granted, _WRITE_DENIED)
        return resolve_with_fallback(
            self._gateway.update_event(event_id, update),
            lambda: mock_updated_event(event_id, update),
        )

    def delete_event(self, event_id: str, granted: ScopeSet) -> bool:
        """Delete an event.

        Destructive, so only an unconfigured gateway is mocked: a recognized
        "not found" raises ``EVENT_DELETE_FAILED`` (404) and any other
        failure raises ``CALENDAR_DELETE_FAILED`` (500).
        """
        require_scope(CALENDAR_WRITE, granted, _WRITE_DENIED)
        result = self._gateway.delete_event(event_id)
        if isinstance(result, Ok):
            return True
        error = result.error
        if error.classified is not None:
            raise error.classified
        if error.unconfigured:
            logger.info("Mock calendar event deletion of %s", event_id)
            return True
        raise AppError(
            "Failed to delete calendar event", status=500, code="CALENDAR_DELETE_FAILED"
        )


__all__ = ["BatchResult", "CalendarAgent", "DEFAULT_LIST_RESULTS", "MAX_LIST_RESULTS"]
