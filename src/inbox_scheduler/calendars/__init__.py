"""Google Calendar access: event models, the REST gateway and mock events."""
from __future__ import annotations

from inbox_scheduler.calendars.gateway import CalendarGateway
from inbox_scheduler.calendars.models import (
    CalendarEvent,
    CreateEventRequest,
    Reminders,
    UpdateEventRequest,
)

__all__ = [
    "CalendarEvent",
    "CalendarGateway",
    "CreateEventRequest",
    "Reminders",
    "UpdateEventRequest",
]
