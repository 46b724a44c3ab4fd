"""CalendarGateway — Google Calendar REST CRUD returning Results.

Also provides the deterministic mock events the calendar agent substitutes
when the gateway is unconfigured or fails in an unrecognized way.
"""
from __future__ import annotations

import datetime
import logging
import secrets
import string
import time
import urllib.parse
from typing import Any

import httpx

from inbox_scheduler.calendars.models import CalendarEvent, CreateEventRequest, UpdateEventRequest
from inbox_scheduler.clock import to_iso, utcnow
from inbox_scheduler.errors import (
    CALENDAR_CREATE_RULES,
    CALENDAR_DELETE_RULES,
    CALENDAR_GET_RULES,
    CALENDAR_UPDATE_RULES,
)
from inbox_scheduler.google_api import GoogleApiClient
from inbox_scheduler.result import Err, Ok, ProviderError, Result

logger = logging.getLogger(__name__)

CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3/calendars/primary"
EVENT_LINK_URL = "https://calendar.google.com/calendar/event?eid="
MOCK_PREFIX = "mock_"
MOCK_DESCRIPTION = "This is a mock calendar event for demonstration purposes."


class CalendarGateway:
    """Google Calendar gateway for the primary calendar.

    Parameters
    ----------
    access_token:
        OAuth access token with calendar scope. None leaves the gateway
        unconfigured.
    http_client:
        Shared ``httpx.Client``.
    source_url:
        URL recorded as the event ``source``.
    base_url:
        Calendar API base.
    """

    def __init__(
        self,
        access_token: str | None,
        http_client: httpx.Client,
        source_url: str = "http://localhost:5173",
        base_url: str = CALENDAR_API_URL,
    ) -> None:
        self._api = GoogleApiClient("calendar", access_token, http_client)
        self._source_url = source_url
        self._base_url = base_url.rstrip("/")
        if not self._api.configured:
            logger.warning("Calendar credentials not provided, using mock calendar data")

    @property
    def configured(self) -> bool:
        return self._api.configured

    def _event_url(self, event_id: str) -> str:
        return f"{self._base_url}/events/{urllib.parse.quote(event_id, safe='')}"

    def create_event(self, draft: CreateEventRequest) -> Result[CalendarEvent]:
        logger.info("Creating calendar event %r", draft.title)
        resource: dict[str, Any] = {
            "summary": draft.title,
            "description": draft.description,
            "location": draft.location,
            "start": {"dateTime": draft.start_time, "timeZone": "UTC"},
            "end": {"dateTime": draft.end_time, "timeZone": "UTC"},
            "attendees": [{"email": a} for a in draft.attendees or []],
            "source": {"title": "Email Calendar Agent", "url": self._source_url},
        }
        if draft.reminders is not None:
            resource["reminders"] = draft.reminders.to_wire()
        resource = {key: value for key, value in resource.items() if value is not None}

        result = self._api.request(
            "create_event",
            "POST",
            f"{self._base_url}/events",
            rules=CALENDAR_CREATE_RULES,
            params={"sendUpdates": "all"},
            json=resource,
        )
        if isinstance(result, Err):
            return result
        if not isinstance(result.value, dict) or not result.value.get("id"):
            return Err(
                ProviderError(
                    provider="calendar",
                    operation="create_event",
                    message="Failed to create calendar event - no ID returned",
                )
            )
        event = map_google_event(result.value)
        logger.info("Created calendar event %s", event.id)
        return Ok(event)

    def list_upcoming(self, max_results: int = 10, time_min: str | None = None) -> Result[list[CalendarEvent]]:
        logger.info("Listing upcoming calendar events (maxResults=%d)", max_results)
        result = self._api.request(
            "list_upcoming",
            "GET",
            f"{self._base_url}/events",
            params={
                "timeMin": time_min or to_iso(utcnow()),
                "maxResults": max_results,
                "singleEvents": "true",
                "orderBy": "startTime",
            },
        )
        if isinstance(result, Err):
            return result
        items = (result.value or {}).get("items") or []
        events = [
            map_google_event(item)
            for item in items
            if isinstance(item, dict) and item.get("id") and item.get("summary")
        ]
        return Ok(events)

    def get_event(self, event_id: str) -> Result[CalendarEvent]:
        result = self._api.request(
            "get_event", "GET", self._event_url(event_id), rules=CALENDAR_GET_RULES
        )
        if isinstance(result, Err):
            return result
        return Ok(map_google_event(result.value or {"id": event_id}))

    def update_event(self, event_id: str, update: UpdateEventRequest) -> Result[CalendarEvent]:
        """Read-modify-write update of the fields present in *update*."""
        url = self._event_url(event_id)
        existing = self._api.request("update_event", "GET", url, rules=CALENDAR_UPDATE_RULES)
        if isinstance(existing, Err):
            return existing

        resource = dict(existing.value or {})
        if update.title is not None:
            resource["summary"] = update.title
        if update.description is not None:
            resource["description"] = update.description
        if update.location is not None:
            resource["location"] = update.location
        if update.start_time:
            resource["start"] = {"dateTime": update.start_time, "timeZone": "UTC"}
        if update.end_time:
            resource["end"] = {"dateTime": update.end_time, "timeZone": "UTC"}
        if update.attendees is not None:
            resource["attendees"] = [{"email": a} for a in update.attendees]

        result = self._api.request(
            "update_event", "PUT", url, rules=CALENDAR_UPDATE_RULES, json=resource
        )
        if isinstance(result, Err):
            return result
        return Ok(map_google_event(result.value or resource))

    def delete_event(self, event_id: str) -> Result[bool]:
        result = self._api.request(
            "delete_event",
            "DELETE",
            self._event_url(event_id),
            rules=CALENDAR_DELETE_RULES,
        )
        if isinstance(result, Err):
            return result
        return Ok(True)


def map_google_event(item: dict[str, Any]) -> CalendarEvent:
    """Convert a Google Calendar event resource to a :class:`CalendarEvent`."""
    now = to_iso(utcnow())
    start = item.get("start") or {}
    end = item.get("end") or {}
    status = item.get("status")
    attendees = [a["email"] for a in item.get("attendees") or [] if isinstance(a, dict) and a.get("email")]
    return CalendarEvent(
        id=str(item["id"]),
        title=item.get("summary") or "Untitled Event",
        description=item.get("description"),
        start_time=start.get("dateTime") or start.get("date") or now,
        end_time=end.get("dateTime") or end.get("date") or now,
        attendees=attendees or None,
        location=item.get("location"),
        html_link=item.get("htmlLink"),
        status=status if status in ("confirmed", "tentative", "cancelled") else "confirmed",
    )


# ------------------------------------------------------------------
# Mock events
# ------------------------------------------------------------------

_ALPHABET = string.ascii_lowercase + string.digits


def mock_created_event(draft: CreateEventRequest) -> CalendarEvent:
    """Echo *draft* back as a confirmed event with a ``mock_`` id."""
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    mock_id = f"{MOCK_PREFIX}{int(time.time() * 1000)}_{suffix}"
    return CalendarEvent(
        id=mock_id,
        title=draft.title or "Untitled Event",
        description=draft.description,
        start_time=draft.start_time or to_iso(utcnow()),
        end_time=draft.end_time or to_iso(utcnow()),
        attendees=[a for a in draft.attendees or [] if isinstance(a, str)] or None,
        location=draft.location,
        html_link=f"{EVENT_LINK_URL}{mock_id}",
        status="confirmed",
    )


def mock_upcoming_events(max_results: int) -> list[CalendarEvent]:
    """Up to five daily one-hour events starting tomorrow."""
    now = utcnow()
    events: list[CalendarEvent] = []
    for index in range(min(max_results, 5)):
        start = now + datetime.timedelta(days=index + 1)
        event_id = f"mock_event_{index + 1}"
        events.append(
            CalendarEvent(
                id=event_id,
                title=f"Mock Event {index + 1}",
                description=MOCK_DESCRIPTION,
                start_time=to_iso(start),
                end_time=to_iso(start + datetime.timedelta(hours=1)),
                html_link=f"{EVENT_LINK_URL}{event_id}",
                status="confirmed",
            )
        )
    return events


def mock_event(event_id: str) -> CalendarEvent:
    start = utcnow() + datetime.timedelta(days=1)
    return CalendarEvent(
        id=event_id,
        title=f"Mock Event: {event_id}",
        description=MOCK_DESCRIPTION,
        start_time=to_iso(start),
        end_time=to_iso(start + datetime.timedelta(hours=1)),
        html_link=f"{EVENT_LINK_URL}{event_id}",
        status="confirmed",
    )


def mock_updated_event(event_id: str, update: UpdateEventRequest) -> CalendarEvent:
    base = mock_event(event_id)
    return base.model_copy(
        update={
            "title": update.title or base.title,
            "description": update.description or base.description,
            "start_time": update.start_time or base.start_time,
            "end_time": update.end_time or base.end_time,
            "attendees": update.attendees or base.attendees,
            "location": update.location or base.location,
        }
    )


__all__ = [
    "CalendarGateway",
    "MOCK_PREFIX",
    "map_google_event",
    "mock_created_event",
    "mock_event",
    "mock_updated_event",
    "mock_upcoming_events",
]
