"""Pydantic models for calendar events on the wire (camelCase JSON)."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ReminderOverride(_WireModel):
    method: Literal["email", "popup"]
    minutes: int = Field(ge=0)


class Reminders(_WireModel):
    use_default: bool = Field(default=False, alias="useDefault")
    overrides: list[ReminderOverride] = Field(default_factory=list)


DEFAULT_REMINDERS = Reminders(
    use_default=False,
    overrides=[
        ReminderOverride(method="email", minutes=24 * 60),
        ReminderOverride(method="popup", minutes=15),
    ],
)


class CreateEventRequest(_WireModel):
    """A proposed event (a calendar event draft).

    Every field is optional at the wire boundary; Agent B fills defaults
    per item before creating the event.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    attendees: Optional[list[object]] = None
    location: Optional[str] = None
    reminders: Optional[Reminders] = None


class UpdateEventRequest(_WireModel):
    """Partial update for ``PUT /api/events/{id}``."""

    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    attendees: Optional[list[str]] = None
    location: Optional[str] = None


class CalendarEvent(_WireModel):
    id: str
    title: str
    description: Optional[str] = None
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    attendees: Optional[list[str]] = None
    location: Optional[str] = None
    html_link: Optional[str] = Field(default=None, alias="htmlLink")
    status: Literal["confirmed", "tentative", "cancelled"] = "confirmed"


__all__ = [
    "CalendarEvent",
    "CreateEventRequest",
    "DEFAULT_REMINDERS",
    "ReminderOverride",
    "Reminders",
    "UpdateEventRequest",
]
