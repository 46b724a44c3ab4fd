"""Turning summarized messages into calendar event drafts."""
from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass, field

from inbox_scheduler.calendars.models import CreateEventRequest
from inbox_scheduler.clock import parse_iso, to_iso, utcnow
from inbox_scheduler.mail.models import EmailMessage
from inbox_scheduler.summary.models import ActionItem

DEFAULT_LEAD_TIME = datetime.timedelta(hours=24)
EVENT_DURATION = datetime.timedelta(hours=1)
# Latest start whose one-hour event still fits in a datetime.
LATEST_START = datetime.datetime.max.replace(tzinfo=datetime.timezone.utc) - EVENT_DURATION


@dataclass
class ProcessedEmail:
    """A message together with its summary and extracted action items."""

    message: EmailMessage
    summary: str
    actions: list[ActionItem] = field(default_factory=list)

    def to_summary_entry(self) -> dict[str, object]:
        return {
            "id": self.message.id,
            "summary": self.summary,
            "actionItems": [action.to_wire() for action in self.actions],
            "priority": "medium",
            "sentiment": "neutral",
        }


def draft_start_time(action: ActionItem, now: datetime.datetime) -> datetime.datetime:
    """The action's suggested date if it parses and lies in the future, else now + 24h.

    Dates too close to the end of the datetime range to hold a one-hour
    event are treated as unusable.
    """
    if action.suggested_date:
        try:
            suggested = parse_iso(action.suggested_date)
        except ValueError:
            suggested = None
        if suggested is not None and now < suggested <= LATEST_START:
            return suggested
    return now + DEFAULT_LEAD_TIME


def build_event_drafts(
    items: Iterable[ProcessedEmail],
    now: datetime.datetime | None = None,
) -> list[CreateEventRequest]:
    """Build one one-hour draft per action item, in message order."""
    now = now or utcnow()
    drafts: list[CreateEventRequest] = []
    for item in items:
        for action in item.actions:
            start = draft_start_time(action, now)
            drafts.append(
                CreateEventRequest(
                    title=action.title,
                    description=f"{item.summary}\n\nOriginal Email: {item.message.subject}",
                    start_time=to_iso(start),
                    end_time=to_iso(start + EVENT_DURATION),
                    attendees=list(action.attendees or []),
                )
            )
    return drafts


__all__ = ["ProcessedEmail", "build_event_drafts", "draft_start_time"]
