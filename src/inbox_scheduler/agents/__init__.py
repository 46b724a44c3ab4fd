"""The two agents: inbox processing (A) and scope-gated calendar operations (B)."""
from __future__ import annotations

from inbox_scheduler.agents.calendar_agent import BatchResult, CalendarAgent
from inbox_scheduler.agents.drafts import ProcessedEmail, build_event_drafts
from inbox_scheduler.agents.email_agent import EmailAgent

__all__ = ["BatchResult", "CalendarAgent", "EmailAgent", "ProcessedEmail", "build_event_drafts"]
