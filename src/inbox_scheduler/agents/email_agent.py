"""EmailAgent — Agent A: inbox processing and delegated event creation.

``process_emails`` runs the whole flow for one request, sequentially:

1. list recent messages, then for each message fetch, summarize and extract
   action items (per-message failures are collected, not raised);
2. exchange the caller's session token for a ``calendar.write`` credential
   bound to the calendar agent (failure aborts with ``DELEGATION_FAILED``);
3. submit one draft per action item to the calendar agent as a single batch.
"""
from __future__ import annotations

import datetime
import logging
from typing import Callable

from inbox_scheduler.agents.drafts import ProcessedEmail, build_event_drafts
from inbox_scheduler.clock import utcnow
from inbox_scheduler.delegation.client import DelegationClient
from inbox_scheduler.delegation.scopes import CALENDAR_AGENT_AUDIENCE, CALENDAR_WRITE
from inbox_scheduler.errors import AppError, delegation_failed
from inbox_scheduler.mail.gateway import MailGateway
from inbox_scheduler.mail.mock_data import mock_message, mock_message_list
from inbox_scheduler.mail.models import EmailMessage, MessageRef
from inbox_scheduler.result import resolve_with_fallback
from inbox_scheduler.summary.engine import SummarizationEngine

logger = logging.getLogger(__name__)

CALENDAR_CREATION_ERROR_ID = "calendar-creation"


class EmailAgent:
    """Agent A service.

    Parameters
    ----------
    mail:
        Gmail gateway.
    summarizer:
        Summary and action-item engine.
    delegation:
        Client for the credential provider and the calendar agent.
    clock:
        UTC time source, injectable for tests.
    """

    def __init__(
        self,
        mail: MailGateway,
        summarizer: SummarizationEngine,
        delegation: DelegationClient,
        clock: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._mail = mail
        self._summarizer = summarizer
        self._delegation = delegation
        self._clock = clock

    # ------------------------------------------------------------------
    # Mail access with fallback
    # ------------------------------------------------------------------

    def fetch_recent(self, max_results: int) -> list[MessageRef]:
        return resolve_with_fallback(
            self._mail.list_recent(max_results), lambda: mock_message_list(max_results)
        )

    def fetch_message(self, message_id: str) -> EmailMessage:
        return resolve_with_fallback(
            self._mail.get_message(message_id), lambda: mock_message(message_id)
        )

    def analyze(self, message: EmailMessage) -> ProcessedEmail:
        summary = self._summarizer.summarize(message)
        actions = self._summarizer.extract_action_items(message)
        return ProcessedEmail(message=message, summary=summary, actions=actions)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def process_emails(self, session_token: str, max_results: int = 5) -> dict[str, object]:
        """Process the inbox and create calendar events for extracted actions.

        Raises
        ------
        AppError
            ``DELEGATION_FAILED`` (403) if no delegated credential could be
            obtained; typed mail errors (e.g. ``GMAIL_AUTH_EXPIRED``) from
            listing.
        """
        logger.info("Starting email processing (maxResults=%d)", max_results)
        refs = self.fetch_recent(max_results)
        logger.info("Fetched %d email messages", len(refs))

        items: list[ProcessedEmail] = []
        errors: list[dict[str, str]] = []
        for ref in refs:
            try:
                item = self.analyze(self.fetch_message(ref.id))
            except AppError as exc:
                logger.error("Failed to process email %s: %s", ref.id, exc.message)
                errors.append({"emailId": ref.id, "error": exc.message})
                continue
            items.append(item)
            logger.info("Processed email %s with %d action items", ref.id, len(item.actions))

        credential = self._delegation.request_delegated_token(
            session_token, CALENDAR_AGENT_AUDIENCE, [CALENDAR_WRITE]
        )
        if credential is None:
            raise delegation_failed()
        logger.info("Obtained delegated credential for calendar operations")

        drafts = build_event_drafts(items, now=self._clock())
        created: list[object] = []
        if drafts:
            try:
                result = self._delegation.create_events(credential, drafts)
            except AppError as exc:
                logger.error("Failed to create calendar events: %s", exc.message)
                errors.append({"emailId": CALENDAR_CREATION_ERROR_ID, "error": exc.message})
            else:
                created = list(result.get("created") or [])
                for item_error in result.get("errors") or []:
                    message = item_error.get("error") if isinstance(item_error, dict) else None
                    errors.append(
                        {
                            "emailId": CALENDAR_CREATION_ERROR_ID,
                            "error": str(message or "Calendar creation failed"),
                        }
                    )
                logger.info("Created %d of %d calendar events", len(created), len(drafts))

        logger.info(
            "Email processing completed: processed=%d events=%d errors=%d",
            len(items),
            len(created),
            len(errors),
        )
        return {
            "processed": len(items),
            "summaries": [item.to_summary_entry() for item in items],
            "eventsCreated": created,
            "errors": errors,
        }

    def extract_tasks(self, message: EmailMessage) -> dict[str, object]:
        logger.info("Extracting tasks from email %s", message.id)
        item = self.analyze(message)
        return {
            "summary": item.summary,
            "actions": [action.to_wire() for action in item.actions],
            "metadata": {
                "emailId": message.id,
                "processed": True,
                "actionCount": len(item.actions),
            },
        }

    def email_summary(self, email_id: str) -> dict[str, object]:
        logger.info("Getting summary for email %s", email_id)
        item = self.analyze(self.fetch_message(email_id))
        return {
            "email": item.message.to_wire(),
            "summary": item.summary,
            "actions": [action.to_wire() for action in item.actions],
        }


__all__ = ["CALENDAR_CREATION_ERROR_ID", "EmailAgent"]
