"""Gmail access: message models, the REST gateway and canned mock data."""
from __future__ import annotations

from inbox_scheduler.mail.gateway import MailGateway, parse_gmail_message
from inbox_scheduler.mail.models import EmailMessage, MessageRef

__all__ = ["EmailMessage", "MailGateway", "MessageRef", "parse_gmail_message"]
