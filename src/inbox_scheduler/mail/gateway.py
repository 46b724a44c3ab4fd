"""MailGateway — Gmail REST access returning Results.

Lists unread primary-inbox messages and fetches full messages, normalizing
Gmail's MIME tree into :class:`~inbox_scheduler.mail.models.EmailMessage`.
The gateway does not substitute mock data itself; see
:mod:`inbox_scheduler.agents.email_agent` for the fallback policy.
"""
from __future__ import annotations

import base64
import binascii
import email.utils
import html
import logging
import re
import urllib.parse
from typing import Any

import httpx

from inbox_scheduler.clock import utcnow
from inbox_scheduler.errors import MAIL_GET_RULES, MAIL_LIST_RULES
from inbox_scheduler.google_api import GoogleApiClient
from inbox_scheduler.mail.models import EmailMessage, MessageRef
from inbox_scheduler.result import Err, Ok, Result

logger = logging.getLogger(__name__)

GMAIL_API_URL = "https://gmail.googleapis.com/gmail/v1/users/me"
DEFAULT_QUERY = "is:unread category:primary"

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


class MailGateway:
    """Gmail gateway.

    Parameters
    ----------
    access_token:
        OAuth access token with ``gmail.readonly``. None leaves the gateway
        unconfigured: every call returns an unconfigured ``Err``.
    http_client:
        Shared ``httpx.Client``.
    base_url:
        Gmail API base for the authenticated user.
    query:
        Gmail search query used when listing.
    """

    def __init__(
        self,
        access_token: str | None,
        http_client: httpx.Client,
        base_url: str = GMAIL_API_URL,
        query: str = DEFAULT_QUERY,
    ) -> None:
        self._api = GoogleApiClient("gmail", access_token, http_client)
        self._base_url = base_url.rstrip("/")
        self._query = query
        if not self._api.configured:
            logger.warning("Gmail credentials not provided, using mock Gmail data")

    @property
    def configured(self) -> bool:
        return self._api.configured

    def list_recent(self, max_results: int = 10) -> Result[list[MessageRef]]:
        logger.info("Fetching recent emails (maxResults=%d)", max_results)
        result = self._api.request(
            "list_recent",
            "GET",
            f"{self._base_url}/messages",
            rules=MAIL_LIST_RULES,
            params={"maxResults": max_results, "q": self._query},
        )
        if isinstance(result, Err):
            return result
        messages = (result.value or {}).get("messages") or []
        refs = [MessageRef(id=str(m["id"])) for m in messages if isinstance(m, dict) and m.get("id")]
        logger.info("Found %d recent emails", len(refs))
        return Ok(refs)

    def get_message(self, message_id: str) -> Result[EmailMessage]:
        logger.info("Fetching email content for %s", message_id)
        result = self._api.request(
            "get_message",
            "GET",
            f"{self._base_url}/messages/{urllib.parse.quote(message_id, safe='')}",
            rules=MAIL_GET_RULES,
            params={"format": "full"},
        )
        if isinstance(result, Err):
            return result
        message = parse_gmail_message(result.value or {})
        logger.info("Parsed email %s", message.id)
        return Ok(message)


# ------------------------------------------------------------------
# Gmail message parsing
# ------------------------------------------------------------------


def parse_gmail_message(message: dict[str, Any]) -> EmailMessage:
    """Normalize a Gmail ``users.messages.get`` (format=full) resource."""
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []

    def header(name: str) -> str:
        for item in headers:
            if str(item.get("name", "")).lower() == name.lower():
                return str(item.get("value") or "")
        return ""

    received_at = utcnow()
    date_header = header("Date")
    if date_header:
        try:
            received_at = email.utils.parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            logger.debug("Unparseable Date header %r", date_header)

    labels = [str(label) for label in message.get("labelIds") or []]
    return EmailMessage(
        id=str(message.get("id", "")),
        subject=header("Subject"),
        sender=header("From"),
        body=extract_body(payload),
        thread_id=str(message.get("threadId", "")),
        received_at=received_at,
        is_read="UNREAD" not in labels,
        labels=labels,
    )


def extract_body(part: dict[str, Any] | None) -> str:
    """Return the best text body of a MIME part tree.

    Preference: a direct ``text/plain`` child, then a direct ``text/html``
    child (tags stripped), then the first non-empty nested part, then the
    part's own body.
    """
    if not part:
        return ""

    children = part.get("parts") or []
    if children:
        for child in children:
            data = (child.get("body") or {}).get("data")
            if child.get("mimeType") == "text/plain" and data:
                return decode_base64url(data)
        for child in children:
            data = (child.get("body") or {}).get("data")
            if child.get("mimeType") == "text/html" and data:
                return strip_html(decode_base64url(data))
        for child in children:
            nested = extract_body(child)
            if nested:
                return nested

    data = (part.get("body") or {}).get("data")
    if data:
        decoded = decode_base64url(data)
        if part.get("mimeType") == "text/html":
            return strip_html(decoded)
        return decoded
    return ""


def decode_base64url(data: str) -> str:
    try:
        return base64.urlsafe_b64decode(data + "=" * (-len(data) % 4)).decode("utf-8", "replace")
    except (binascii.Error, ValueError):
        logger.error("Failed to decode base64 email body")
        return ""


def strip_html(markup: str) -> str:
    text = _TAG_RE.sub("", markup)
    text = html.unescape(text).replace("\xa0", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


__all__ = [
    "MailGateway",
    "decode_base64url",
    "extract_body",
    "parse_gmail_message",
    "strip_html",
]
