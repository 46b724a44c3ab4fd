"""SummarizationEngine — email summaries and action items via OpenAI.

Two chat-completion calls per message: one for a 2–3 sentence summary and
one for a JSON array of action items. Extracted items are validated and
normalized; unparseable JSON falls back to regex extraction. Without an API
key the engine runs in mock mode with an extractive summary and the regex
extractor, so the demo works offline.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from openai import OpenAI, OpenAIError

from inbox_scheduler.clock import parse_iso, to_iso, utcnow
from inbox_scheduler.errors import (
    LLM_EXTRACTION_RULES,
    LLM_SUMMARY_RULES,
    AppError,
    classify,
)
from inbox_scheduler.mail.models import EmailMessage
from inbox_scheduler.summary.models import ACTION_TYPES, PRIORITIES, ActionItem

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes emails concisely and professionally."
)
EXTRACTION_SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts actionable items from emails. "
    "Return valid JSON only."
)
EMPTY_SUMMARY = "Unable to generate summary for this email."

_REGEX_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"meeting.*?(?:tomorrow|next week|monday|tuesday|wednesday|thursday|friday)"),
    re.compile(
        r"deadline.*?(?:today|tomorrow|next week|monday|tuesday|wednesday|thursday|friday)"
    ),
    re.compile(r"follow.?up.*?(?:next week|monday|tuesday|wednesday|thursday|friday)"),
    re.compile(r"call.*?(?:today|tomorrow|next week)"),
    re.compile(r"review.*?(?:by|before|deadline)"),
)
_MAX_REGEX_ACTIONS = 3
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


class SummarizationEngine:
    """Summarizes messages and extracts calendar-worthy action items.

    Parameters
    ----------
    client:
        An ``openai.OpenAI`` client, or None for mock mode.
    model:
        Chat model name.
    """

    def __init__(self, client: OpenAI | None, model: str = "gpt-3.5-turbo") -> None:
        self._client = client
        self._model = model

    @classmethod
    def from_api_key(
        cls,
        api_key: str | None,
        model: str = "gpt-3.5-turbo",
        timeout: float = 30.0,
    ) -> "SummarizationEngine":
        if not api_key:
            logger.warning("OPENAI_API_KEY not provided, using mock summarization")
            return cls(None, model)
        return cls(OpenAI(api_key=api_key, timeout=timeout), model)

    @property
    def mock_mode(self) -> bool:
        return self._client is None

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    def summarize(self, message: EmailMessage) -> str:
        """Return a short natural-language summary of *message*.

        Raises
        ------
        AppError
            429 on rate limit or quota exhaustion, 500 otherwise.
        """
        logger.info("Summarizing email %s", message.id)
        if self._client is None:
            return extractive_summary(message)

        try:
            content = self._complete(
                SUMMARY_SYSTEM_PROMPT,
                build_summary_prompt(message),
                max_tokens=200,
                temperature=0.3,
            )
        except OpenAIError as exc:
            logger.error("Failed to summarize email %s: %s", message.id, exc)
            raise _llm_error(exc, LLM_SUMMARY_RULES, "Failed to generate email summary",
                             "AI_SUMMARIZATION_FAILED") from exc

        if not content:
            logger.warning("Empty summary generated for email %s", message.id)
            return EMPTY_SUMMARY
        return content

    # ------------------------------------------------------------------
    # Action items
    # ------------------------------------------------------------------

    def extract_action_items(self, message: EmailMessage) -> list[ActionItem]:
        """Return validated action items found in *message*.

        Raises
        ------
        AppError
            429 on rate limit, 500 on any other API failure.
        """
        logger.info("Extracting action items from email %s", message.id)
        if self._client is None:
            return extract_actions_with_regex(message)

        try:
            content = self._complete(
                EXTRACTION_SYSTEM_PROMPT,
                build_extraction_prompt(message),
                max_tokens=400,
                temperature=0.1,
            )
        except OpenAIError as exc:
            logger.error("Failed to extract action items from %s: %s", message.id, exc)
            raise _llm_error(exc, LLM_EXTRACTION_RULES, "Failed to extract action items",
                             "AI_EXTRACTION_FAILED") from exc

        if not content:
            logger.warning("Empty response from action extraction for %s", message.id)
            return []

        try:
            raw = json.loads(_FENCE_RE.sub("", content))
        except json.JSONDecodeError:
            logger.error("Failed to parse action items JSON for %s", message.id)
            logger.debug("Raw model response: %s", content)
            return extract_actions_with_regex(message)

        actions = validate_actions(raw, message)
        logger.info("Extracted %d action items from %s", len(actions), message.id)
        return actions

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _complete(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        if self._client is None:
            raise RuntimeError("OpenAI client is not configured")
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
            presence_penalty=0.1,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()


def _llm_error(exc: Exception, rules: tuple, message: str, code: str) -> AppError:
    text = f"{exc} {getattr(exc, 'code', '') or ''}"
    return classify(text, rules) or AppError(message, status=500, code=code)


# ------------------------------------------------------------------
# Prompts
# ------------------------------------------------------------------


def _truncate(body: str, limit: int) -> str:
    return f"{body[:limit]} {'...' if len(body) > limit else ''}"


def build_summary_prompt(message: EmailMessage) -> str:
    return (
        "Please summarize the following email in 2-3 clear, concise sentences. "
        "Focus on the main purpose and key information:\n\n"
        f"Subject: {message.subject}\n"
        f"From: {message.sender}\n"
        f"Date: {to_iso(message.received_at)}\n\n"
        f"Email Body:\n{_truncate(message.body, 2000)}\n\n"
        "Summary:"
    )


def build_extraction_prompt(message: EmailMessage) -> str:
    return (
        "Extract actionable items from the following email that should be added to a "
        "calendar.\nReturn ONLY a JSON array of objects with the structure: "
        "[{title, description, suggestedDate, priority, type, attendees}]\n\n"
        "Guidelines:\n"
        "- Only include items with clear deadlines, meetings, or follow-up actions\n"
        '- Use ISO 8601 format for suggestedDate (e.g., "2023-12-25T14:00:00Z")\n'
        '- Priority: "low", "medium", or "high"\n'
        '- Type: "meeting", "deadline", "followup", or "reminder"\n'
        "- If no specific date is mentioned, omit the suggestedDate field\n"
        "- Extract email addresses for attendees if mentioned\n\n"
        f"Subject: {message.subject}\n"
        f"From: {message.sender}\n"
        f"Date: {to_iso(message.received_at)}\n\n"
        f"Email Body:\n{_truncate(message.body, 1500)}\n\n"
        "JSON Array:"
    )


# ------------------------------------------------------------------
# Validation and fallbacks
# ------------------------------------------------------------------


def validate_actions(raw: Any, message: EmailMessage) -> list[ActionItem]:
    """Normalize a model-produced action list, dropping unusable entries."""
    if not isinstance(raw, list):
        return []

    actions: list[ActionItem] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("title"):
            continue
        title = str(item["title"]).strip()
        if not title:
            continue
        attendees = item.get("attendees")
        description = item.get("description")
        actions.append(
            ActionItem(
                id=f"{message.id}_action_{index}",
                title=title,
                description=str(description).strip() if description else None,
                suggested_date=validate_future_date(item.get("suggestedDate")),
                priority=item.get("priority") if item.get("priority") in PRIORITIES else "medium",
                type=item.get("type") if item.get("type") in ACTION_TYPES else "reminder",
                attendees=(
                    [a for a in attendees if isinstance(a, str) and "@" in a]
                    if isinstance(attendees, list)
                    else None
                ),
            )
        )
    return actions


def validate_future_date(value: Any) -> str | None:
    """Return *value* as a normalized ISO timestamp if it parses and is in the future."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = parse_iso(value)
    except ValueError:
        return None
    if parsed < utcnow():
        return None
    return to_iso(parsed)


def extract_actions_with_regex(message: EmailMessage) -> list[ActionItem]:
    """Pattern-match common action phrases; at most three items."""
    logger.info("Using regex-based action extraction for %s", message.id)
    text = f"{message.subject} {message.body}".lower()
    actions: list[ActionItem] = []
    for pattern_index, pattern in enumerate(_REGEX_PATTERNS):
        for match_index, match in enumerate(pattern.finditer(text)):
            actions.append(
                ActionItem(
                    id=f"{message.id}_regex_{pattern_index}_{match_index}",
                    title=match.group(0).strip(),
                    priority="medium",
                    type="reminder",
                )
            )
    return actions[:_MAX_REGEX_ACTIONS]


def extractive_summary(message: EmailMessage, max_sentences: int = 2) -> str:
    """First sentences of the body, used when no model is configured."""
    body = " ".join(message.body.split())
    if not body:
        return EMPTY_SUMMARY
    sentences = _SENTENCE_RE.split(body)
    summary = " ".join(sentences[:max_sentences]).strip()
    return f"{message.subject}: {summary}" if message.subject else summary


__all__ = [
    "EMPTY_SUMMARY",
    "SummarizationEngine",
    "build_extraction_prompt",
    "build_summary_prompt",
    "extract_actions_with_regex",
    "extractive_summary",
    "validate_actions",
    "validate_future_date",
]
