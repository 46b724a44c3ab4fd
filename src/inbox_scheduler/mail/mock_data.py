"""Deterministic mock inbox used when Gmail is unavailable."""
from __future__ import annotations

import datetime

from inbox_scheduler.clock import utcnow
from inbox_scheduler.mail.models import EmailMessage, MessageRef

_INBOX_LABELS = ["INBOX", "UNREAD", "CATEGORY_PRIMARY"]

# id -> (subject, from, body, thread id, hours ago)
_MOCK_MESSAGES: dict[str, tuple[str, str, str, str, int]] = {
    "mock_email_1": (
        "Project Review Meeting - Tomorrow 2PM",
        "alice@company.com (Alice Johnson)",
        "Hi Team,\n\nCan we schedule a project review meeting for tomorrow at 2 PM? "
        "We need to go over the Q4 deliverables and discuss next steps.\n\n"
        "Please confirm your attendance.\n\nBest,\nAlice",
        "thread_1",
        2,
    ),
    "mock_email_2": (
        "Deadline Reminder: Budget Report Due Friday",
        "finance@company.com (Finance Team)",
        "This is a reminder that the Q4 budget report is due this Friday, December 15th, "
        "by 5 PM.\n\nPlease submit your reports to the finance portal before the deadline."
        "\n\nIf you have any questions, contact the finance team.\n\nThank you,\nFinance Team",
        "thread_2",
        4,
    ),
    "mock_email_3": (
        "Follow-up: Client Presentation Feedback",
        "bob@company.com (Bob Wilson)",
        "Hi,\n\nI wanted to follow up on the client presentation from last week. The client "
        "had some feedback that we should address:\n\n1. Update the pricing model\n"
        "2. Include more case studies\n3. Schedule a follow-up call next week\n\n"
        "Let's discuss this in our next team meeting.\n\nThanks,\nBob",
        "thread_3",
        6,
    ),
    "mock_email_4": (
        "Welcome to the team!",
        "hr@company.com (HR Department)",
        "Welcome to the team! We're excited to have you on board.\n\nYour first day "
        "orientation is scheduled for Monday, December 18th at 9 AM in Conference Room A."
        "\n\nPlease bring your ID and any required documents.\n\nLooking forward to working "
        "with you!\n\nBest regards,\nHR Team",
        "thread_4",
        8,
    ),
    "mock_email_5": (
        "Monthly Team Standup - Schedule Change",
        "sarah@company.com (Sarah Davis)",
        "Hi everyone,\n\nJust a quick update that our monthly team standup has been moved "
        "from Wednesday to Thursday at 10 AM due to the holiday schedule.\n\nThe meeting "
        "will still be in the main conference room. Please update your calendars "
        "accordingly.\n\nSee you all there!\n\nSarah",
        "thread_5",
        10,
    ),
}


def mock_message_list(max_results: int) -> list[MessageRef]:
    return [MessageRef(id=message_id) for message_id in list(_MOCK_MESSAGES)[:max_results]]


def mock_message(message_id: str) -> EmailMessage:
    """Return the canned message for *message_id*, or a generic one."""
    now = utcnow()
    if message_id in _MOCK_MESSAGES:
        subject, sender, body, thread_id, hours_ago = _MOCK_MESSAGES[message_id]
        return EmailMessage(
            id=message_id,
            subject=subject,
            sender=sender,
            body=body,
            thread_id=thread_id,
            received_at=now - datetime.timedelta(hours=hours_ago),
            is_read=False,
            labels=list(_INBOX_LABELS),
        )
    return EmailMessage(
        id=message_id,
        subject="Mock Email Subject",
        sender="mock@example.com",
        body="This is a mock email body for demonstration purposes.",
        thread_id="mock_thread",
        received_at=now,
        is_read=False,
        labels=["INBOX", "UNREAD"],
    )
