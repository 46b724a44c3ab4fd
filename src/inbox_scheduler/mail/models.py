"""Pydantic models for normalized email messages."""
from __future__ import annotations

import datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from inbox_scheduler.clock import to_iso


class MessageRef(BaseModel):
    """A listed message id, before its content is fetched."""

    id: str


class EmailMessage(BaseModel):
    """A normalized message record.

    ``receivedAt`` accepts any ISO 8601 value and is serialized back in UTC.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    subject: str
    sender: str = Field(alias="from")
    body: str
    thread_id: str = Field(alias="threadId")
    received_at: datetime.datetime = Field(alias="receivedAt")
    is_read: bool = Field(default=False, alias="isRead")
    labels: list[str] = Field(default_factory=list)

    @field_serializer("received_at")
    def _serialize_received_at(self, value: datetime.datetime) -> str:
        return to_iso(value)

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True)


__all__ = ["EmailMessage", "MessageRef"]
