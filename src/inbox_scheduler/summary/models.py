"""Pydantic model for an extracted action item."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Priority = Literal["low", "medium", "high"]
ActionType = Literal["meeting", "deadline", "followup", "reminder"]

PRIORITIES: tuple[str, ...] = ("low", "medium", "high")
ACTION_TYPES: tuple[str, ...] = ("meeting", "deadline", "followup", "reminder")


class ActionItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    suggested_date: Optional[str] = Field(default=None, alias="suggestedDate")
    priority: Priority = "medium"
    type: ActionType = "reminder"
    attendees: Optional[list[str]] = None

    def to_wire(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


__all__ = ["ACTION_TYPES", "ActionItem", "ActionType", "PRIORITIES", "Priority"]
