"""Email summarization and action-item extraction.

Quick start
-----------
::

    from inbox_scheduler.summary import SummarizationEngine

    engine = SummarizationEngine.from_api_key(None)   # mock mode
    engine.summarize(message)
    engine.extract_action_items(message)
"""
from __future__ import annotations

from inbox_scheduler.summary.engine import SummarizationEngine
from inbox_scheduler.summary.models import ActionItem

__all__ = ["ActionItem", "SummarizationEngine"]
