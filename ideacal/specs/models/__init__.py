from __future__ import annotations

from .domain import (
    GenerationParams,
    IdeaPayload,
    IdeaDocument,
    CalendarEntryDocument,
    UserDocument,
    BatchJob,
    SlotReport,
    BatchResult,
)

__all__ = [
    "GenerationParams",
    "IdeaPayload",
    "IdeaDocument",
    "CalendarEntryDocument",
    "UserDocument",
    "BatchJob",
    "SlotReport",
    "BatchResult",
]
