"""Write an idea and its calendar entry for one slot.

The two writes are independent: a calendar failure leaves the idea persisted
and is reported as a ``CorrelationWriteFailure`` on the result.
"""
from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ideacal.batch.schedule import Slot
from ideacal.batch.slugs import SlugAllocator
from ideacal.shared.idea_store import IdeaStore
from ideacal.shared.logging_utils import error as log_error, warning as log_warning
from ideacal.specs.common.datetime_utils import utc_now
from ideacal.specs.common.enums import IdeaSource
from ideacal.specs.common.errors import CorrelationWriteFailure, SlugConflictError
from ideacal.specs.models.domain import CalendarEntryDocument, IdeaDocument, IdeaPayload

DEFAULT_COLOR = "#4f46e5"  # indigo

# Pillars with an established color keep it.
PILLAR_COLORS: Dict[str, str] = {
    "ways_of_action": "#3b82f6",
    "awareness_expansion": "#9333ea",
    "narrative": "#d97706",
    "attractor": "#16a34a",
    "nurture": "#dc2626",
}

PALETTE: List[str] = [
    "#3b82f6",
    "#9333ea",
    "#d97706",
    "#16a34a",
    "#dc2626",
    "#0891b2",
    "#db2777",
    "#65a30d",
    "#ea580c",
    "#7c3aed",
    "#0d9488",
    "#ca8a04",
]

MAX_SLUG_ATTEMPTS = 10


def color_for_pillar(pillar: Optional[str]) -> str:
    """Same pillar, same color, in every process.

    Uses SHA-256 rather than ``hash()``, which is salted per process.
    """
    key = (pillar or "").strip()
    if not key:
        return DEFAULT_COLOR
    if key in PILLAR_COLORS:
        return PILLAR_COLORS[key]
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return PALETTE[int.from_bytes(digest[:4], "big") % len(PALETTE)]


@dataclass(frozen=True)
class Correlation:
    idea: IdeaDocument
    entry: Optional[CalendarEntryDocument] = None
    failure: Optional[CorrelationWriteFailure] = None

    @property
    def scheduled(self) -> bool:
        return self.entry is not None


class PersistenceCorrelator:
    def __init__(
        self,
        store: IdeaStore,
        slugs: SlugAllocator,
        *,
        clock: Callable[[], datetime] = utc_now,
        max_slug_attempts: int = MAX_SLUG_ATTEMPTS,
    ) -> None:
        self.store = store
        self.slugs = slugs
        self.clock = clock
        self.max_slug_attempts = max_slug_attempts

    def persist_idea(
        self,
        payload: IdeaPayload,
        owner_id: str,
        *,
        source: IdeaSource = IdeaSource.PROVIDER,
        batch_id: Optional[str] = None,
    ) -> IdeaDocument:
        """Create the idea, re-allocating the slug whenever the write loses a race.

        Raises:
            SlugConflictError: every allocated slug was taken at write time
        """
        last_conflict: Optional[SlugConflictError] = None
        for _ in range(self.max_slug_attempts):
            slug = self.slugs.allocate(payload.title)
            idea = IdeaDocument(
                id=uuid.uuid4().hex,
                ownerId=owner_id,
                slug=slug,
                title=payload.title,
                outline=list(payload.outline),
                midMention=payload.midMention,
                endMention=payload.endMention,
                thumbnailIdea=payload.thumbnailIdea,
                interactionQuestion=payload.interactionQuestion,
                category=payload.category,
                subcategory=payload.subcategory,
                lengthBucket=payload.lengthBucket,
                isPublic=False,
                source=source,
                createdAt=self.clock(),
            )
            try:
                return self.store.create_idea(idea)
            except SlugConflictError as exc:
                last_conflict = exc
                log_warning(batch_id, "correlate:slug_conflict", slug=slug)
        assert last_conflict is not None
        raise last_conflict

    def schedule(self, idea: IdeaDocument, slot: Slot) -> CalendarEntryDocument:
        entry = CalendarEntryDocument(
            id=uuid.uuid4().hex,
            ownerId=idea.ownerId,
            date=slot.date,
            title=idea.title,
            ideaRef=idea.id,
            completed=False,
            colorTag=color_for_pillar(slot.pillar),
            notes="\n".join(idea.outline),
            pillar=slot.pillar,
        )
        return self.store.create_calendar_entry(entry)

    def persist(
        self,
        payload: IdeaPayload,
        slot: Slot,
        owner_id: str,
        *,
        source: IdeaSource = IdeaSource.PROVIDER,
        batch_id: Optional[str] = None,
    ) -> Correlation:
        idea = self.persist_idea(payload, owner_id, source=source, batch_id=batch_id)
        try:
            entry = self.schedule(idea, slot)
        except Exception as exc:
            failure = CorrelationWriteFailure(idea.id, str(exc), details={"slot": slot.index})
            log_error(
                batch_id,
                "correlate:calendar_failed",
                slot=slot.index,
                ideaId=idea.id,
                error=str(exc),
            )
            return Correlation(idea=idea, failure=failure)
        return Correlation(idea=idea, entry=entry)
