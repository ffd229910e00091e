from datetime import date

import pytest

from conftest import FIXED_NOW
from ideacal.batch.correlator import (
    DEFAULT_COLOR,
    PALETTE,
    PersistenceCorrelator,
    color_for_pillar,
)
from ideacal.batch.schedule import Slot
from ideacal.batch.slugs import SlugAllocator
from ideacal.specs.common.enums import IdeaSource
from ideacal.specs.common.errors import CorrelationWriteFailure, SlugConflictError
from ideacal.specs.models.domain import IdeaPayload

PAYLOAD = IdeaPayload(title="Hello World", outline=["one", "two"], category="video", lengthBucket="60s")
SLOT = Slot(index=0, date=date(2024, 1, 1), pillar="tips")


def _correlator(store, **kwargs) -> PersistenceCorrelator:
    return PersistenceCorrelator(store, SlugAllocator(store.find_idea_by_slug), clock=lambda: FIXED_NOW, **kwargs)


def test_known_pillars_keep_their_colors() -> None:
    assert color_for_pillar("ways_of_action") == "#3b82f6"
    assert color_for_pillar("nurture") == "#dc2626"
    assert color_for_pillar("") == DEFAULT_COLOR
    assert color_for_pillar(None) == DEFAULT_COLOR


def test_other_pillars_map_to_a_stable_palette_color() -> None:
    color = color_for_pillar("tips")

    assert color in PALETTE
    assert color_for_pillar("tips") == color


def test_persist_writes_idea_then_linked_entry(store) -> None:
    correlation = _correlator(store).persist(PAYLOAD, SLOT, "u1", source=IdeaSource.FALLBACK)

    idea, entry = correlation.idea, correlation.entry
    assert correlation.scheduled
    assert idea.slug == "hello-world"
    assert idea.source is IdeaSource.FALLBACK
    assert idea.isPublic is False
    assert idea.createdAt == FIXED_NOW
    assert entry.ideaRef == idea.id
    assert entry.date == SLOT.date
    assert entry.title == "Hello World"
    assert entry.notes == "one\ntwo"
    assert entry.colorTag == color_for_pillar("tips")
    assert entry.completed is False
    assert store.get_idea(idea.id) is not None
    assert [e.id for e in store.list_calendar_entries("u1")] == [entry.id]


def test_slug_taken_by_another_batch_gets_suffix(store) -> None:
    first = _correlator(store).persist(PAYLOAD, SLOT, "u1")
    second = _correlator(store).persist(PAYLOAD, SLOT, "u2")

    assert first.idea.slug == "hello-world"
    assert second.idea.slug == "hello-world-1"


def test_write_time_conflict_is_reallocated(store) -> None:
    # The probe misses the existing idea, so only the store sees the clash.
    correlator = PersistenceCorrelator(store, SlugAllocator(lambda slug: None), clock=lambda: FIXED_NOW)
    _correlator(store).persist_idea(PAYLOAD, "u1")

    idea = correlator.persist_idea(PAYLOAD, "u2")

    assert idea.slug == "hello-world-1"


def test_conflicts_escalate_after_bounded_attempts(store) -> None:
    class _AlwaysTaken:
        def __init__(self, inner) -> None:
            self.inner = inner
            self.attempts = 0

        def __getattr__(self, name):
            return getattr(self.inner, name)

        def create_idea(self, idea):
            self.attempts += 1
            raise SlugConflictError(idea.slug)

    wrapped = _AlwaysTaken(store)
    correlator = PersistenceCorrelator(
        wrapped, SlugAllocator(store.find_idea_by_slug), clock=lambda: FIXED_NOW, max_slug_attempts=3
    )

    with pytest.raises(SlugConflictError):
        correlator.persist_idea(PAYLOAD, "u1")
    assert wrapped.attempts == 3


def test_calendar_failure_keeps_the_idea(store) -> None:
    class _BrokenCalendar:
        def __init__(self, inner) -> None:
            self.inner = inner

        def __getattr__(self, name):
            return getattr(self.inner, name)

        def create_calendar_entry(self, entry):
            raise RuntimeError("calendar down")

    correlation = _correlator(_BrokenCalendar(store)).persist(PAYLOAD, SLOT, "u1")

    assert not correlation.scheduled
    assert isinstance(correlation.failure, CorrelationWriteFailure)
    assert correlation.failure.idea_id == correlation.idea.id
    assert store.get_idea(correlation.idea.id) is not None
    assert store.list_calendar_entries("u1") == []
