"""Shared fixtures for the idea calendar tests."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Callable, List, Optional, Sequence, Union

import pytest

from ideacal.agents.idea_client import GenerationClient
from ideacal.batch.orchestrator import BatchOrchestrator
from ideacal.batch.quota import QuotaGate
from ideacal.shared.idea_store import FileIdeaStore
from ideacal.shared.quota_service import StoreQuotaService
from ideacal.shared.retry_utils import RetryPolicy
from ideacal.specs.common.enums import Timeframe
from ideacal.specs.common.errors import ProviderTransientError
from ideacal.specs.models.domain import BatchJob, UserDocument

FIXED_NOW = datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)


def idea_json(title: str = "5 Editing Tricks That Save You HOURS", **overrides) -> str:
    body = {
        "title": title,
        "outline": ["Hook", "Trick one", "Trick two"],
        "midMention": "Mid mention",
        "endMention": "End mention",
        "thumbnailIdea": "Big red arrow",
        "interactionQuestion": "Which trick will you try?",
        "category": "video",
        "subcategory": "editing",
        "lengthBucket": "60s",
    }
    body.update(overrides)
    return json.dumps(body)


class FakeProvider:
    """Replays scripted responses; an exception in the script is raised instead."""

    def __init__(self, script: Optional[Sequence[Union[str, Exception]]] = None, default: Optional[str] = None) -> None:
        self.script: List[Union[str, Exception]] = list(script or [])
        self.default = default
        self.calls: List[dict] = []

    def complete(self, *, prompt, model, temperature, max_output_tokens, timeout) -> str:
        self.calls.append({"prompt": prompt, "model": model, "timeout": timeout})
        if self.script:
            item = self.script.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            item = idea_json()
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def models(self) -> List[str]:
        return [c["model"] for c in self.calls]


class FailingProvider(FakeProvider):
    def complete(self, **kwargs) -> str:
        self.calls.append(kwargs)
        raise ProviderTransientError("simulated outage")


@pytest.fixture
def store(tmp_path) -> FileIdeaStore:
    return FileIdeaStore(tmp_path / "ideas.json")


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def make_client(sleeps) -> Callable[..., GenerationClient]:
    def _make(provider, **kwargs) -> GenerationClient:
        kwargs.setdefault("primary_model", "primary")
        kwargs.setdefault("secondary_model", "secondary")
        kwargs.setdefault("policy", RetryPolicy())
        return GenerationClient(provider, sleep=sleeps.append, **kwargs)

    return _make


@pytest.fixture
def make_orchestrator(store, make_client) -> Callable[..., BatchOrchestrator]:
    def _make(provider=None, **kwargs) -> BatchOrchestrator:
        provider = provider if provider is not None else FakeProvider()
        gate = QuotaGate(StoreQuotaService(store), daily_limit_enabled=kwargs.pop("daily_limit_enabled", True))
        return BatchOrchestrator(
            store,
            gate,
            make_client(provider),
            clock=lambda: FIXED_NOW,
            batch_timeout=kwargs.pop("batch_timeout", 0),
            **kwargs,
        )

    return _make


@pytest.fixture
def premium_owner(store) -> str:
    store.upsert_user(UserDocument(id="owner-premium", tier="premium"))
    return "owner-premium"


@pytest.fixture
def free_owner(store) -> str:
    store.upsert_user(UserDocument(id="owner-free", tier="free"))
    return "owner-free"


def make_job(timeframe: Timeframe = Timeframe.WEEK, pillars=("tips", "news"), **overrides) -> BatchJob:
    fields = dict(
        timeframe=timeframe,
        startDate=date(2024, 1, 1),
        pillars=list(pillars),
        category="video",
        subcategory="editing",
        lengthBucket="60s",
    )
    fields.update(overrides)
    return BatchJob(**fields)
