"""Drive one batch: expand, admit, then generate and persist slot by slot.

Slots run strictly in order. A failing slot is logged and skipped; the batch
always returns what succeeded. Only bad input and the free-tier daily limit
abort the whole batch.
"""
from __future__ import annotations

import os
import time
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from ideacal.agents.base import IdeaGenerator
from ideacal.agents.idea_client import Exhausted, GenerationClient
from ideacal.agents.idea_prompts import title_template_for
from ideacal.agents.mock_ideas import MockFallbackGenerator
from ideacal.batch.correlator import PersistenceCorrelator
from ideacal.batch.quota import QuotaGate
from ideacal.batch.schedule import Slot, expand_schedule
from ideacal.batch.slugs import SlugAllocator
from ideacal.shared.idea_store import IdeaStore
from ideacal.shared.logging_utils import error as log_error, info as log_info, warning as log_warning
from ideacal.specs.common.datetime_utils import utc_now
from ideacal.specs.common.enums import IdeaSource, SlotStatus
from ideacal.specs.models.domain import BatchJob, BatchResult, IdeaPayload, SlotReport


def _default_batch_timeout() -> Optional[float]:
    raw = os.getenv("BATCH_TIMEOUT_SECONDS")
    if not raw:
        return None
    return float(raw)


def placeholder_outline(payload: IdeaPayload) -> List[str]:
    return [
        f"Introduce the topic: {payload.title}",
        "Walk through the main points",
        "Wrap up with a call to action",
    ]


class BatchOrchestrator:
    def __init__(
        self,
        store: IdeaStore,
        quota_gate: QuotaGate,
        generator: GenerationClient,
        *,
        fallback: Optional[IdeaGenerator] = None,
        clock: Callable[[], datetime] = utc_now,
        batch_timeout: Optional[float] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.quota_gate = quota_gate
        self.generator = generator
        self.fallback = fallback or MockFallbackGenerator()
        self.clock = clock
        self.batch_timeout = _default_batch_timeout() if batch_timeout is None else batch_timeout
        self.monotonic = monotonic

    def run(
        self,
        job: BatchJob,
        owner_id: str,
        *,
        now: Optional[datetime] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> BatchResult:
        """Run ``job`` for ``owner_id`` and return the aggregated result.

        ``should_stop`` is checked between slots; the slot in flight always
        finishes. When a batch timeout is set the same check applies to the
        deadline.

        Raises:
            InvalidTimeframeError: unknown timeframe
            EmptyPillarSetError: no pillars given
            DailyLimitReachedError: free-tier owner already generated today
        """
        batch_id = uuid.uuid4().hex
        now = now or self.clock()

        slots = expand_schedule(job.timeframe, job.startDate, job.pillars)
        decision = self.quota_gate.check(owner_id, job, now, len(slots), batch_id=batch_id)
        slots = slots[: decision.slot_count]
        job = decision.job
        log_info(
            batch_id,
            "batch:accepted",
            ownerId=owner_id,
            tier=decision.tier.value,
            timeframe=job.timeframe.value,
            slots=len(slots),
        )

        self.generator.with_batch(batch_id)
        self.fallback.with_batch(batch_id)
        correlator = PersistenceCorrelator(
            self.store,
            SlugAllocator(self.store.find_idea_by_slug),
            clock=self.clock,
        )
        deadline = self.monotonic() + self.batch_timeout if self.batch_timeout else None

        result = BatchResult(batchId=batch_id, requestedCount=len(slots), succeededCount=0)
        for slot in slots:
            if slot.index > 0 and self._should_stop(should_stop, deadline):
                log_warning(batch_id, "batch:stopped_early", completedSlots=slot.index, requested=len(slots))
                result.stoppedEarly = True
                break
            report = self._run_slot(job, slot, owner_id, correlator, result, batch_id)
            result.slots.append(report)

        log_info(
            batch_id,
            "batch:completed",
            requested=result.requestedCount,
            succeeded=result.succeededCount,
            stoppedEarly=result.stoppedEarly,
        )
        return result

    def _should_stop(self, should_stop: Optional[Callable[[], bool]], deadline: Optional[float]) -> bool:
        if should_stop is not None and should_stop():
            return True
        return deadline is not None and self.monotonic() >= deadline

    def _generate(self, job: BatchJob, slot: Slot, batch_id: str) -> Tuple[IdeaPayload, IdeaSource]:
        params = job.params_for(slot.pillar, title_template_for(slot.index))
        outcome = self.generator.generate(params)
        if isinstance(outcome, Exhausted):
            log_warning(batch_id, "slot:fallback", slot=slot.index, attempts=outcome.attempts, error=outcome.last_error)
            return self.fallback.run(params), IdeaSource.FALLBACK
        return outcome.payload, IdeaSource.PROVIDER

    def _run_slot(
        self,
        job: BatchJob,
        slot: Slot,
        owner_id: str,
        correlator: PersistenceCorrelator,
        result: BatchResult,
        batch_id: str,
    ) -> SlotReport:
        report = SlotReport(index=slot.index, date=slot.date, pillar=slot.pillar, status=SlotStatus.SKIPPED)
        try:
            payload, source = self._generate(job, slot, batch_id)
            if not payload.outline:
                payload = payload.model_copy(update={"outline": placeholder_outline(payload)})
            correlation = correlator.persist(payload, slot, owner_id, source=source, batch_id=batch_id)
        except Exception as exc:
            log_error(batch_id, "slot:skipped", slot=slot.index, error=f"{type(exc).__name__}: {exc}")
            report.error = str(exc)
            return report

        result.succeededCount += 1
        result.ideas.append(correlation.idea)
        report.source = source
        report.ideaId = correlation.idea.id
        report.slug = correlation.idea.slug
        if correlation.scheduled:
            result.entries.append(correlation.entry)
            report.status = SlotStatus.SCHEDULED
            report.calendarEntryId = correlation.entry.id
        else:
            report.status = SlotStatus.UNSCHEDULED
            report.error = str(correlation.failure)
        return report
