"""Tier-based admission for batch jobs.

Everything the decision depends on is passed in; the gate holds only policy
settings, never counters.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ideacal.shared.logging_utils import info as log_info
from ideacal.shared.quota_service import QuotaService
from ideacal.specs.common.datetime_utils import local_midnight
from ideacal.specs.common.enums import Tier
from ideacal.specs.common.errors import DailyLimitReachedError
from ideacal.specs.models.domain import BatchJob

DEFAULT_PAID_SLOT_CEILING = 100
FREE_DAILY_LIMIT = 1


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class QuotaDecision:
    tier: Tier
    job: BatchJob
    slot_count: int
    generated_today: int


class QuotaGate:
    def __init__(
        self,
        quota_service: QuotaService,
        *,
        daily_limit_enabled: Optional[bool] = None,
        paid_slot_ceiling: Optional[int] = None,
    ) -> None:
        self.quota_service = quota_service
        self.daily_limit_enabled = (
            _env_flag("DAILY_LIMIT_ENABLED", True) if daily_limit_enabled is None else daily_limit_enabled
        )
        self.paid_slot_ceiling = (
            int(os.getenv("PAID_SLOT_CEILING", str(DEFAULT_PAID_SLOT_CEILING)))
            if paid_slot_ceiling is None
            else paid_slot_ceiling
        )

    def check(
        self,
        owner_id: str,
        job: BatchJob,
        now: datetime,
        requested_slots: int,
        batch_id: Optional[str] = None,
    ) -> QuotaDecision:
        """Decide how many slots ``owner_id`` may fill.

        Free tier collapses any timeframe to a single slot at ``job.startDate``
        and is rejected outright once it has generated today's idea, where
        "today" starts at local midnight of ``now``.

        Raises:
            DailyLimitReachedError: free-tier owner is over the daily limit
        """
        tier = self.quota_service.get_tier(owner_id)

        if tier in (Tier.PREMIUM, Tier.LIFETIME):
            slot_count = min(requested_slots, self.paid_slot_ceiling)
            log_info(batch_id, "quota:paid", ownerId=owner_id, tier=tier.value, slots=slot_count)
            return QuotaDecision(tier=tier, job=job, slot_count=slot_count, generated_today=0)

        generated_today = 0
        if self.daily_limit_enabled:
            generated_today = self.quota_service.count_generated_since(owner_id, local_midnight(now))
            if generated_today >= FREE_DAILY_LIMIT:
                raise DailyLimitReachedError(owner_id, generated_today)

        collapsed = job.model_copy(update={"tierCapOverride": 1})
        log_info(batch_id, "quota:free_collapsed", ownerId=owner_id, requested=requested_slots)
        return QuotaDecision(tier=tier, job=collapsed, slot_count=1, generated_today=generated_today)
