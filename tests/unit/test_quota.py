from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_job
from ideacal.batch.quota import QuotaGate
from ideacal.specs.common.enums import Tier, Timeframe
from ideacal.specs.common.errors import DailyLimitReachedError

NOW = datetime(2024, 1, 1, 15, 0, tzinfo=timezone(timedelta(hours=-5)))


class _Quota:
    def __init__(self, tier: Tier, generated: int = 0) -> None:
        self.tier = tier
        self.generated = generated
        self.since = []

    def get_tier(self, owner_id: str) -> Tier:
        return self.tier

    def count_generated_since(self, owner_id: str, since: datetime) -> int:
        self.since.append(since)
        return self.generated


@pytest.mark.parametrize("tier", [Tier.PREMIUM, Tier.LIFETIME])
def test_paid_tiers_keep_the_job(tier) -> None:
    quota = _Quota(tier, generated=50)
    job = make_job(Timeframe.YEAR)

    decision = QuotaGate(quota).check("owner", job, NOW, 52)

    assert decision.slot_count == 52
    assert decision.job is job
    assert decision.job.tierCapOverride is None
    assert quota.since == []


def test_paid_slot_count_is_capped() -> None:
    decision = QuotaGate(_Quota(Tier.PREMIUM), paid_slot_ceiling=10).check("owner", make_job(), NOW, 30)

    assert decision.slot_count == 10


def test_free_tier_collapses_to_one_slot() -> None:
    job = make_job(Timeframe.MONTH)

    decision = QuotaGate(_Quota(Tier.FREE), daily_limit_enabled=True).check("owner", job, NOW, 30)

    assert decision.slot_count == 1
    assert decision.job.tierCapOverride == 1
    assert decision.job.startDate == job.startDate
    assert job.tierCapOverride is None


def test_free_tier_counts_from_local_midnight() -> None:
    quota = _Quota(Tier.FREE)

    QuotaGate(quota, daily_limit_enabled=True).check("owner", make_job(), NOW, 7)

    assert quota.since == [datetime(2024, 1, 1, 0, 0, tzinfo=NOW.tzinfo)]


def test_free_tier_over_daily_limit_is_rejected() -> None:
    gate = QuotaGate(_Quota(Tier.FREE, generated=1), daily_limit_enabled=True)

    with pytest.raises(DailyLimitReachedError) as info:
        gate.check("owner", make_job(), NOW, 7)

    assert info.value.code == "DAILY_LIMIT_REACHED"
    assert info.value.details == {"ownerId": "owner", "generatedToday": 1}


def test_daily_limit_can_be_disabled() -> None:
    quota = _Quota(Tier.FREE, generated=5)

    decision = QuotaGate(quota, daily_limit_enabled=False).check("owner", make_job(), NOW, 7)

    assert decision.slot_count == 1
    assert quota.since == []


def test_daily_limit_defaults_to_enabled(monkeypatch) -> None:
    monkeypatch.delenv("DAILY_LIMIT_ENABLED", raising=False)

    assert QuotaGate(_Quota(Tier.FREE)).daily_limit_enabled is True


def test_daily_limit_env_flag(monkeypatch) -> None:
    monkeypatch.setenv("DAILY_LIMIT_ENABLED", "false")

    assert QuotaGate(_Quota(Tier.FREE)).daily_limit_enabled is False


def test_explicit_zero_ceiling_is_respected(monkeypatch) -> None:
    monkeypatch.setenv("PAID_SLOT_CEILING", "50")

    assert QuotaGate(_Quota(Tier.PREMIUM), paid_slot_ceiling=0).check("owner", make_job(), NOW, 7).slot_count == 0
    assert QuotaGate(_Quota(Tier.PREMIUM)).paid_slot_ceiling == 50
