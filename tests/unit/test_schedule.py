from datetime import date, timedelta

import pytest

from ideacal.batch.schedule import dates_for_timeframe, expand_schedule
from ideacal.specs.common.enums import Timeframe
from ideacal.specs.common.errors import EmptyPillarSetError, InvalidTimeframeError

START = date(2024, 1, 1)


def test_week_is_seven_consecutive_days_with_round_robin_pillars() -> None:
    slots = expand_schedule("week", START, ["tips", "news"])

    assert [s.date for s in slots] == [START + timedelta(days=i) for i in range(7)]
    assert [s.pillar for s in slots] == ["tips", "news", "tips", "news", "tips", "news", "tips"]
    assert [s.index for s in slots] == list(range(7))


def test_month_is_thirty_consecutive_days() -> None:
    dates = dates_for_timeframe(Timeframe.MONTH, date(2024, 2, 1))

    assert len(dates) == 30
    assert dates[-1] == date(2024, 3, 1)  # leap year


def test_year_is_fifty_two_weekly_dates() -> None:
    slots = expand_schedule(Timeframe.YEAR, START, ["only"])

    assert len(slots) == 52
    assert slots[0].date == START
    assert all((b.date - a.date).days == 7 for a, b in zip(slots, slots[1:]))
    assert {s.pillar for s in slots} == {"only"}


def test_unknown_timeframe_is_rejected() -> None:
    with pytest.raises(InvalidTimeframeError) as info:
        expand_schedule("fortnight", START, ["tips"])
    assert info.value.code == "INVALID_TIMEFRAME"


def test_empty_pillars_are_rejected() -> None:
    with pytest.raises(EmptyPillarSetError):
        expand_schedule("week", START, [])


def test_expansion_is_pure() -> None:
    assert expand_schedule("month", START, ["a", "b", "c"]) == expand_schedule("month", START, ["a", "b", "c"])
