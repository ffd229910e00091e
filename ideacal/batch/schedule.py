"""Expand a timeframe into dated, pillar-tagged slots."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Sequence, Tuple, Union

from ideacal.specs.common.enums import Timeframe
from ideacal.specs.common.errors import EmptyPillarSetError, InvalidTimeframeError


# timeframe -> (slot count, stride in days); month is a fixed 30-day window
_CADENCE: Dict[Timeframe, Tuple[int, int]] = {
    Timeframe.WEEK: (7, 1),
    Timeframe.MONTH: (30, 1),
    Timeframe.YEAR: (52, 7),
}


@dataclass(frozen=True)
class Slot:
    index: int
    date: date
    pillar: str


def _coerce_timeframe(timeframe: Union[Timeframe, str]) -> Timeframe:
    try:
        return Timeframe(timeframe)
    except ValueError:
        raise InvalidTimeframeError(timeframe) from None


def dates_for_timeframe(timeframe: Union[Timeframe, str], start_date: date) -> List[date]:
    count, stride = _CADENCE[_coerce_timeframe(timeframe)]
    return [start_date + timedelta(days=i * stride) for i in range(count)]


def expand_schedule(
    timeframe: Union[Timeframe, str],
    start_date: date,
    pillars: Sequence[str],
) -> List[Slot]:
    """Return the ordered slots for a batch.

    Slot ``i`` gets ``pillars[i % len(pillars)]``.
    """
    dates = dates_for_timeframe(timeframe, start_date)
    if not pillars:
        raise EmptyPillarSetError()
    return [Slot(index=i, date=d, pillar=pillars[i % len(pillars)]) for i, d in enumerate(dates)]
