"""Summing of worked time over a query range.

Intervals are clipped to the range and aggregated per calendar day. For each
day the break time is the part of the day's span (first start to last end)
that was not worked. When that break is shorter than the configured minimum
daily break, the shortfall is reported as insufficient_break. The shortfall
is advisory: worked time is never reduced here, the caller decides whether to
deduct it (see Aggregate.net_worked).
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo

from .intervals import Interval
from .utils import localize

logger = logging.getLogger(__name__)

ZERO = timedelta(0)


@dataclass
class DayAggregate:
    """Worked time and break accounting for one calendar day."""

    day: date
    start: datetime  # Window start within the day
    end: datetime  # Window end within the day
    worked: timedelta = ZERO
    span: timedelta = ZERO
    insufficient_break: timedelta = ZERO

    @property
    def break_time(self) -> timedelta:
        return self.span - self.worked


@dataclass
class Aggregate:
    """Aggregated worked time for a range."""

    worked: timedelta = ZERO
    insufficient_break: timedelta = ZERO
    days: list[DayAggregate] = field(default_factory=list)

    @property
    def net_worked(self) -> timedelta:
        """Worked time with the break shortfall deducted, never negative."""
        return max(self.worked - self.insufficient_break, ZERO)


def clip(
    interval: Interval, start: datetime, end: datetime, now: datetime
) -> tuple[datetime, datetime] | None:
    """Clip an interval to [start, end).

    Returns:
        (clipped_start, clipped_end), or None if nothing remains
    """
    clipped_start = max(interval.start, start)
    clipped_end = min(interval.effective_end(now), end)
    if clipped_start >= clipped_end:
        return None
    return clipped_start, clipped_end


def iter_days(
    start: datetime, end: datetime, tz: tzinfo | None = None
) -> Iterator[tuple[date, datetime, datetime]]:
    """Split [start, end) into calendar days of tz (default: the system zone).

    Days are 23 or 25 hours long where tz changes its UTC offset.

    Yields:
        (day, window_start, window_end) with the window clipped to the range
    """
    day = start.astimezone(tz).date()
    while True:
        day_start = localize(datetime.combine(day, time(0)), tz)
        if day_start >= end:
            return
        day_end = localize(datetime.combine(day + timedelta(days=1), time(0)), tz)
        yield day, max(day_start, start), min(day_end, end)
        day += timedelta(days=1)


def aggregate_day(
    intervals: Iterable[Interval],
    day: date,
    start: datetime,
    end: datetime,
    now: datetime,
    min_daily_break: timedelta = ZERO,
) -> DayAggregate:
    """Aggregate the intervals falling into a single day window [start, end)."""
    result = DayAggregate(day=day, start=start, end=end)
    first: datetime | None = None
    last: datetime | None = None

    for interval in intervals:
        clipped = clip(interval, start, end, now)
        if clipped is None:
            continue
        clipped_start, clipped_end = clipped
        result.worked += clipped_end - clipped_start
        first = clipped_start if first is None else min(first, clipped_start)
        last = clipped_end if last is None else max(last, clipped_end)

    if first is None:
        return result

    result.span = last - first
    if result.worked > ZERO and result.break_time < min_daily_break:
        result.insufficient_break = min(min_daily_break - result.break_time, result.worked)
        logger.debug(
            f"Insufficient break on {day}: {result.break_time} taken, "
            f"{min_daily_break} required"
        )
    return result


def aggregate(
    intervals: Iterable[Interval],
    start: datetime,
    end: datetime,
    now: datetime,
    min_daily_break: int | timedelta = 0,
    tz: tzinfo | None = None,
) -> Aggregate:
    """Sum worked time of intervals within [start, end).

    Args:
        intervals: Intervals from build_intervals()
        start: Range start (inclusive)
        end: Range end (exclusive)
        now: Effective end of open intervals
        min_daily_break: Minimum break per day, in minutes or as timedelta
        tz: Timezone defining the calendar days, None for the system zone

    Returns:
        Aggregate with the per-day breakdown
    """
    if isinstance(min_daily_break, int):
        min_daily_break = timedelta(minutes=min_daily_break)

    intervals = list(intervals)
    result = Aggregate()
    if start >= end:
        return result

    for day, day_start, day_end in iter_days(start, end, tz):
        day_result = aggregate_day(intervals, day, day_start, day_end, now, min_daily_break)
        result.days.append(day_result)
        result.worked += day_result.worked
        result.insufficient_break += day_result.insufficient_break

    return result
