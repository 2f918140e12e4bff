"""Work time reports.

Selects the query range (day, week, custom or all), runs the event log
through the interval builder and the range aggregator, and compares the
result with the configured goal. Also holds the duration formatting used by
the show command.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

from .aggregate import DayAggregate, aggregate
from .config import Config
from .event_log import EventLog
from .goals import GoalResult, evaluate, goal_for
from .intervals import Interval, build_intervals
from .utils import localize, parse_date_or_datetime

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = "{hh}:{mm}:{ss}"


class RangeKind(Enum):
    DAY = "day"
    WEEK = "week"
    CUSTOM = "custom"
    ALL = "all"


@dataclass(frozen=True)
class QueryRange:
    """Half-open time range [start, end)."""

    start: datetime
    end: datetime
    kind: RangeKind = RangeKind.CUSTOM
    # Zone of the calendar days, None for the system zone
    tz: tzinfo | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"Range end {self.end.isoformat()} is before its start {self.start.isoformat()}"
            )

    def __contains__(self, ts: datetime) -> bool:
        return self.start <= ts < self.end


def _midnight(day: date, tz: tzinfo | None) -> datetime:
    return localize(datetime.combine(day, time(0)), tz)


def day_range(day: date, tz: tzinfo | None) -> QueryRange:
    return QueryRange(
        _midnight(day, tz), _midnight(day + timedelta(days=1), tz), RangeKind.DAY, tz
    )


def week_range(day: date, tz: tzinfo | None) -> QueryRange:
    """Monday 00:00 of the week containing day until the following Monday."""
    monday = day - timedelta(days=day.weekday())
    return QueryRange(
        _midnight(monday, tz), _midnight(monday + timedelta(days=7), tz), RangeKind.WEEK, tz
    )


def select_range(
    filter: str | None,
    start: str | None,
    end: str | None,
    now: datetime,
    log: EventLog | None = None,
    tz: tzinfo | None = None,
) -> tuple[QueryRange, str | None]:
    """Resolve command line range options.

    Args:
        filter: "week", "all", or a text to match against descriptions
        start: Range start: a date (whole day) or a datetime. Default: today
        end: Range end: a date (inclusive, whole day) or a datetime.
            Default: the end of the start day
        now: Current local time
        log: Event log, needed for the "all" filter
        tz: Timezone of dates and wall clock times, None for the system zone

    Returns:
        (range, description_filter)

    Raises:
        ValueError: If a boundary can't be parsed or the range is reversed
    """
    today = now.astimezone(tz).date()

    if filter == "week":
        return week_range(today, tz), None

    if filter == "all":
        events = log.events if log is not None else ()
        first = events[0].timestamp if events else now
        last = max(events[-1].timestamp, now) if events else now
        range_start = _midnight(first.astimezone(tz).date(), tz)
        range_end = _midnight(last.astimezone(tz).date() + timedelta(days=1), tz)
        return QueryRange(range_start, range_end, RangeKind.ALL, tz), None

    start_value = parse_date_or_datetime(start, now, tz) if start else today
    if isinstance(start_value, datetime):
        range_start = start_value
    else:
        range_start = _midnight(start_value, tz)

    if end:
        end_value = parse_date_or_datetime(end, now, tz)
    elif isinstance(start_value, datetime):
        end_value = start_value.date()
    else:
        end_value = start_value

    if isinstance(end_value, datetime):
        range_end = end_value
    else:
        range_end = _midnight(end_value + timedelta(days=1), tz)

    is_whole_day = (
        not isinstance(start_value, datetime)
        and not isinstance(end_value, datetime)
        and start_value == end_value
    )
    kind = RangeKind.DAY if is_whole_day else RangeKind.CUSTOM
    return QueryRange(range_start, range_end, kind, tz), filter


@dataclass
class Report:
    """Worked time over a range compared to the goal for that range kind."""

    range: QueryRange
    worked: timedelta
    goal: timedelta
    insufficient_break: timedelta = timedelta(0)
    days: list[DayAggregate] = field(default_factory=list)
    intervals: list[Interval] = field(default_factory=list)
    in_progress: bool = False

    @property
    def delta(self) -> timedelta:
        """worked - goal, negative while the goal isn't reached."""
        return self.worked - self.goal

    @property
    def net_worked(self) -> timedelta:
        return max(self.worked - self.insufficient_break, timedelta(0))

    def counted(self, deduct_insufficient_break: bool) -> timedelta:
        """Worked time as displayed, optionally with the break shortfall deducted."""
        return self.net_worked if deduct_insufficient_break else self.worked

    def goal_result(self, deduct_insufficient_break: bool = False) -> GoalResult:
        return evaluate(self.counted(deduct_insufficient_break), self.goal, self.in_progress)


def build_report(
    log: EventLog,
    query: QueryRange,
    config: Config,
    now: datetime,
    description_filter: str | None = None,
    include_seconds: bool = True,
) -> Report:
    """Compute the report for a range.

    Args:
        log: The event log
        query: Range to report on
        config: Merged configuration
        now: Current time, the effective end of a running session
        description_filter: Only count sessions whose description contains it
        include_seconds: If False, all times are truncated to the minute

    Returns:
        A freshly computed Report. Nothing is stored.
    """
    if not include_seconds:
        now = now.replace(second=0, microsecond=0)

    events = log.query(query.start, query.end)
    intervals = build_intervals(events, config.auto_insert_stop, include_seconds)
    if description_filter:
        intervals = [
            i for i in intervals if i.description and description_filter in i.description
        ]

    result = aggregate(
        intervals, query.start, query.end, now, config.min_daily_break_duration, query.tz
    )
    logger.debug(
        f"Report {query.kind.value} {query.start.isoformat()}..{query.end.isoformat()}: "
        f"{len(events)} events, {len(intervals)} intervals, worked {result.worked}"
    )
    return Report(
        range=query,
        worked=result.worked,
        goal=goal_for(config, weekly=query.kind == RangeKind.WEEK),
        insufficient_break=result.insufficient_break,
        days=result.days,
        intervals=intervals,
        in_progress=now in query,
    )


def split_duration(duration: timedelta) -> tuple[int, int, int]:
    """Split a non-negative duration into (hours, minutes, seconds)."""
    total_seconds = int(duration.total_seconds())
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return hours, minutes, seconds


def format_duration(
    duration: timedelta, template: str = DEFAULT_FORMAT, include_seconds: bool = True
) -> str:
    """Format a duration using a template.

    Placeholders: {hh} {mm} {ss} (zero padded) and {h} {m} {s}. Seconds are
    shown as 0 unless include_seconds. Negative durations get a leading "-".
    """
    sign = "-" if duration < timedelta(0) else ""
    hours, minutes, seconds = split_duration(abs(duration))
    if not include_seconds:
        seconds = 0
    text = (
        template.replace("{hh}", f"{hours:02d}")
        .replace("{mm}", f"{minutes:02d}")
        .replace("{ss}", f"{seconds:02d}")
        .replace("{h}", str(hours))
        .replace("{m}", str(minutes))
        .replace("{s}", str(seconds))
    )
    return sign + text


def format_delta(delta: timedelta) -> str:
    """Format a signed duration as "+1h30m" or "-0h15m"."""
    sign = "-" if delta < timedelta(0) else "+"
    hours, minutes, _ = split_duration(abs(delta))
    return f"{sign}{hours}h{minutes:02d}m"
