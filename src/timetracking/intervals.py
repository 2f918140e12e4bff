"""Pairing of start/stop events into work intervals."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .events import Event, EventKind, MalformedLog

logger = logging.getLogger(__name__)

AUTO_STOP_NOTE = "stopped automatically"


@dataclass(frozen=True)
class Interval:
    """A span of work reconstructed from a start event and its closing event.

    end is None while the session is still running; computations then use
    the query time ("now") as the effective end. That end is never stored.
    """

    start: datetime
    end: datetime | None = None
    description: str | None = None
    note: str | None = None

    @property
    def is_open(self) -> bool:
        return self.end is None

    def effective_end(self, now: datetime) -> datetime:
        if not self.is_open:
            return self.end
        # A running session never ends before it started
        return max(now, self.start)

    def duration(self, now: datetime) -> timedelta:
        return self.effective_end(now) - self.start


def build_intervals(
    events: Iterable[Event],
    auto_insert_stop: bool = False,
    include_seconds: bool = True,
) -> list[Interval]:
    """Turn an ordered event sequence into work intervals.

    Rules:
    - A start while a session is open closes that session at the new start.
      With auto_insert_stop the closed interval is marked with a note.
    - A stop closes the open session. A stop without an open session is a
      no-op.
    - A start left open at the end produces an interval with end=None.

    Args:
        events: Events in non-decreasing timestamp order. May begin with the
            start preceding a query window (see EventLog.query).
        auto_insert_stop: Mark sessions closed by a following start
        include_seconds: If False, timestamps are truncated to the minute

    Returns:
        Intervals ordered by start time

    Raises:
        MalformedLog: If an interval would end before it started
    """
    intervals: list[Interval] = []
    open_start: Event | None = None

    def close(end: datetime, note: str | None = None) -> None:
        start = open_start.time(include_seconds)
        if end < start:
            raise MalformedLog(
                f"Interval starting at {start.isoformat()} ends before it started "
                f"({end.isoformat()}); the events are not in order"
            )
        intervals.append(Interval(start, end, open_start.description, note))

    for event in events:
        if event.kind == EventKind.START:
            if open_start is not None:
                note = AUTO_STOP_NOTE if auto_insert_stop else None
                logger.debug(
                    "Start while running, closing previous session",
                    extra={"event_ts": event.timestamp, "kind": event.kind.value},
                )
                close(event.time(include_seconds), note)
            open_start = event
        elif event.kind == EventKind.STOP:
            if open_start is None:
                # Redundant stop
                continue
            close(event.time(include_seconds))
            open_start = None
        else:
            raise MalformedLog(f"Unknown event kind: {event.kind!r}")

    if open_start is not None:
        intervals.append(
            Interval(open_start.time(include_seconds), None, open_start.description)
        )

    return intervals
