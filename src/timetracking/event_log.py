"""Ordered, append-only sequence of tracking events.

The log keeps events in non-decreasing timestamp order. Appending an event
that is older than the last stored one is rejected with OutOfOrderEvent
instead of being sorted into place: a past event silently moving between
existing ones would change already reported intervals.
"""

import logging
from collections.abc import Iterable, Iterator
from datetime import datetime

from .events import Event, TimeTrackingError

logger = logging.getLogger(__name__)


class OutOfOrderEvent(TimeTrackingError):
    """Raised when an event would break the timestamp ordering of the log."""

    def __init__(self, event: Event, last: Event) -> None:
        super().__init__(
            f"Refusing to add {event.kind.value} event at {event.timestamp.isoformat()}: "
            f"it precedes the last recorded event at {last.timestamp.isoformat()}"
        )
        self.event = event
        self.last = last


class EventLog:
    """In-memory event log with range queries."""

    def __init__(self, events: Iterable[Event] = ()) -> None:
        self._events: list[Event] = []
        for event in events:
            self.append(event)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(self._events)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EventLog):
            return NotImplemented
        return self._events == other._events

    def __repr__(self) -> str:
        return f"EventLog({len(self._events)} events)"

    @property
    def events(self) -> tuple[Event, ...]:
        return tuple(self._events)

    def append(self, event: Event) -> None:
        """Append an event.

        Raises:
            OutOfOrderEvent: If the event precedes the last stored event.
                The log is left unchanged.
        """
        last = self.last()
        if last is not None and event.timestamp < last.timestamp:
            raise OutOfOrderEvent(event, last)
        self._events.append(event)
        logger.debug(
            "Appended event",
            extra={"event_ts": event.timestamp, "kind": event.kind.value,
                   "description": event.description},
        )

    def last(self) -> Event | None:
        return self._events[-1] if self._events else None

    def last_start(self) -> Event | None:
        """Return the most recent start event, if any."""
        for event in reversed(self._events):
            if event.is_start:
                return event
        return None

    def query(self, start: datetime, end: datetime) -> list[Event]:
        """Return the events relevant for the range [start, end).

        The result holds every event with start <= timestamp < end. The event
        right before the range is prepended when it is a start (the session
        runs into the window), and the first event at or after the end is
        appended when it is a stop closing the session still open at the end
        of the window.
        """
        inside = [i for i, e in enumerate(self._events) if start <= e.timestamp < end]
        if inside:
            first, last = inside[0], inside[-1]
        else:
            # Position where the range would sit, with nothing inside it
            first = next(
                (i for i, e in enumerate(self._events) if e.timestamp >= start),
                len(self._events),
            )
            last = first - 1

        result = self._events[first:last + 1]

        before = self._events[first - 1] if first > 0 else None
        if before is not None and before.is_start:
            result.insert(0, before)

        after = self._events[last + 1] if last + 1 < len(self._events) else None
        if after is not None and after.is_stop and result and result[-1].is_start:
            result.append(after)

        return result
