"""Write operations on the event log: start, stop and continue.

Each operation appends zero or more events and returns a TrackingResult.
Conditions that only deserve a message to the user (starting while already
running, stopping while stopped) are reported through TrackingResult.notice
and never raise. OutOfOrderEvent from EventLog.append propagates unchanged.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .event_log import EventLog
from .events import Event, TimeTrackingError
from .state import TrackingState, tracking_state

logger = logging.getLogger(__name__)


class NoPriorDescription(TimeTrackingError):
    """Raised when continue is used on a log without any earlier event."""

    def __init__(self) -> None:
        super().__init__(
            "Time tracking can't be continued because there are no entries. "
            "Use the start command instead!"
        )


@dataclass
class TrackingResult:
    appended: list[Event] = field(default_factory=list)
    notice: str | None = None

    @property
    def changed(self) -> bool:
        return bool(self.appended)


def _append(log: EventLog, result: TrackingResult, event: Event) -> None:
    log.append(event)
    result.appended.append(event)
    logger.info(
        f"Recorded {event.kind.value}",
        extra={"event_ts": event.timestamp, "kind": event.kind.value,
               "description": event.description},
    )


def start(
    log: EventLog,
    description: str | None,
    now: datetime,
    at: datetime | None = None,
    auto_insert_stop: bool = False,
) -> TrackingResult:
    """Start tracking.

    Args:
        log: The event log to append to
        description: Optional description of the new session
        now: Current time
        at: Explicit time of the start event. Always appended.
        auto_insert_stop: When already running, stop the running session and
            start a new one instead of refusing

    Raises:
        OutOfOrderEvent: If the start would precede the last event
    """
    result = TrackingResult()
    last = log.last()
    state = tracking_state(last)

    if state != TrackingState.RUNNING or at is not None:
        _append(log, result, Event.start(at or now, description))
    elif auto_insert_stop:
        if description is not None and description == last.description:
            result.notice = f'Time tracking with the description "{description}" is already running!'
        else:
            _append(log, result, Event.stop(now))
            _append(log, result, Event.start(now, description))
    else:
        result.notice = "Time tracking is already running!"

    return result


def stop(
    log: EventLog,
    description: str | None,
    now: datetime,
    at: datetime | None = None,
) -> TrackingResult:
    """Stop tracking. Stopping while not running is a no-op unless at is given.

    Raises:
        OutOfOrderEvent: If the stop would precede the last event
    """
    result = TrackingResult()
    if tracking_state(log.last()) == TrackingState.RUNNING or at is not None:
        _append(log, result, Event.stop(at or now, description))
    else:
        result.notice = "Time tracking is already stopped!"
    return result


def continue_(log: EventLog, now: datetime) -> TrackingResult:
    """Start tracking again with the description of the most recent start.

    When that start had no description, the description of the last event
    (typically the stop that ended the session) is used instead.

    Raises:
        NoPriorDescription: If the log is empty
        OutOfOrderEvent: If now precedes the last event
    """
    result = TrackingResult()
    last = log.last()
    state = tracking_state(last)

    if state == TrackingState.EMPTY:
        raise NoPriorDescription()
    if state == TrackingState.RUNNING:
        result.notice = "Time tracking is already running!"
        return result

    last_start = log.last_start()
    description = last_start.description if last_start else None
    if description is None:
        description = last.description
    _append(log, result, Event.start(now, description))
    return result
