"""Tracking state of the event log.

The state of the log is fully determined by its most recent event:

- EMPTY: no events at all
- RUNNING: the last event is a start
- STOPPED: the last event is a stop

Transitions (see tracking.py): start moves EMPTY/STOPPED to RUNNING, and
RUNNING to RUNNING when a running session is replaced; stop moves RUNNING to
STOPPED and leaves STOPPED/EMPTY alone.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .events import Event


class TrackingState(Enum):
    """Log-level tracking state."""

    EMPTY = "empty"
    RUNNING = "running"
    STOPPED = "stopped"


class Status(Enum):
    """Whether time tracking is currently active."""

    ACTIVE = "active"
    INACTIVE = "inactive"

    @property
    def exit_code(self) -> int:
        """Exit code convention of the status command: 0 while tracking."""
        return 0 if self is Status.ACTIVE else 1


def tracking_state(last_event: Event | None) -> TrackingState:
    if last_event is None:
        return TrackingState.EMPTY
    return TrackingState.RUNNING if last_event.is_start else TrackingState.STOPPED


def resolve_status(last_event: Event | None) -> Status:
    """Active if the most recent event is a start, inactive otherwise."""
    if tracking_state(last_event) == TrackingState.RUNNING:
        return Status.ACTIVE
    return Status.INACTIVE


@dataclass(frozen=True)
class StatusInfo:
    """Status together with the event it was derived from, for display."""

    status: Status
    last_event: Event | None = None

    @classmethod
    def from_events(cls, events: Iterable[Event]) -> "StatusInfo":
        last_event = None
        for last_event in events:
            pass
        return cls(resolve_status(last_event), last_event)

    @property
    def active(self) -> bool:
        return self.status is Status.ACTIVE

    @property
    def description(self) -> str | None:
        return self.last_event.description if self.last_event else None
