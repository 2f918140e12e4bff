"""Event model for the time tracking log.

An event is a timestamped start or stop marker with an optional description.
Events are immutable; the log only ever appends new ones.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class TimeTrackingError(Exception):
    """Base class for all errors raised by the time tracking core."""

    pass


class MalformedLog(TimeTrackingError):
    """Raised when stored or imported events cannot be decoded or are inconsistent."""

    pass


class EventKind(Enum):
    """Kind of a tracking event."""

    START = "start"
    STOP = "stop"


@dataclass(frozen=True)
class Event:
    """A single start or stop marker.

    Attributes:
        timestamp: Timezone-aware point in time of the event
        kind: EventKind.START or EventKind.STOP
        description: Optional free text label
    """

    timestamp: datetime
    kind: EventKind
    description: str | None = None

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError(f"Event timestamp must be timezone-aware: {self.timestamp}")

    @classmethod
    def start(cls, timestamp: datetime, description: str | None = None) -> "Event":
        return cls(timestamp, EventKind.START, description)

    @classmethod
    def stop(cls, timestamp: datetime, description: str | None = None) -> "Event":
        return cls(timestamp, EventKind.STOP, description)

    @property
    def is_start(self) -> bool:
        return self.kind is EventKind.START

    @property
    def is_stop(self) -> bool:
        return self.kind is EventKind.STOP

    def time(self, include_seconds: bool = True) -> datetime:
        """Return the timestamp, truncated to the minute unless include_seconds."""
        if include_seconds:
            return self.timestamp
        return self.timestamp.replace(second=0, microsecond=0)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "kind": self.kind.value,
            "timestamp": self.timestamp.isoformat(),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Event":
        """Build an event from a record produced by to_dict().

        Raises:
            ValueError: If the record is missing fields or has invalid values
        """
        try:
            kind = EventKind(data["kind"])
            timestamp = data["timestamp"]
        except KeyError as e:
            raise ValueError(f"Event record is missing field {e}") from e
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        elif not isinstance(timestamp, datetime):
            raise ValueError(f"Invalid event timestamp: {timestamp!r}")
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise ValueError(f"Invalid event description: {description!r}")
        return cls(timestamp, kind, description)
