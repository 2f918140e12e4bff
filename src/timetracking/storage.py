"""Durable storage of the event log as a JSON file.

Writers take an exclusive lock on a sidecar "<data file>.lock" for the whole
load-modify-save cycle, and the file is replaced atomically (temp file in the
same directory, then os.replace). Readers don't lock: they always see either
the previous or the new file, never a partially written one.
"""

import fcntl
import json
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from .event_log import EventLog, OutOfOrderEvent
from .events import Event, EventKind, MalformedLog

logger = logging.getLogger(__name__)


def decode_record(record: Any) -> Event:
    """Decode a stored record into an Event.

    Accepts the native {"kind", "timestamp", "description"} records as well
    as the older {"Start": {"description": ..., "time": <epoch seconds>}} shape.

    Raises:
        ValueError: If the record can't be decoded
    """
    if not isinstance(record, dict):
        raise ValueError(f"Event record must be an object, got {type(record).__name__}")
    if "kind" in record:
        return Event.from_dict(record)
    if len(record) == 1:
        (key, data), = record.items()
        kinds = {"Start": EventKind.START, "Stop": EventKind.STOP}
        if key in kinds and isinstance(data, dict) and "time" in data:
            timestamp = datetime.fromtimestamp(data["time"], tz=UTC)
            return Event(timestamp, kinds[key], data.get("description"))
    raise ValueError(f"Unrecognized event record: {record!r}")


def decode_events(data: Any, source: str | Path) -> EventLog:
    """Build an EventLog from decoded JSON data.

    Raises:
        MalformedLog: If the data isn't a list of valid, ordered records
    """
    if not isinstance(data, list):
        raise MalformedLog(f"{source}: expected a list of events, got {type(data).__name__}")
    try:
        return EventLog(decode_record(record) for record in data)
    except (ValueError, TypeError, OverflowError) as e:
        raise MalformedLog(f"{source}: {e}") from e
    except OutOfOrderEvent as e:
        raise MalformedLog(f"{source}: events are not in chronological order: {e}") from e


class LogStore:
    """The event log file on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    def load(self) -> EventLog:
        """Load the full log. A missing file is an empty log.

        Raises:
            MalformedLog: If the file can't be decoded. The file is left as is.
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            logger.debug(f"No data file at {self.path}, starting with an empty log")
            return EventLog()

        if not raw.strip():
            return EventLog()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedLog(
                f"{self.path} is not valid JSON ({e}). "
                "Restore it from an export or backup."
            ) from e
        log = decode_events(data, self.path)
        logger.debug(f"Loaded {len(log)} events from {self.path}")
        return log

    def save(self, log: EventLog) -> None:
        """Write the log atomically."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        records = [event.to_dict() for event in log]
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        logger.debug(f"Saved {len(log)} events to {self.path}")

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Hold the exclusive cross-process lock of this log."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    @contextmanager
    def transaction(self) -> Iterator[EventLog]:
        """Load the log under the lock, and save it afterwards if it changed.

        Nothing is written when the block raises.
        """
        with self.lock():
            log = self.load()
            before = log.events
            yield log
            if log.events != before:
                self.save(log)

    def replace(self, log: EventLog) -> None:
        """Overwrite the stored log (import, cleanup)."""
        with self.lock():
            self.save(log)
