"""
Shared fixtures and helpers for the timetracking tests.

Provides a builder for event logs and isolates every test from the user's
configuration, data and log files.
"""

import logging
import os
import time as system_time
from datetime import UTC, date, datetime, time

import pytest

from timetracking.event_log import EventLog
from timetracking.events import Event

# Monday
TEST_DAY = date(2021, 3, 29)

# Central European time with its daylight saving rules, as POSIX TZ string
BERLIN_TZ = "CET-1CEST,M3.5.0,M10.5.0/3"


def at(hhmm: str, day: date = TEST_DAY, tz=UTC) -> datetime:
    """Build an aware datetime from "HH:MM" or "HH:MM:SS" on a day."""
    return datetime.combine(day, time.fromisoformat(hhmm), tzinfo=tz)


def set_system_timezone(value: str | None) -> None:
    if value is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = value
    system_time.tzset()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep tests away from real config, data and log directories.

    The system timezone is UTC unless a test switches it.
    """
    home = tmp_path / "home"
    home.mkdir()
    workdir = tmp_path / "work"
    workdir.mkdir()

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    for name in list(os.environ):
        if name.startswith("TT_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(workdir)
    system_tz = os.environ.get("TZ")
    set_system_timezone("UTC")

    # The CLI replaces the root logger handlers; drop the ones it added
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    set_system_timezone(system_tz)


class EventLogBuilder:
    """
    Builder class for creating event logs.

    Example:
        >>> log = (EventLogBuilder()
        ...     .start("08:00", "coding")
        ...     .stop("12:00")
        ...     .build())
    """

    def __init__(self, day: date = TEST_DAY, tz=UTC):
        self.day = day
        self.tz = tz
        self.events: list[Event] = []

    def on(self, day: date) -> "EventLogBuilder":
        """Switch to another day for the following events."""
        self.day = day
        return self

    def start(self, hhmm: str, description: str | None = None) -> "EventLogBuilder":
        self.events.append(Event.start(at(hhmm, self.day, self.tz), description))
        return self

    def stop(self, hhmm: str, description: str | None = None) -> "EventLogBuilder":
        self.events.append(Event.stop(at(hhmm, self.day, self.tz), description))
        return self

    def session(self, begin: str, end: str, description: str | None = None) -> "EventLogBuilder":
        return self.start(begin, description).stop(end)

    def build(self) -> EventLog:
        return EventLog(self.events)


@pytest.fixture
def builder() -> EventLogBuilder:
    return EventLogBuilder()


@pytest.fixture
def workday_log() -> EventLog:
    """Two four hour sessions with a 15 minute break in between."""
    return (
        EventLogBuilder()
        .start("08:00")
        .stop("12:00", "pause")
        .start("12:15")
        .stop("16:15")
        .build()
    )


class Clock:
    """Stands in for the wall clock of the command line interface."""

    def __init__(self) -> None:
        self.now = at("08:00")

    def set(self, hhmm: str, day: date = TEST_DAY) -> datetime:
        self.now = at(hhmm, day)
        return self.now


@pytest.fixture
def clock(monkeypatch) -> Clock:
    clock = Clock()
    monkeypatch.setattr("timetracking.cli.local_now", lambda tz=None: clock.now.astimezone(tz))
    return clock


@pytest.fixture
def berlin_time():
    """Switch the system timezone to central European time."""
    set_system_timezone(BERLIN_TZ)
    yield
    set_system_timezone("UTC")
