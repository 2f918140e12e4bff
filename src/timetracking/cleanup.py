"""Detection and resolution of repeated start or stop events.

A well formed log alternates between starts and stops. Runs of two or more
starts (or stops) in a row appear when events were added with an explicit
time or imported. The interval builder copes with them, but the user may
want to keep only one event of each run.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .events import Event, EventKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepeatedGroup:
    """A run of consecutive events of the same kind."""

    first_index: int  # Position of the first event of the run in the log
    events: tuple[Event, ...]

    @property
    def kind(self) -> EventKind:
        return self.events[0].kind

    @property
    def indexes(self) -> range:
        return range(self.first_index, self.first_index + len(self.events))


def find_repeated(events: Sequence[Event]) -> list[RepeatedGroup]:
    """Find all runs of two or more consecutive events of the same kind."""
    groups = []
    run_start = 0
    for i in range(1, len(events) + 1):
        if i < len(events) and events[i].kind == events[run_start].kind:
            continue
        if i - run_start > 1:
            groups.append(RepeatedGroup(run_start, tuple(events[run_start:i])))
        run_start = i
    return groups


def apply_choices(
    events: Sequence[Event],
    groups: Sequence[RepeatedGroup],
    choices: Sequence[int | None],
) -> list[Event]:
    """Keep one event per group.

    Args:
        events: The full event sequence
        groups: Groups from find_repeated()
        choices: For every group the index (within the group) of the event
            to keep, or None to keep the whole group

    Returns:
        The cleaned event sequence

    Raises:
        ValueError: If a choice is out of range for its group
    """
    if len(groups) != len(choices):
        raise ValueError("Need exactly one choice per group")

    dropped: set[int] = set()
    for group, choice in zip(groups, choices):
        if choice is None:
            continue
        if not 0 <= choice < len(group.events):
            raise ValueError(f"Choice {choice} is out of range for a group of {len(group.events)}")
        dropped.update(i for i in group.indexes if i != group.first_index + choice)

    if dropped:
        logger.info(f"Cleanup removes {len(dropped)} events")
    return [event for i, event in enumerate(events) if i not in dropped]


def parse_choice(text: str, group: RepeatedGroup) -> int | None:
    """Parse an answer to the cleanup prompt: "<num>", "skip" or empty (skip).

    Raises:
        ValueError: With a message for the user if the answer is invalid
    """
    text = text.strip()
    if text in ("", "skip"):
        return None
    try:
        choice = int(text)
    except ValueError:
        raise ValueError("Could not parse number!") from None
    if not 0 <= choice < len(group.events):
        raise ValueError("Please use one of the numbers given above!")
    return choice


def ask_choices(
    groups: Sequence[RepeatedGroup],
    ask: Callable[[RepeatedGroup], str],
    report: Callable[[str], None],
) -> list[int | None]:
    """Ask for a choice per group until a valid answer is given.

    Args:
        groups: Groups to resolve
        ask: Prompts for one group and returns the raw answer
        report: Shows a message about an invalid answer
    """
    choices = []
    for group in groups:
        while True:
            try:
                choices.append(parse_choice(ask(group), group))
                break
            except ValueError as e:
                report(str(e))
    return choices
