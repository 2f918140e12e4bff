"""Comparison of worked time against the configured time goals."""

from dataclasses import dataclass
from datetime import date, timedelta

from .config import Config

ZERO = timedelta(0)


@dataclass(frozen=True)
class GoalResult:
    """Worked time compared to a goal.

    delta is worked - goal: negative while the goal isn't reached yet,
    positive for overtime. in_progress only tells whether the evaluated
    period is still running; it does not change the numbers.
    """

    worked: timedelta
    goal: timedelta
    in_progress: bool = False

    @property
    def delta(self) -> timedelta:
        return self.worked - self.goal

    @property
    def remaining(self) -> timedelta:
        return max(-self.delta, ZERO)


def evaluate(worked: timedelta, goal: timedelta, in_progress: bool = False) -> GoalResult:
    return GoalResult(worked=worked, goal=goal, in_progress=in_progress)


def goal_for(config: Config, weekly: bool) -> timedelta:
    """Return the weekly or the daily goal."""
    if weekly:
        return config.time_goal_weekly.duration
    return config.time_goal_daily.duration


def remaining(
    day_worked: timedelta, week_worked: timedelta, config: Config, today: date
) -> timedelta:
    """Time left to work today, taking the weekly goal into account.

    On the last day of the work week the remaining weekly time is returned.
    On all other days it is whichever is less of the remaining daily and the
    remaining weekly time. Never negative.
    """
    day = evaluate(day_worked, goal_for(config, weekly=False))
    week = evaluate(week_worked, goal_for(config, weekly=True))
    if today.weekday() == config.last_workday:
        return week.remaining
    return min(day.remaining, week.remaining)
