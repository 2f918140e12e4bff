"""Configuration validation for timetracking.

Validates the merged TOML configuration and warns about potential issues.
"""

import logging
from typing import Any

from .utils import resolve_timezone

logger = logging.getLogger(__name__)

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class ConfigValidationError(Exception):
    """Raised when configuration has critical errors."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Invalid configuration: " + "; ".join(errors))
        self.errors = errors


def weekday_index(name: str) -> int:
    """Map a weekday name ("Fri", "friday", ...) to 0=Monday .. 6=Sunday.

    Raises:
        ValueError: If the name is not a weekday
    """
    key = name.strip().lower()
    for index, weekday in enumerate(WEEKDAYS):
        if key == weekday or key == weekday[:3]:
            return index
    raise ValueError(f"Unknown weekday: {name!r}")


class ConfigValidator:
    """Validates configuration dictionaries."""

    # Known top-level keys with their expected types
    TOP_LEVEL = {
        "data_file": str,
        "auto_insert_stop": bool,
        "enable_project_settings": bool,
        "min_daily_break": int,
        "last_day_of_work_week": str,
        "deduct_insufficient_break": bool,
        "timezone": str,
        "time_goal": dict,
    }

    GOAL_KINDS = {"daily", "weekly"}
    GOAL_FIELDS = {"hours", "minutes"}

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self, config: dict[str, Any]) -> tuple[list[str], list[str]]:
        """Validate the configuration.

        Args:
            config: The configuration dictionary to validate

        Returns:
            Tuple of (errors, warnings) lists
        """
        self.errors = []
        self.warnings = []

        self._validate_top_level(config)
        self._validate_time_goal(config.get("time_goal", {}))

        return self.errors, self.warnings

    def _validate_top_level(self, config: dict) -> None:
        """Validate top-level configuration keys."""
        for key, value in config.items():
            if key not in self.TOP_LEVEL:
                self.warnings.append(f"Unknown top-level config key: '{key}'")
                continue
            expected = self.TOP_LEVEL[key]
            # bool is a subclass of int, don't accept it as a number
            if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                article = "an" if expected.__name__[0] in "aeiou" else "a"
                self.errors.append(
                    f"'{key}' must be {article} {expected.__name__}, got {type(value).__name__}"
                )

        min_break = config.get("min_daily_break")
        if isinstance(min_break, int) and not isinstance(min_break, bool) and min_break < 0:
            self.errors.append(f"'min_daily_break' must be >= 0, got {min_break}")
        if isinstance(min_break, int) and min_break >= 24 * 60:
            self.warnings.append(f"'min_daily_break' of {min_break} minutes is a whole day or more")

        last_day = config.get("last_day_of_work_week")
        if isinstance(last_day, str):
            try:
                weekday_index(last_day)
            except ValueError:
                self.errors.append(
                    f"'last_day_of_work_week' must be a weekday name (Mon..Sun), got '{last_day}'"
                )

        timezone = config.get("timezone")
        if isinstance(timezone, str):
            try:
                resolve_timezone(timezone)
            except ValueError:
                self.errors.append(
                    f"'timezone' must be \"local\" or an IANA timezone name, got '{timezone}'"
                )

        if config.get("data_file") == "":
            self.errors.append("'data_file' must not be empty")

    def _validate_time_goal(self, time_goal: Any) -> None:
        """Validate the [time_goal.daily] and [time_goal.weekly] tables."""
        if not isinstance(time_goal, dict):
            # Already reported as a type error
            return

        for kind, goal in time_goal.items():
            prefix = f"time_goal.{kind}"
            if kind not in self.GOAL_KINDS:
                self.warnings.append(f"Unknown time goal: '{prefix}'")
                continue
            if not isinstance(goal, dict):
                self.errors.append(f"{prefix} must be a table with 'hours' and 'minutes'")
                continue

            for field, value in goal.items():
                if field not in self.GOAL_FIELDS:
                    self.warnings.append(f"Unknown field in {prefix}: '{field}'")
                    continue
                if not isinstance(value, int) or isinstance(value, bool):
                    self.errors.append(
                        f"{prefix}.{field} must be an int, got {type(value).__name__}"
                    )
                elif value < 0:
                    self.errors.append(f"{prefix}.{field} must be >= 0, got {value}")

            minutes = goal.get("minutes")
            if isinstance(minutes, int) and minutes >= 60:
                self.warnings.append(f"{prefix}.minutes is {minutes}, consider using hours")


def validate_config(config: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Validate configuration and return errors and warnings.

    Args:
        config: The configuration dictionary to validate

    Returns:
        Tuple of (errors, warnings) lists
    """
    validator = ConfigValidator()
    return validator.validate(config)


def log_validation_results(errors: list[str], warnings: list[str]) -> None:
    """Log validation results.

    Args:
        errors: List of error messages
        warnings: List of warning messages
    """
    for warning in warnings:
        logger.warning(f"Config warning: {warning}")
    for error in errors:
        logger.error(f"Config error: {error}")
