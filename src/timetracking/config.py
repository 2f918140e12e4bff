"""Layered configuration for timetracking.

Layers, later ones overriding earlier ones field by field:

1. built-in defaults (default_config below)
2. global: ~/.config/timetracking/config.toml
3. project chain: every timetracking.project.toml from the filesystem root
   down to the working directory (only with enable_project_settings)
4. local: .timetracking.config or .timetracking.config.toml in the
   working directory
5. environment: TT_<KEY>, nested keys joined with "__"
   (TT_TIME_GOAL__DAILY__HOURS=6)
6. an explicit --config file
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta, tzinfo
from pathlib import Path
from typing import Any

import toml

from .config_validation import (
    ConfigValidationError,
    log_validation_results,
    validate_config,
    weekday_index,
)
from .utils import resolve_timezone

logger = logging.getLogger(__name__)

APP_NAME = "timetracking"
PROJECT_CONFIG_NAME = "timetracking.project.toml"
LOCAL_CONFIG_NAMES = (".timetracking.config", ".timetracking.config.toml")
ENV_PREFIX = "TT_"

default_config = """
# Where the event log is stored. "~" and environment variables are expanded.
data_file = "~/timetracking.json"

# When starting while already tracking, stop the running session first
# instead of refusing to start.
auto_insert_stop = false

# Look for timetracking.project.toml files from the working directory upwards
enable_project_settings = true

# Minimum break per day in minutes. If less break was taken on a day the
# shortfall is reported, and deducted when deduct_insufficient_break is set.
min_daily_break = 0
deduct_insufficient_break = true

# On this day "show --remaining" reports what is left of the weekly goal
last_day_of_work_week = "Fri"

# Timezone of calendar days and of times entered without an offset:
# "local" for the zone of the operating system, or an IANA name such as
# "Europe/Berlin"
timezone = "local"

[time_goal.daily]
hours = 8
minutes = 0

[time_goal.weekly]
hours = 40
minutes = 0
""".strip()


@dataclass(frozen=True)
class TimeGoal:
    hours: int = 0
    minutes: int = 0

    @property
    def duration(self) -> timedelta:
        return timedelta(hours=self.hours, minutes=self.minutes)


@dataclass(frozen=True)
class Config:
    """Fully merged configuration."""

    data_file: str = "~/timetracking.json"
    auto_insert_stop: bool = False
    enable_project_settings: bool = True
    min_daily_break: int = 0
    deduct_insufficient_break: bool = True
    last_day_of_work_week: str = "Fri"
    timezone: str = "local"
    time_goal_daily: TimeGoal = TimeGoal(8)
    time_goal_weekly: TimeGoal = TimeGoal(40)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        """Build a Config from a merged dictionary, falling back to defaults."""
        defaults = cls()
        time_goal = data.get("time_goal", {})
        daily = time_goal.get("daily", {})
        weekly = time_goal.get("weekly", {})
        return cls(
            data_file=data.get("data_file", defaults.data_file),
            auto_insert_stop=data.get("auto_insert_stop", defaults.auto_insert_stop),
            enable_project_settings=data.get(
                "enable_project_settings", defaults.enable_project_settings
            ),
            min_daily_break=data.get("min_daily_break", defaults.min_daily_break),
            deduct_insufficient_break=data.get(
                "deduct_insufficient_break", defaults.deduct_insufficient_break
            ),
            last_day_of_work_week=data.get(
                "last_day_of_work_week", defaults.last_day_of_work_week
            ),
            timezone=data.get("timezone", defaults.timezone),
            time_goal_daily=TimeGoal(
                daily.get("hours", defaults.time_goal_daily.hours),
                daily.get("minutes", defaults.time_goal_daily.minutes),
            ),
            time_goal_weekly=TimeGoal(
                weekly.get("hours", defaults.time_goal_weekly.hours),
                weekly.get("minutes", defaults.time_goal_weekly.minutes),
            ),
        )

    @property
    def data_path(self) -> Path:
        """data_file with "~" and environment variables expanded."""
        return Path(os.path.expanduser(os.path.expandvars(self.data_file)))

    @property
    def min_daily_break_duration(self) -> timedelta:
        return timedelta(minutes=self.min_daily_break)

    @property
    def zone(self) -> tzinfo | None:
        """The configured timezone, None for the system zone."""
        return resolve_timezone(self.timezone)

    @property
    def last_workday(self) -> int:
        """Last day of the work week, 0=Monday .. 6=Sunday."""
        return weekday_index(self.last_day_of_work_week)


def merge(*layers: Mapping[str, Any]) -> dict[str, Any]:
    """Merge configuration layers field by field.

    Nested tables are merged recursively; any other value in a later layer
    replaces the earlier one. The inputs are not modified.
    """
    result: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if isinstance(value, Mapping) and isinstance(result.get(key), Mapping):
                result[key] = merge(result[key], value)
            elif isinstance(value, Mapping):
                result[key] = merge(value)
            else:
                result[key] = value
    return result


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML config file.

    Raises:
        ConfigValidationError: If the file is not valid TOML
    """
    try:
        data = toml.load(path)
    except toml.TomlDecodeError as e:
        raise ConfigValidationError([f"{path}: {e}"]) from e
    logger.debug(f"Loaded config layer {path}")
    return data


def global_config_path(environ: Mapping[str, str] | None = None) -> Path:
    environ = os.environ if environ is None else environ
    config_home = environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / APP_NAME / "config.toml"


def project_config_chain(cwd: Path) -> list[Path]:
    """Return project config files from the filesystem root down to cwd."""
    cwd = cwd.resolve()
    chain = [
        directory / PROJECT_CONFIG_NAME
        for directory in [cwd, *cwd.parents]
        if (directory / PROJECT_CONFIG_NAME).is_file()
    ]
    chain.reverse()
    return chain


def local_config_paths(cwd: Path) -> list[Path]:
    return [cwd / name for name in LOCAL_CONFIG_NAMES if (cwd / name).is_file()]


def _parse_env_value(value: str) -> Any:
    """Interpret an environment value as a TOML value, or keep it as string."""
    try:
        return toml.loads(f"value = {value}")["value"]
    except toml.TomlDecodeError:
        return value


def environment_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    """Build a config layer from TT_* environment variables.

    Raises:
        ConfigValidationError: If a variable sets a table that another one
            sets as a plain value
    """
    layer: dict[str, Any] = {}
    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX) or len(name) == len(ENV_PREFIX):
            continue
        path = name[len(ENV_PREFIX):].lower().split("__")
        target = layer
        for depth, part in enumerate(path[:-1], 1):
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                table = ENV_PREFIX + "__".join(path[:depth]).upper()
                raise ConfigValidationError([f"{name}: {table} is set to a plain value"])
        if isinstance(target.get(path[-1]), dict):
            raise ConfigValidationError([f"{name}: also set as a table by {name}__* variables"])
        target[path[-1]] = _parse_env_value(value)
    return layer


def load_config_dict(
    config_path: Path | str | None = None,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Discover and merge all configuration layers, without validating.

    Raises:
        FileNotFoundError: If config_path does not exist
        ConfigValidationError: If a layer is not valid TOML
    """
    environ = os.environ if environ is None else environ
    cwd = Path.cwd() if cwd is None else cwd

    layers = [toml.loads(default_config)]

    global_path = global_config_path(environ)
    if global_path.is_file():
        layers.append(load_toml_file(global_path))

    # enable_project_settings is decided by the layers seen so far
    if merge(*layers).get("enable_project_settings", True):
        layers.extend(load_toml_file(path) for path in project_config_chain(cwd))

    layers.extend(load_toml_file(path) for path in local_config_paths(cwd))
    layers.append(environment_layer(environ))

    if config_path:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        layers.append(load_toml_file(config_path))

    return merge(*layers)


def load_config(
    config_path: Path | str | None = None,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Discover, merge and validate all configuration layers.

    Args:
        config_path: Explicit config file, applied last
        cwd: Directory to search for project and local configs (default: cwd)
        environ: Environment mapping (default: os.environ)

    Returns:
        The merged Config

    Raises:
        FileNotFoundError: If config_path does not exist
        ConfigValidationError: If a layer is not valid TOML or the merged
            config has errors
    """
    merged = load_config_dict(config_path, cwd, environ)
    errors, warnings = validate_config(merged)
    log_validation_results(errors, warnings)
    if errors:
        raise ConfigValidationError(errors)
    return Config.from_dict(merged)
