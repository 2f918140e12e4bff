"""
Export and import of the event log.

Exports are used for backups and for moving data between machines. JSON and
YAML exports can be imported again; the readable format is for humans only.
"""

import json
import logging
import sys
from collections.abc import Iterable
from datetime import tzinfo
from pathlib import Path
from typing import Any

import yaml

from .events import Event, MalformedLog
from .storage import decode_record

logger = logging.getLogger(__name__)

FORMATS = ("json", "yaml", "readable")


def format_event(event: Event, tz: tzinfo | None = None) -> str:
    """Format an event as 'Start at 2021-03-29 08:00:00 "description"'.

    Args:
        event: The event
        tz: Timezone to show the time in (default: local)
    """
    prefix = "Start" if event.is_start else "Stop "
    ts = event.timestamp.astimezone(tz)
    description = f' "{event.description}"' if event.description is not None else ""
    return f"{prefix} at {ts.strftime('%Y-%m-%d %H:%M:%S')}{description}"


def detect_format(output_file: str | Path, format: str | None) -> str:
    """Pick the export format from the explicit choice or the file extension."""
    if format:
        if format not in FORMATS:
            raise ValueError(f"Unknown export format: {format} (choose from {', '.join(FORMATS)})")
        return format
    if str(output_file) != "-" and Path(output_file).suffix in (".yaml", ".yml"):
        return "yaml"
    return "json"


def export_events(
    events: Iterable[Event],
    output_file: str | Path,
    format: str | None = None,
    pretty: bool = False,
    tz: tzinfo | None = None,
) -> int:
    """
    Export events to a file.

    Args:
        events: Events to export, in log order
        output_file: Output file path (use '-' for stdout)
        format: 'json', 'yaml' or 'readable'; inferred from the extension if None
        pretty: Indent JSON output
        tz: Timezone for the readable format (default: local)

    Returns:
        Number of exported events
    """
    events = list(events)
    format = detect_format(output_file, format)
    use_stdout = str(output_file) == "-"

    if format == "readable":
        text = "\n".join(format_event(e, tz) for e in events) + ("\n" if events else "")
    elif format == "yaml":
        text = yaml.safe_dump(
            [e.to_dict() for e in events], default_flow_style=False, sort_keys=False,
            allow_unicode=True,
        )
    else:
        text = json.dumps(
            [e.to_dict() for e in events], indent=2 if pretty else None, ensure_ascii=False
        )
        text += "\n"

    if use_stdout:
        sys.stdout.write(text)
    else:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(text)

    logger.info(f"Exported {len(events)} events as {format} to {output_file}")
    return len(events)


def load_records(file_path: str | Path) -> Any:
    """
    Load raw records from a JSON or YAML file.

    Raises:
        MalformedLog: If the file isn't valid JSON/YAML
    """
    path = Path(file_path)

    with open(path, encoding="utf-8") as f:
        try:
            if path.suffix in [".yaml", ".yml"]:
                return yaml.safe_load(f)
            return json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise MalformedLog(f"{path}: {e}") from e


def import_events(file_path: str | Path) -> list[Event]:
    """
    Import events from a JSON or YAML export.

    The records are sorted by timestamp (keeping the file order for equal
    timestamps) and exact duplicates are dropped, so the result obeys the
    ordering of the event log.

    Raises:
        MalformedLog: If the file or one of its records can't be decoded
    """
    data = load_records(file_path)
    if not isinstance(data, list):
        raise MalformedLog(f"{file_path}: expected a list of events, got {type(data).__name__}")

    try:
        events = [decode_record(record) for record in data]
    except (ValueError, TypeError, OverflowError) as e:
        raise MalformedLog(f"{file_path}: {e}") from e

    ordered = sorted(events, key=lambda e: e.timestamp)
    if ordered != events:
        logger.warning(f"{file_path}: events were not in chronological order, sorted them")

    result: list[Event] = []
    for event in ordered:
        if result and result[-1] == event:
            continue
        result.append(event)
    if len(result) != len(ordered):
        logger.info(f"{file_path}: dropped {len(ordered) - len(result)} duplicate events")
    return result
