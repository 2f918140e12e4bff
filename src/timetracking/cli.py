#!/usr/bin/env python3
"""
Command-line interface for timetracking (`tt`).

Provides subcommands to record work sessions and to report worked time:
start, stop, continue, status, list, show, path, export, import, cleanup,
validate.
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from .cleanup import RepeatedGroup, apply_choices, ask_choices, find_repeated
from .config import Config, load_config, load_config_dict
from .config_validation import ConfigValidationError, validate_config
from .event_log import EventLog
from .events import TimeTrackingError
from .export import export_events, format_event, import_events
from .goals import remaining
from .output import setup_logging, user_output
from .report import (
    DEFAULT_FORMAT,
    RangeKind,
    build_report,
    day_range,
    format_delta,
    format_duration,
    select_range,
    week_range,
)
from .state import StatusInfo
from .storage import LogStore
from .tracking import TrackingResult, continue_, start, stop
from .utils import local_now, parse_datetime

logger = logging.getLogger(__name__)

TIME_HELP = 'format: "HH:MM[:SS]" or "YYYY-mm-dd HH:MM[:SS]" [defaults to current time]'
RANGE_HELP = '"YYYY-mm-dd" (whole day), "YYYY-mm-dd HH:MM[:SS]", "HH:MM[:SS]" or e.g. "yesterday"'


def add_range_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the filter/--from/--to arguments shared by list and show."""
    parser.add_argument(
        'filter',
        nargs='?',
        help='"week", "all" or part of the description'
    )
    parser.add_argument(
        '--from', '--since', '-f',
        dest='start',
        metavar='DATETIME',
        help=f'Show entries from this point in time [defaults to today 00:00]. {RANGE_HELP}'
    )
    parser.add_argument(
        '--to', '--until', '-t',
        dest='end',
        metavar='DATETIME',
        help=f'Show entries until this point in time [defaults to the end of the start day]. {RANGE_HELP}'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog='tt',
        description='Track your working time',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start and stop tracking
  %(prog)s start "writing report"
  %(prog)s stop

  # Record a start that happened earlier today
  %(prog)s start --at 08:15

  # Worked time today, this week, and what is left of the goals
  %(prog)s show
  %(prog)s show week
  %(prog)s show --remaining

  # List all events of a day
  %(prog)s list --from 2021-03-29
        """
    )

    # Global options (available for all subcommands)
    parser.add_argument(
        '--data-file', '-d',
        metavar='FILE',
        type=Path,
        help='Data file to use [default: data_file from the configuration, ~/timetracking.json]'
    )
    parser.add_argument(
        '--config', '-c',
        metavar='FILE',
        type=Path,
        help='Additional configuration file, applied after all others'
    )
    parser.add_argument(
        '--log-level',
        choices=['NONE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='INFO',
        help='Set logging level of the log file (default: INFO)'
    )
    parser.add_argument(
        '--console-log-level',
        choices=['NONE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default='WARNING',
        help='Set console logging level (default: WARNING)'
    )
    parser.add_argument(
        '--log-file',
        metavar='FILE',
        type=Path,
        help='Log file path (default: ~/.local/share/timetracking/tt.json.log)'
    )
    parser.add_argument(
        '--no-log-json',
        action='store_true',
        help='Do not write the log file in JSON format'
    )

    subparsers = parser.add_subparsers(dest='subcommand', help='Subcommand to run')

    # ===== START / STOP =====
    for name, help_text in [('start', 'Start time tracking'), ('stop', 'Stop time tracking')]:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('description', nargs='?', help='A description for the event')
        sub.add_argument(
            '--at', '-a',
            metavar='TIME',
            help=f'The time at which the event happened. {TIME_HELP}'
        )

    subparsers.add_parser('continue', help='Continue time tracking with the last description')

    subparsers.add_parser(
        'status',
        help='Show the latest entry. Exit code 0 if tracking is active, 1 if not'
    )

    # ===== LIST =====
    list_parser = subparsers.add_parser('list', help='List entries')
    add_range_arguments(list_parser)

    subparsers.add_parser('path', help='Show the path of the data file')

    # ===== SHOW =====
    show_parser = subparsers.add_parser(
        'show',
        help='Show work time for a timespan (default)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Format placeholders:
  {hh} {mm} {ss}  zero padded hours, minutes, seconds
  {h} {m} {s}     unpadded
        """
    )
    add_range_arguments(show_parser)
    show_parser.add_argument(
        '--plain', '-p',
        action='store_true',
        help='Show only the time with no additional text'
    )
    show_parser.add_argument(
        '--remaining', '-r',
        action='store_true',
        help='Show the time until the time goals are met'
    )
    show_parser.add_argument(
        '--include-seconds', '-s',
        action='store_true',
        help='Include seconds in the time calculation'
    )
    show_parser.add_argument(
        '--format',
        help=f'Time format [default: "{DEFAULT_FORMAT}"]'
    )

    # ===== EXPORT / IMPORT =====
    export_parser = subparsers.add_parser('export', help='Export data to a file')
    export_parser.add_argument('path', help='Where to write the output file ("-" for stdout)')
    export_parser.add_argument(
        '--format',
        choices=['json', 'yaml', 'readable'],
        help='Output format. "readable" can not be imported [default: from the file extension, json]'
    )
    export_parser.add_argument(
        '--pretty',
        action='store_true',
        help='Pretty print json'
    )

    import_parser = subparsers.add_parser(
        'import', help='Replace the data with the events of a json or yaml export'
    )
    import_parser.add_argument('path', type=Path, help='Which file to import')

    subparsers.add_parser('cleanup', help='Interactively remove repeated start or stop events')

    subparsers.add_parser('validate', help='Validate the merged configuration')

    return parser


def get_default_log_file(json: bool) -> Path:
    """
    Get the default log file path.

    Returns:
        Path to the default log file in the user's data directory
    """
    data_home = os.environ.get('XDG_DATA_HOME')
    if data_home:
        data_dir = Path(data_home)
    else:
        data_dir = Path.home() / '.local' / 'share'

    log_dir = data_dir / 'timetracking'
    log_dir.mkdir(parents=True, exist_ok=True)

    json_postfix = '.json' if json else ''

    return log_dir / f'tt{json_postfix}.log'


def configure_logging(args: argparse.Namespace, subcommand: str) -> None:
    """
    Configure logging based on command-line arguments.

    Args:
        args: Parsed command-line arguments
        subcommand: The subcommand being executed
    """
    log_level = getattr(logging, args.log_level, 0)
    console_log_level = getattr(logging, args.console_log_level, 0)

    log_file = None
    if args.log_file and log_level > 0:
        log_file = args.log_file
    elif log_level > 0:
        log_file = get_default_log_file(not args.no_log_json)

    run_mode = {
        'subcommand': subcommand,
        'data_file': str(args.data_file) if args.data_file else None,
    }

    setup_logging(
        json_format=not args.no_log_json,
        log_level=log_level,
        console_log_level=console_log_level,
        log_file=log_file,
        run_mode=run_mode
    )


def report_tracking(result: TrackingResult, config: Config) -> None:
    """Tell the user what a start/stop/continue did."""
    if result.notice:
        user_output(result.notice, color='yellow', file=sys.stderr)
    for event in result.appended:
        user_output(format_event(event, config.zone))


def parse_at(args: argparse.Namespace, config: Config, now: datetime) -> Optional[datetime]:
    return parse_datetime(args.at, now, config.zone) if args.at else None


def run_start(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the start subcommand."""
    at = parse_at(args, config, now)
    with store.transaction() as log:
        result = start(log, args.description, now, at=at, auto_insert_stop=config.auto_insert_stop)
    report_tracking(result, config)
    return 0


def run_stop(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the stop subcommand."""
    at = parse_at(args, config, now)
    with store.transaction() as log:
        result = stop(log, args.description, now, at=at)
    report_tracking(result, config)
    return 0


def run_continue(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the continue subcommand."""
    with store.transaction() as log:
        result = continue_(log, now)
    report_tracking(result, config)
    return 0


def run_status(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the status subcommand. The exit code tells whether tracking is active."""
    info = StatusInfo.from_events(store.load())
    if info.last_event is None:
        user_output("No Events found!")
        return info.status.exit_code

    label = "Start" if info.active else "End"
    ts = info.last_event.timestamp.astimezone(config.zone)
    user_output(f"Active: {str(info.active).lower()}")
    if info.description is not None:
        user_output(f"Description: {info.description}")
    user_output(f"{label} Time: {ts.strftime('%H:%M:%S')}")
    return info.status.exit_code


def run_list(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the list subcommand."""
    log = store.load()
    query, description_filter = select_range(
        args.filter, args.start, args.end, now, log, config.zone
    )
    events = log.query(query.start, query.end)
    if description_filter:
        events = [e for e in events if e.description and description_filter in e.description]
    for event in events:
        user_output(format_event(event, config.zone))
    return 0


def run_path(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the path subcommand."""
    user_output(str(store.path))
    return 0


def run_show(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the show subcommand."""
    log = store.load()
    template = args.format or DEFAULT_FORMAT
    deduct = config.deduct_insufficient_break

    if args.remaining:
        if args.start or args.end or args.filter not in (None, 'week'):
            print(
                'Error: --remaining only works without --from/--to and with no filter or filter "week"',
                file=sys.stderr,
            )
            return 1
        week = build_report(
            log, week_range(now.date(), config.zone), config, now,
            include_seconds=args.include_seconds,
        )
        week_worked = week.counted(deduct)
        if args.filter == 'week':
            left = week.goal_result(deduct).remaining
        else:
            day = build_report(
                log, day_range(now.date(), config.zone), config, now,
                include_seconds=args.include_seconds,
            )
            left = remaining(day.counted(deduct), week_worked, config, now.date())
        text = format_duration(left, template, include_seconds=False)
        user_output(text if args.plain else f"Remaining Work Time: {text}")
        return 0

    query, description_filter = select_range(
        args.filter, args.start, args.end, now, log, config.zone
    )
    report = build_report(
        log, query, config, now,
        description_filter=description_filter,
        include_seconds=args.include_seconds,
    )
    worked = report.counted(deduct)
    text = format_duration(worked, template, include_seconds=args.include_seconds)
    if args.plain:
        user_output(text)
        return 0

    user_output(f"Work Time: {text}")
    if query.kind in (RangeKind.DAY, RangeKind.WEEK):
        result = report.goal_result(deduct)
        goal_text = format_duration(result.goal, template, include_seconds=False)
        color = 'green' if result.delta >= timedelta(0) else None
        user_output(f"Goal: {goal_text} ({format_delta(result.delta)})", color=color)
    if report.insufficient_break:
        shortfall = format_duration(report.insufficient_break, template, args.include_seconds)
        note = "deducted" if deduct else "not deducted"
        user_output(f"Insufficient break: {shortfall} ({note})", color='yellow')
    return 0


def run_export(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the export subcommand."""
    log = store.load()
    count = export_events(log, args.path, args.format, pretty=args.pretty, tz=config.zone)
    if args.path != '-':
        user_output(f"Exported {count} events to {args.path}")
    return 0


def run_import(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the import subcommand."""
    events = import_events(args.path)
    store.replace(EventLog(events))
    user_output(f"Imported {len(events)} events into {store.path}")
    return 0


def run_cleanup(args: argparse.Namespace, config: Config, store: LogStore, now: datetime) -> int:
    """Execute the cleanup subcommand."""

    def ask(group: RepeatedGroup) -> str:
        user_output(f"Repeated {group.kind.value} events found:")
        for i, event in enumerate(group.events):
            user_output(f"({i}) {format_event(event, config.zone)}")
        user_output("")
        return input("Please enter the number of the entry to keep (<num>|skip) [default: skip]: ")

    with store.lock():
        log = store.load()
        groups = find_repeated(log.events)
        if not groups:
            user_output("No repeated events found")
            return 0
        choices = ask_choices(groups, ask, lambda msg: user_output(msg, color='red'))
        cleaned = apply_choices(log.events, groups, choices)
        if len(cleaned) != len(log):
            store.save(EventLog(cleaned))
    user_output(f"Removed {len(log) - len(cleaned)} events")
    return 0


def run_validate(args: argparse.Namespace) -> int:
    """Execute the validate subcommand."""
    merged = load_config_dict(args.config)
    errors, warnings = validate_config(merged)
    for warning in warnings:
        user_output(f"  - warning: {warning}", color='yellow')
    if errors:
        print("Configuration errors found:")
        for error in errors:
            print(f"  - {error}")
        return 1
    print("Configuration is valid")
    return 0


COMMANDS = {
    'start': run_start,
    'stop': run_stop,
    'continue': run_continue,
    'status': run_status,
    'list': run_list,
    'path': run_path,
    'show': run_show,
    'export': run_export,
    'import': run_import,
    'cleanup': run_cleanup,
}


def main(argv=None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for errors; see status)
    """
    parser = create_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(argv)

    # Default to 'show' if no subcommand specified
    if not args.subcommand:
        args = parser.parse_args(argv + ['show'])
    subcommand = args.subcommand

    if args.config and not args.config.exists():
        print(f"Error: Config file not found: {args.config}", file=sys.stderr)
        return 1

    configure_logging(args, subcommand)

    try:
        if subcommand == 'validate':
            return run_validate(args)

        config = load_config(args.config)
        store = LogStore(args.data_file or config.data_path)
        logger.debug(f"Running {subcommand} on {store.path}")
        return COMMANDS[subcommand](args, config, store, local_now(config.zone))

    except KeyboardInterrupt:
        print("\nExiting...")
        return 0
    except (TimeTrackingError, ConfigValidationError, ValueError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
