"""Logging and output utilities for timetracking."""

import json
import logging
import sys
from datetime import UTC, datetime, timedelta

from termcolor import cprint

# Extra fields that may be attached to log records via `extra=`
CONTEXT_FIELDS = ("event_ts", "kind", "description", "duration")


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs structured logs with all relevant context.
    Can output in JSON format for analysis.
    """

    def __init__(self, use_json: bool = False, run_mode: dict = None) -> None:
        super().__init__()
        self.use_json = use_json
        self.run_mode = run_mode or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if self.run_mode:
            log_data["run_mode"] = self.run_mode

        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                val = getattr(record, key)
                if isinstance(val, datetime):
                    log_data[key] = val.isoformat()
                elif isinstance(val, timedelta):
                    log_data[key] = f"{val.total_seconds():.0f}s"
                elif val is None:
                    continue
                else:
                    log_data[key] = str(val)

        if self.use_json:
            return json.dumps(log_data)
        return self._format_human(log_data)

    def _format_human(self, log_data: dict) -> str:
        """Format log data in a human-readable way."""
        now = datetime.now().strftime("%H:%M:%S")
        msg = log_data["message"]

        details = []
        if "kind" in log_data:
            details.append(log_data["kind"])
        if "event_ts" in log_data:
            details.append(f"at {log_data['event_ts']}")
        if "description" in log_data:
            details.append(f'"{log_data["description"]}"')
        if "duration" in log_data:
            details.append(log_data["duration"])
        if details:
            msg = f"{msg} ({' '.join(details)})"

        # No color formatting here - that's handled by the handler
        return f"{now} {log_data['level']}: {msg}"


# (minimum level, color, attrs), most severe first
LEVEL_STYLES = (
    (logging.CRITICAL, "red", ["bold", "blink"]),
    (logging.ERROR, "red", ["bold"]),
    (logging.WARNING, "yellow", ["bold"]),
    (logging.INFO, "cyan", []),
)


class ColoredConsoleHandler(logging.StreamHandler):
    """
    Console handler that adds colors based on log level.
    Debug output stays uncolored.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            for level, color, attrs in LEVEL_STYLES:
                if record.levelno >= level:
                    cprint(msg, color=color, attrs=attrs, file=self.stream)
                    break
            else:
                self.stream.write(msg + self.terminator)
            self.flush()
        except Exception:
            self.handleError(record)


def setup_logging(
    json_format: bool = False,
    log_level: int = logging.DEBUG,
    console_log_level: int = logging.ERROR,
    log_file: str = None,
    run_mode: dict = None,
) -> None:
    """
    Set up the logging system.

    Args:
        json_format: If True, write the log file in JSON format
        log_level: Logging level (default: DEBUG)
        console_log_level: Console logging level (default: ERROR)
        log_file: Optional file path to write logs to
        run_mode: Optional dict with run mode info (subcommand, data file) for filtering logs
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(min(filter(None, [log_level, console_log_level]), default=logging.WARNING))

    root_logger.handlers.clear()

    if log_file and log_level:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(StructuredFormatter(use_json=json_format, run_mode=run_mode))
        root_logger.addHandler(file_handler)
    if console_log_level:
        # Diagnostics go to stderr, program output owns stdout
        console_handler = ColoredConsoleHandler(sys.stderr)
        console_handler.setLevel(console_log_level)
        console_handler.setFormatter(StructuredFormatter(run_mode=run_mode))
        root_logger.addHandler(console_handler)


def user_output(msg: str, color: str = None, attrs: list = None, file=None) -> None:
    """
    Output message to the user (program output, not debug logging).

    Args:
        msg: Message to display to the user
        color: Optional color (e.g., 'yellow', 'red', 'green')
        attrs: Optional attributes (e.g., ['bold'])
        file: Stream to write to (default: stdout)
    """
    file = file or sys.stdout
    if color or attrs:
        cprint(msg, color=color, attrs=attrs, file=file)
    else:
        print(msg, file=file)


# Initialize logging with defaults
# This will be reconfigured by CLI with appropriate parameters
setup_logging(log_file=None)
