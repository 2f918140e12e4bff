"""Shared utility functions for timetracking."""

from datetime import date, datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import dateparser

# Formats understood without the help of dateparser. A bare time means today.
TIME_FORMATS = ("%H:%M:%S", "%H:%M", "%H")
DATETIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M", "%Y-%m-%d %H", "%Y-%m-%dT%H:%M:%S")
DATE_FORMAT = "%Y-%m-%d"

# Values of the timezone setting meaning the zone of the operating system
LOCAL_TIMEZONE_NAMES = ("local", "system")


def resolve_timezone(name: str) -> tzinfo | None:
    """
    Look up the timezone setting.

    Returns:
        None for the system zone ("local" or "system"), otherwise the
        ZoneInfo of the IANA name

    Raises:
        ValueError: If the name is not a known timezone
    """
    if name.lower() in LOCAL_TIMEZONE_NAMES:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def localize(naive: datetime, tz: tzinfo | None = None) -> datetime:
    """
    Attach a timezone to a wall clock time.

    The offset is the one in effect at that date, so a time in winter gets
    the winter offset even when resolved in summer. The result carries a
    fixed UTC offset, which keeps comparisons and subtraction exact.

    Args:
        naive: Wall clock time without tzinfo
        tz: Timezone, None for the system zone
    """
    if tz is None:
        return naive.astimezone()
    if isinstance(tz, timezone):
        return naive.replace(tzinfo=tz)
    return naive.replace(tzinfo=timezone(naive.replace(tzinfo=tz).utcoffset()))


def local_now(tz: tzinfo | None = None) -> datetime:
    """Return the current time as an aware datetime in tz (default: system zone), to the second."""
    now = datetime.now().astimezone(tz).replace(microsecond=0)
    return localize(now.replace(tzinfo=None), tz)


def parse_datetime(
    dt_string: str, now: datetime | None = None, tz: tzinfo | None = None
) -> datetime:
    """
    Parse a datetime string in various formats.

    Supports:
    - Times: "08:00:15", "08:15", "15" (today at that time)
    - Datetimes: "2021-04-01 08:00:15", "2021-04-01 08:15", "2021-04-01 15"
    - Anything dateparser understands: "yesterday 17:00", "2 hours ago",
      ISO format with offset

    Args:
        dt_string: DateTime string to parse
        now: Reference time for relative values and bare times
            (default: now)
        tz: Timezone of wall clock values without an offset, None for the
            system zone

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If the string can't be parsed
    """
    now = (now or local_now(tz)).astimezone(tz)
    text = dt_string.strip()

    for fmt in TIME_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return localize(datetime.combine(now.date(), parsed.time()), tz)

    for fmt in DATETIME_FORMATS:
        try:
            return localize(datetime.strptime(text, fmt), tz)
        except ValueError:
            continue

    # Use dateparser which handles many formats including relative dates
    dt = dateparser.parse(
        text,
        settings={
            "RELATIVE_BASE": now.replace(tzinfo=None),
            "PREFER_DATES_FROM": "past",
        },
    )

    if dt is None:
        raise ValueError(f"Unable to parse datetime string: {dt_string}")

    if dt.tzinfo is None:
        dt = localize(dt, tz)
    return dt


def parse_date_or_datetime(
    value: str, now: datetime | None = None, tz: tzinfo | None = None
) -> date | datetime:
    """
    Parse a range boundary.

    A plain "YYYY-mm-dd" yields a date (meaning the whole day), anything else
    is parsed with parse_datetime().
    """
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return parse_datetime(value, now, tz)
