import re
from datetime import datetime, time

from pihole_scheduler.errors import InvalidTimeFormat

MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")


def parse_clock(time_str: str, field_name: str = "Time") -> int:
    """Parses 'HH:MM' (or 'H:MM') into minutes since midnight."""
    match = _CLOCK_RE.match(str(time_str).strip())
    if not match:
        raise InvalidTimeFormat(
            f"{field_name} must be in HH:MM format (e.g., 14:30), got '{time_str}'"
        )
    return int(match.group(1)) * 60 + int(match.group(2))


def format_clock(minutes: int) -> str:
    """Formats minutes since midnight as a zero-padded 'HH:MM'."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def clock_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def minutes_since_midnight(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def window_length_minutes(start_minutes: int, end_minutes: int) -> int:
    """Length of a window in minutes; windows that wrap midnight end tomorrow."""
    return (end_minutes - start_minutes) % MINUTES_PER_DAY


def format_duration_seconds(seconds: int) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2h 30m' or '45m').
    """
    minutes = seconds // 60
    if minutes == 0 and seconds > 0:  # Handle durations less than a minute
        return "<1m"
    elif minutes <= 60:
        return f"{minutes}m"
    else:
        hours = minutes // 60
        remaining_minutes = minutes % 60
        return f"{hours}h {remaining_minutes}m"
