"""
Window arithmetic for recurring weekly schedules.

All functions are pure and work on naive local datetimes at minute
resolution. Weekdays are ISO ordinals (Monday=1 ... Sunday=7).
"""

from datetime import datetime, timedelta

from pihole_scheduler.schema import Schedule
from pihole_scheduler.utils.days import DAY_NAMES, previous_day
from pihole_scheduler.utils.time import clock_to_time, minutes_since_midnight


def weekday(moment: datetime) -> int:
    return moment.isoweekday()


def _at(day: datetime, minutes: int) -> datetime:
    return datetime.combine(day.date(), clock_to_time(minutes))


def is_active(schedule: Schedule, now: datetime) -> bool:
    """True if the schedule's window covers `now`."""
    if schedule.is_zero_length:
        return False

    cur = minutes_since_midnight(now)
    today = weekday(now)
    start, end = schedule.start_minutes, schedule.end_minutes

    if start < end:
        return today in schedule.days and start <= cur < end

    # Wraps midnight: the early-morning tail belongs to yesterday's window.
    return (today in schedule.days and cur >= start) or (
        previous_day(today) in schedule.days and cur < end
    )


def next_transition(schedule: Schedule, now: datetime) -> datetime | None:
    """
    Returns the next instant the schedule changes state.

    While active this is the end of the current window; otherwise the start
    of the next window. Zero-length schedules never change state and return
    None.
    """
    if schedule.is_zero_length:
        return None

    cur = minutes_since_midnight(now)
    start, end = schedule.start_minutes, schedule.end_minutes

    if is_active(schedule, now):
        if schedule.wraps_midnight and cur >= start:
            return _at(now + timedelta(days=1), end)
        return _at(now, end)

    if weekday(now) in schedule.days and cur < start:
        return _at(now, start)

    for days_ahead in range(1, 8):
        candidate = now + timedelta(days=days_ahead)
        if weekday(candidate) in schedule.days:
            return _at(candidate, start)

    # Unreachable while days is non-empty.
    raise RuntimeError(f"Schedule '{schedule.name}' has no days")


def describe_transition(schedule: Schedule, now: datetime) -> str:
    """Human-readable next change, e.g. 'Ends at 07:00 tomorrow'."""
    when = next_transition(schedule, now)
    if when is None:
        return "Never (zero-length window)"

    verb = "Ends" if is_active(schedule, now) else "Starts"
    days_ahead = (when.date() - now.date()).days
    if days_ahead == 0:
        return f"{verb} at {when:%H:%M} today"
    if days_ahead == 1:
        return f"{verb} at {when:%H:%M} tomorrow"
    return f"{verb} {DAY_NAMES[weekday(when) - 1]} at {when:%H:%M}"
