from collections.abc import Iterable

from pihole_scheduler.schema import Action, ActuationEntry, Schedule
from pihole_scheduler.utils.days import next_day


def shift_days(days: Iterable[int]) -> tuple[int, ...]:
    """Advances every weekday by one, Sunday wrapping to Monday."""
    return tuple(sorted({next_day(d) for d in days}))


def plan_schedule(schedule: Schedule) -> list[ActuationEntry]:
    """Activate/deactivate entries for a single schedule."""
    if schedule.is_zero_length:
        return []

    days = tuple(schedule.days)
    # The end of a window that wraps midnight falls on the following day.
    end_days = shift_days(days) if schedule.wraps_midnight else days
    return [
        ActuationEntry(
            days=days,
            minute_of_day=schedule.start_minutes,
            action=Action.ACTIVATE,
            owner=schedule.name,
        ),
        ActuationEntry(
            days=end_days,
            minute_of_day=schedule.end_minutes,
            action=Action.DEACTIVATE,
            owner=schedule.name,
        ),
    ]


def plan_entries(schedules: Iterable[Schedule]) -> list[ActuationEntry]:
    """Actuation entries for every enabled schedule, in store order."""
    entries: list[ActuationEntry] = []
    for schedule in schedules:
        if not schedule.enabled:
            continue
        entries.extend(plan_schedule(schedule))
    return entries
