import re

from loguru import logger

from pihole_scheduler.errors import InvalidDays

# Monday=1 ... Sunday=7
DAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]
ALL_DAYS = [1, 2, 3, 4, 5, 6, 7]
WEEKDAYS = [1, 2, 3, 4, 5]
WEEKENDS = [6, 7]

_KEYWORDS = {
    "all": ALL_DAYS,
    "daily": ALL_DAYS,
    "everyday": ALL_DAYS,
    "weekdays": WEEKDAYS,
    "weekends": WEEKENDS,
}
_NAME_LOOKUP = {}
for _ordinal, _name in enumerate(DAY_NAMES, 1):
    _NAME_LOOKUP[_name.lower()] = _ordinal
    _NAME_LOOKUP[_name[:3].lower()] = _ordinal


def normalize_days(days) -> list[int]:
    """Collapses duplicates and sorts; rejects empty sets and out-of-range ordinals."""
    try:
        ordinals = sorted({int(d) for d in days})
    except (TypeError, ValueError):
        raise InvalidDays(f"Days must be weekday numbers 1-7, got {days!r}") from None
    if not ordinals:
        raise InvalidDays("At least one day is required")
    bad = [d for d in ordinals if d < 1 or d > 7]
    if bad:
        raise InvalidDays(f"Days must be between 1 (Monday) and 7 (Sunday), got {bad}")
    return ordinals


def parse_days(text: str | None) -> list[int]:
    """
    Parses a --days value such as 'weekdays', 'mon,wed,fri', '1 3 5' or
    'weekends, monday'.

    Unrecognized tokens are dropped. Missing text means every day; text
    that yields no days at all raises InvalidDays.
    """
    if text is None:
        return list(ALL_DAYS)

    found: set[int] = set()
    for token in re.split(r"[,\s]+", text.strip().lower()):
        if not token:
            continue
        if token in _KEYWORDS:
            found.update(_KEYWORDS[token])
        elif token in _NAME_LOOKUP:
            found.add(_NAME_LOOKUP[token])
        elif token.isdigit() and 1 <= int(token) <= 7:
            found.add(int(token))
        else:
            logger.debug(f"Ignoring unrecognized day token: {token!r}")

    if not found:
        raise InvalidDays(
            f"Could not parse any days from '{text}'. Use all, weekdays, weekends, "
            "day names or numbers 1-7."
        )
    return sorted(found)


def format_days(days) -> str:
    """Human-readable summary of a day set."""
    ordinals = sorted(set(days))
    if ordinals == ALL_DAYS:
        return "Every day"
    if ordinals == WEEKDAYS:
        return "Weekdays"
    if ordinals == WEEKENDS:
        return "Weekends"
    return ", ".join(DAY_NAMES[d - 1] for d in ordinals)


def previous_day(day: int) -> int:
    return 7 if day == 1 else day - 1


def next_day(day: int) -> int:
    return 1 if day == 7 else day + 1
