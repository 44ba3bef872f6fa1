import json
import os
from collections.abc import Callable
from pathlib import Path

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from pihole_scheduler.errors import (
    DuplicateName,
    NotFound,
    PersistenceError,
    ValidationError,
)
from pihole_scheduler.schema import Schedule
from pihole_scheduler.utils.locking import exclusive_lock


class ScheduleStore:
    """Persists Schedule records as a JSON array in a single file."""

    def __init__(self, schedules_file: Path, lock_file: Path | None = None):
        self.schedules_file = Path(schedules_file)
        self.lock_file = lock_file or self.schedules_file.with_suffix(".lock")

    def lock(self):
        """Exclusive lock around a read-modify-write of the store and crontab."""
        return exclusive_lock(self.lock_file)

    def load(self) -> list[Schedule]:
        """Loads all schedules. A missing or corrupt file reads as no schedules."""
        try:
            with open(self.schedules_file, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to parse {self.schedules_file}: {e}")
            return []
        except OSError as e:
            raise PersistenceError(f"Could not read {self.schedules_file}: {e}") from e

        if not isinstance(data, list):
            logger.error(f"Ignoring {self.schedules_file}: expected a JSON array")
            return []

        try:
            return [Schedule(**s) for s in data]
        except (PydanticValidationError, ValidationError, TypeError) as e:
            logger.error(f"Failed to load schedules: {e}")
            return []

    def save(self, schedules: list[Schedule]):
        """Atomically replaces the store with `schedules`."""
        payload = json.dumps(
            [s.model_dump(mode="json") for s in schedules],
            indent=4,
        )
        tmp_path = self.schedules_file.with_name(self.schedules_file.name + ".tmp")
        try:
            self.schedules_file.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload + "\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.schedules_file)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Could not write {self.schedules_file}: {e}") from e
        logger.debug(f"Saved {len(schedules)} schedule(s) to {self.schedules_file}")

    def find_by_name(self, name: str) -> Schedule | None:
        return next((s for s in self.load() if s.name == name), None)

    def add(self, schedule: Schedule) -> Schedule:
        """Appends a new schedule and saves it."""
        schedules = self.load()
        if any(s.name == schedule.name for s in schedules):
            raise DuplicateName(schedule.name)
        schedules.append(schedule)
        self.save(schedules)
        return schedule

    def remove(self, name: str) -> Schedule:
        """Removes a schedule by name and returns it."""
        schedules = self.load()
        for i, s in enumerate(schedules):
            if s.name == name:
                removed = schedules.pop(i)
                self.save(schedules)
                return removed
        raise NotFound(name)

    def update(self, name: str, mutator: Callable[[Schedule], None]) -> Schedule:
        """Applies `mutator` to the named schedule in place and saves it."""
        schedules = self.load()
        for s in schedules:
            if s.name == name:
                mutator(s)
                s.touch()
                self.save(schedules)
                return s
        raise NotFound(name)
