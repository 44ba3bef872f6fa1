from collections.abc import Callable
from datetime import datetime

from loguru import logger

from pihole_scheduler.actuation import ActuationAdapter
from pihole_scheduler.cron import CronSynchronizer
from pihole_scheduler.errors import (
    ActuationError,
    InvalidAction,
    InvalidTimeFormat,
    JobRunnerError,
    NotFound,
)
from pihole_scheduler.planner import plan_entries
from pihole_scheduler.schema import (
    Schedule,
    ScheduleListing,
    ScheduleStatus,
    StatusReport,
)
from pihole_scheduler.store import ScheduleStore
from pihole_scheduler.utils.days import format_days
from pihole_scheduler.utils.time import format_duration_seconds, window_length_minutes
from pihole_scheduler.window import describe_transition, is_active, next_transition

TEST_ACTIONS = ("enable", "disable")


def describe_devices(devices: list[str]) -> str:
    return "All devices" if not devices else f"{len(devices)} device(s)"


class ScheduleService:
    """Runs each schedule command against the store, crontab and Pi-hole."""

    def __init__(
        self,
        store: ScheduleStore,
        adapter: ActuationAdapter,
        synchronizer: CronSynchronizer,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.adapter = adapter
        self.synchronizer = synchronizer
        self.clock = clock

    # --- side effects -------------------------------------------------------

    def _ensure_group(self, schedule: Schedule) -> None:
        try:
            self.adapter.associate_devices(schedule.name, schedule.devices)
        except ActuationError as e:
            logger.error(f"Failed to set up group for '{schedule.name}': {e}")

    def _synchronize(self) -> None:
        """Rewrites owned cron lines and re-creates any missing group for enabled schedules."""
        enabled = [s for s in self.store.load() if s.enabled]
        for schedule in enabled:
            self._ensure_group(schedule)
        try:
            self.synchronizer.synchronize(plan_entries(enabled))
        except JobRunnerError as e:
            logger.error(f"Failed to update cron jobs (will retry on next change): {e}")

    def _actuate(self, description: str, *steps: Callable[[], None]) -> bool:
        """Runs adapter steps then a reload. Failures are logged, not raised."""
        try:
            for step in steps:
                step()
            self.adapter.reload()
        except ActuationError as e:
            logger.error(f"Failed to {description}: {e}")
            return False
        return True

    # --- operations -----------------------------------------------------------

    def create_schedule(
        self,
        name: str,
        start_time: str,
        end_time: str,
        devices: list[str] | None = None,
        days: list[int] | None = None,
        enabled: bool = True,
    ) -> Schedule:
        fields = dict(
            name=name,
            start_time=start_time,
            end_time=end_time,
            devices=devices or [],
            enabled=enabled,
        )
        if days is not None:
            fields["days"] = days
        schedule = Schedule(**fields)
        if schedule.is_zero_length:
            raise InvalidTimeFormat("Start time and end time must differ")

        with self.store.lock():
            self.store.add(schedule)
            logger.info(
                f"Created schedule: {name} ({schedule.start_time}-{schedule.end_time})"
            )

            # Enabled schedules get their group from _synchronize.
            if not schedule.enabled:
                self._ensure_group(schedule)
            self._synchronize()
            if schedule.enabled and is_active(schedule, self.clock()):
                self._actuate(
                    f"enable group for '{name}'",
                    lambda: self.adapter.enable_group(name),
                )
        return schedule

    def enable_schedule(self, name: str) -> bool:
        """Enables a schedule. Returns False if it was already enabled."""
        with self.store.lock():
            schedule = self.store.find_by_name(name)
            if schedule is None:
                raise NotFound(name)
            if schedule.enabled:
                logger.info(f"Schedule '{name}' is already enabled")
                return False

            schedule = self.store.update(name, _set_enabled(True))
            logger.info(f"Enabled schedule: {name}")
            self._synchronize()
            if is_active(schedule, self.clock()):
                self._actuate(
                    f"enable group for '{name}'",
                    lambda: self.adapter.enable_group(name),
                )
        return True

    def disable_schedule(self, name: str) -> bool:
        """Disables a schedule and switches its blocking off right away."""
        with self.store.lock():
            schedule = self.store.find_by_name(name)
            if schedule is None:
                raise NotFound(name)
            if not schedule.enabled:
                logger.info(f"Schedule '{name}' is already disabled")
                return False

            self._actuate(
                f"disable group for '{name}'",
                lambda: self.adapter.disable_group(name),
            )
            self.store.update(name, _set_enabled(False))
            logger.info(f"Disabled schedule: {name}")
            self._synchronize()
        return True

    def delete_schedule(self, name: str) -> Schedule:
        with self.store.lock():
            removed = self.store.remove(name)
            logger.info(f"Deleted schedule: {name}")
            self._actuate(
                f"clean up group for '{name}'",
                lambda: self.adapter.remove_group(name),
            )
            self._synchronize()
        return removed

    def show_schedule_status(self, now: datetime | None = None) -> StatusReport:
        now = now or self.clock()
        report = StatusReport()
        for schedule in self.store.load():
            if not schedule.enabled:
                continue
            active = is_active(schedule, now)
            report.statuses.append(
                ScheduleStatus(
                    name=schedule.name,
                    active=active,
                    next_transition=next_transition(schedule, now),
                    next_change=describe_transition(schedule, now),
                )
            )
            if active:
                report.blocking.append(schedule.name)
        return report

    def test_schedule(self, name: str, action: str) -> None:
        """Forces the group on or off without touching stored state or cron."""
        if action not in TEST_ACTIONS:
            raise InvalidAction(f"Invalid action '{action}'. Use 'enable' or 'disable'")
        if self.store.find_by_name(name) is None:
            raise NotFound(name)

        logger.warning(f"Testing schedule '{name}' - {action} blocking")
        if action == "enable":
            self.adapter.enable_group(name)
        else:
            self.adapter.disable_group(name)
        self.adapter.reload()

    def list_schedules(self) -> list[ScheduleListing]:
        return [
            ScheduleListing(
                schedule=s,
                days_summary=format_days(s.days),
                devices_summary=describe_devices(s.devices),
                duration=format_duration_seconds(
                    window_length_minutes(s.start_minutes, s.end_minutes) * 60
                ),
            )
            for s in self.store.load()
        ]


def _set_enabled(value: bool) -> Callable[[Schedule], None]:
    def mutate(schedule: Schedule) -> None:
        schedule.enabled = value

    return mutate
