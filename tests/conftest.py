from datetime import datetime

import pytest

from pihole_scheduler.cron import CronSynchronizer
from pihole_scheduler.errors import ActuationError
from pihole_scheduler.schema import Action
from pihole_scheduler.service import ScheduleService
from pihole_scheduler.store import ScheduleStore

# 2026-10-19 is a Monday.
MONDAY = datetime(2026, 10, 19)
SATURDAY = datetime(2026, 10, 24)

UNRELATED_CRON = [
    "# m h dom mon dow command",
    "0 3 * * * /usr/local/bin/backup.sh",
    "*/5 * * * * echo 'heartbeat' >> /tmp/hb.log",
]


class FakeAdapter:
    """Records blocking-group calls instead of talking to Docker."""

    def __init__(self):
        self.calls = []
        self.fail = False

    def _record(self, *call):
        if self.fail:
            raise ActuationError(f"boom: {call[0]}")
        self.calls.append(call)

    def enable_group(self, schedule_name):
        self._record("enable", schedule_name)

    def disable_group(self, schedule_name):
        self._record("disable", schedule_name)

    def associate_devices(self, schedule_name, devices):
        self._record("associate", schedule_name, list(devices))

    def remove_group(self, schedule_name):
        self._record("remove", schedule_name)

    def reload(self):
        self._record("reload")

    def command_for(self, schedule_name, action: Action) -> str:
        return f"/usr/bin/toggle {schedule_name} {action.value}"


class FakeJobRunner:
    def __init__(self, entries=None):
        self.entries = list(entries or [])
        self.writes = 0

    def list_entries(self):
        return list(self.entries)

    def replace_entries(self, entries):
        self.entries = list(entries)
        self.writes += 1


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def store(tmp_path):
    return ScheduleStore(tmp_path / "schedules.json")


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def runner():
    return FakeJobRunner(UNRELATED_CRON)


@pytest.fixture
def synchronizer(runner, adapter):
    return CronSynchronizer(runner, adapter.command_for)


@pytest.fixture
def clock():
    return FixedClock(MONDAY.replace(hour=12))


@pytest.fixture
def service(store, adapter, synchronizer, clock):
    return ScheduleService(store, adapter, synchronizer, clock=clock)
