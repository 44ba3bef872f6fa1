import pytest

from conftest import MONDAY, SATURDAY, UNRELATED_CRON
from pihole_scheduler.errors import (
    DuplicateName,
    InvalidAction,
    InvalidDays,
    InvalidName,
    InvalidTimeFormat,
    JobRunnerError,
    NotFound,
)


def create_night_block(service, **overrides):
    fields = dict(name="Night_Block", start_time="22:00", end_time="07:00", devices=[])
    fields.update(overrides)
    return service.create_schedule(**fields)


def owned_lines(runner):
    return [line for line in runner.entries if "# PiHole Schedule:" in line]


class TestCreate:
    def test_night_block_scenario(self, service, clock):
        create_night_block(service)

        listings = service.list_schedules()
        assert len(listings) == 1
        assert listings[0].schedule.enabled
        assert listings[0].days_summary == "Every day"
        assert listings[0].devices_summary == "All devices"
        assert listings[0].duration == "9h 0m"

        active = service.show_schedule_status(now=MONDAY.replace(hour=23, minute=30))
        assert active.statuses[0].active is True
        assert active.blocking == ["Night_Block"]

        idle = service.show_schedule_status(now=MONDAY.replace(hour=12))
        assert idle.statuses[0].active is False
        assert idle.statuses[0].next_transition == MONDAY.replace(hour=22)
        assert idle.blocking == []

    def test_sets_up_group_and_cron(self, service, adapter, runner):
        create_night_block(service, devices=["192.168.1.50"])

        assert adapter.calls == [("associate", "Night_Block", ["192.168.1.50"])]
        assert runner.entries[: len(UNRELATED_CRON)] == UNRELATED_CRON
        assert len(owned_lines(runner)) == 2

    def test_inside_window_enables_group_now(self, service, adapter, clock):
        clock.now = MONDAY.replace(hour=23)
        create_night_block(service)
        assert ("enable", "Night_Block") in adapter.calls

    def test_disabled_schedule_has_no_cron_entries(self, service, adapter, runner, clock):
        clock.now = MONDAY.replace(hour=23)
        create_night_block(service, enabled=False)

        assert owned_lines(runner) == []
        assert ("enable", "Night_Block") not in adapter.calls

    def test_duplicate_name(self, service, store):
        create_night_block(service)
        before = store.schedules_file.read_bytes()

        with pytest.raises(DuplicateName):
            create_night_block(service, start_time="01:00", end_time="02:00")

        assert store.schedules_file.read_bytes() == before

    @pytest.mark.parametrize(
        "overrides, error",
        [
            (dict(name="bad name"), InvalidName),
            (dict(name=""), InvalidName),
            (dict(start_time="25:00"), InvalidTimeFormat),
            (dict(end_time="7pm"), InvalidTimeFormat),
            (dict(start_time="08:00", end_time="08:00"), InvalidTimeFormat),
            (dict(days=[]), InvalidDays),
            (dict(days=[0, 8]), InvalidDays),
        ],
    )
    def test_validation_aborts_without_mutation(
        self, service, store, adapter, runner, overrides, error
    ):
        with pytest.raises(error):
            create_night_block(service, **overrides)

        assert not store.schedules_file.exists()
        assert adapter.calls == []
        assert runner.writes == 0

    def test_work_hours_not_active_on_saturday(self, service):
        service.create_schedule(
            "Work_Hours", "09:00", "17:00", devices=["192.168.1.50"], days=[1, 2, 3, 4, 5]
        )
        report = service.show_schedule_status(now=SATURDAY.replace(hour=10))
        assert report.statuses[0].active is False
        assert report.statuses[0].next_transition == MONDAY.replace(hour=9, day=26)

        listing = service.list_schedules()[0]
        assert listing.days_summary == "Weekdays"
        assert listing.devices_summary == "1 device(s)"


class TestEnableDisable:
    def test_disable_while_active_forces_group_off(self, service, adapter, runner, store, clock):
        create_night_block(service)
        clock.now = MONDAY.replace(hour=23, minute=30)
        adapter.calls.clear()

        assert service.disable_schedule("Night_Block") is True

        assert adapter.calls[0] == ("disable", "Night_Block")
        assert store.find_by_name("Night_Block").enabled is False
        assert owned_lines(runner) == []
        assert runner.entries == UNRELATED_CRON

    def test_disable_twice_is_a_no_op(self, service, adapter):
        create_night_block(service)
        service.disable_schedule("Night_Block")
        adapter.calls.clear()

        assert service.disable_schedule("Night_Block") is False
        assert adapter.calls == []

    def test_enable_restores_cron_entries(self, service, runner):
        create_night_block(service, enabled=False)
        assert owned_lines(runner) == []

        assert service.enable_schedule("Night_Block") is True
        assert len(owned_lines(runner)) == 2
        assert service.enable_schedule("Night_Block") is False

    def test_enable_inside_window_enables_group(self, service, adapter, clock):
        create_night_block(service, enabled=False)
        clock.now = MONDAY.replace(hour=2)

        service.enable_schedule("Night_Block")

        assert ("enable", "Night_Block") in adapter.calls

    def test_unknown_name(self, service):
        with pytest.raises(NotFound):
            service.enable_schedule("nope")
        with pytest.raises(NotFound):
            service.disable_schedule("nope")

    def test_adapter_failure_does_not_roll_back(self, service, adapter, store):
        create_night_block(service)
        adapter.fail = True

        assert service.disable_schedule("Night_Block") is True
        assert store.find_by_name("Night_Block").enabled is False

    def test_cron_failure_does_not_roll_back(self, service, runner, store, monkeypatch):
        create_night_block(service)

        def broken(entries):
            raise JobRunnerError("crontab exploded")

        monkeypatch.setattr(runner, "replace_entries", broken)
        service.disable_schedule("Night_Block")

        assert store.find_by_name("Night_Block").enabled is False

    def test_enable_recreates_group_that_failed_at_create(self, service, adapter, clock):
        clock.now = MONDAY.replace(hour=23)
        adapter.fail = True
        create_night_block(service, enabled=False)
        assert adapter.calls == []

        adapter.fail = False
        assert service.enable_schedule("Night_Block") is True

        assert adapter.calls[0] == ("associate", "Night_Block", [])
        assert ("enable", "Night_Block") in adapter.calls

    def test_later_change_recreates_missing_group(self, service, adapter):
        adapter.fail = True
        create_night_block(service)
        adapter.fail = False

        service.create_schedule("Work_Hours", "09:00", "17:00", days=[1, 2, 3, 4, 5])

        assert ("associate", "Night_Block", []) in adapter.calls


class TestDelete:
    def test_delete_removes_entries_and_group(self, service, adapter, runner, store):
        create_night_block(service)
        service.create_schedule("Work_Hours", "09:00", "17:00", days=[1, 2, 3, 4, 5])
        work_lines = [line for line in owned_lines(runner) if "Work_Hours" in line]
        adapter.calls.clear()

        removed = service.delete_schedule("Night_Block")

        assert removed.name == "Night_Block"
        assert [s.name for s in store.load()] == ["Work_Hours"]
        assert adapter.calls == [
            ("remove", "Night_Block"),
            ("reload",),
            ("associate", "Work_Hours", []),
        ]
        assert runner.entries == UNRELATED_CRON + work_lines

    def test_delete_unknown(self, service):
        with pytest.raises(NotFound):
            service.delete_schedule("nope")


class TestManualTest:
    def test_enable_and_disable(self, service, adapter, store, runner):
        create_night_block(service)
        before = store.schedules_file.read_bytes()
        writes = runner.writes
        adapter.calls.clear()

        service.test_schedule("Night_Block", "enable")
        service.test_schedule("Night_Block", "disable")

        assert adapter.calls == [
            ("enable", "Night_Block"),
            ("reload",),
            ("disable", "Night_Block"),
            ("reload",),
        ]
        assert store.schedules_file.read_bytes() == before
        assert runner.writes == writes

    def test_invalid_action(self, service):
        create_night_block(service)
        with pytest.raises(InvalidAction):
            service.test_schedule("Night_Block", "toggle")

    def test_unknown_name(self, service):
        with pytest.raises(NotFound):
            service.test_schedule("nope", "enable")


def test_status_skips_disabled_schedules(service):
    create_night_block(service)
    service.create_schedule("Off", "01:00", "02:00", enabled=False)

    report = service.show_schedule_status()
    assert [s.name for s in report.statuses] == ["Night_Block"]
    assert report.statuses[0].next_change == "Starts at 22:00 today"
