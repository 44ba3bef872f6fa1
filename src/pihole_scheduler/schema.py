import ipaddress
import re
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pihole_scheduler.errors import InvalidDevice, InvalidName
from pihole_scheduler.utils.days import ALL_DAYS, normalize_days
from pihole_scheduler.utils.time import format_clock, parse_clock

_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def now_local() -> datetime:
    return datetime.now().replace(microsecond=0)


def validate_name(name: str) -> str:
    if name is None or not str(name).strip():
        raise InvalidName("Name cannot be empty")
    if not _NAME_RE.match(name):
        raise InvalidName(
            f"Invalid name '{name}': use only letters, digits, '_' and '-'"
        )
    return name


class Action(str, Enum):
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"


class Schedule(BaseModel):
    """A recurring weekly blocking window."""

    name: str
    start_time: str
    end_time: str
    devices: list[str] = Field(default_factory=list)
    days: list[int] = Field(default_factory=lambda: list(ALL_DAYS))
    enabled: bool = True
    created_at: datetime = Field(default_factory=now_local)
    updated_at: datetime = Field(default_factory=now_local)

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, value):
        return validate_name(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _check_clock(cls, value, info):
        label = "Start time" if info.field_name == "start_time" else "End time"
        return format_clock(parse_clock(value, label))

    @field_validator("days", mode="before")
    @classmethod
    def _check_days(cls, value):
        return normalize_days(value)

    @field_validator("devices", mode="before")
    @classmethod
    def _check_devices(cls, value):
        devices = []
        for device in value or []:
            device = str(device).strip()
            try:
                ipaddress.ip_address(device)
            except ValueError:
                raise InvalidDevice(f"Invalid device IP address: '{device}'") from None
            devices.append(device)
        return devices

    @property
    def start_minutes(self) -> int:
        return parse_clock(self.start_time)

    @property
    def end_minutes(self) -> int:
        return parse_clock(self.end_time)

    @property
    def wraps_midnight(self) -> bool:
        return self.start_minutes > self.end_minutes

    @property
    def is_zero_length(self) -> bool:
        return self.start_minutes == self.end_minutes

    def touch(self) -> None:
        self.updated_at = now_local()


class ActuationEntry(BaseModel):
    """'Perform action at minute_of_day on days' for one schedule."""

    model_config = ConfigDict(frozen=True)

    days: tuple[int, ...]
    minute_of_day: int
    action: Action
    owner: str

    @property
    def hour(self) -> int:
        return self.minute_of_day // 60

    @property
    def minute(self) -> int:
        return self.minute_of_day % 60


class ScheduleListing(BaseModel):
    schedule: Schedule
    days_summary: str
    devices_summary: str
    duration: str


class ScheduleStatus(BaseModel):
    name: str
    active: bool
    next_transition: datetime | None = None
    next_change: str


class StatusReport(BaseModel):
    statuses: list[ScheduleStatus] = Field(default_factory=list)
    blocking: list[str] = Field(default_factory=list)
