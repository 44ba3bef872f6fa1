class ScheduleError(Exception):
    """Base class for every error the scheduler reports to the caller."""


class ValidationError(ScheduleError):
    """Bad user input. Raised before anything is mutated."""


class InvalidName(ValidationError):
    pass


class InvalidTimeFormat(ValidationError):
    pass


class InvalidDays(ValidationError):
    pass


class InvalidDevice(ValidationError):
    pass


class InvalidAction(ValidationError):
    pass


class DuplicateName(ScheduleError):
    def __init__(self, name: str):
        super().__init__(f"Schedule '{name}' already exists")
        self.name = name


class NotFound(ScheduleError):
    def __init__(self, name: str):
        super().__init__(f"Schedule '{name}' not found")
        self.name = name


class PersistenceError(ScheduleError):
    """Reading or writing the schedule store failed."""


class ActuationError(ScheduleError):
    """A command against the blocking group failed."""


class JobRunnerError(ScheduleError):
    """Reading or installing the crontab failed."""
