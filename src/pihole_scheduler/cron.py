import os
import subprocess
import tempfile
from collections.abc import Callable
from typing import Protocol

from loguru import logger

from pihole_scheduler.errors import JobRunnerError
from pihole_scheduler.schema import Action, ActuationEntry

DEFAULT_MARKER = "PiHole Schedule"

_ACTION_LABELS = {Action.ACTIVATE: "start", Action.DEACTIVATE: "end"}


class JobRunner(Protocol):
    def list_entries(self) -> list[str]: ...

    def replace_entries(self, entries: list[str]) -> None: ...


class CrontabRunner:
    """Reads and installs the current user's crontab."""

    def __init__(self, crontab_bin: str = "crontab", timeout: float = 30.0):
        self.crontab_bin = crontab_bin
        self.timeout = timeout

    def _run(self, args: list[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                [self.crontab_bin, *args],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise JobRunnerError(f"'{self.crontab_bin}' not found. Is cron installed?") from None
        except subprocess.TimeoutExpired:
            raise JobRunnerError(f"'{self.crontab_bin}' timed out") from None

    def list_entries(self) -> list[str]:
        result = self._run(["-l"])
        if result.returncode != 0:
            if "no crontab" in result.stderr.lower():
                return []
            raise JobRunnerError(f"crontab -l failed: {result.stderr.strip()}")
        return result.stdout.splitlines()

    def replace_entries(self, entries: list[str]) -> None:
        """Installs `entries` as the whole crontab in one step."""
        fd, path = tempfile.mkstemp(prefix="pihole_schedule_", suffix=".cron")
        try:
            with os.fdopen(fd, "w") as f:
                f.write("".join(f"{line}\n" for line in entries))
            result = self._run([path])
            if result.returncode != 0:
                raise JobRunnerError(f"crontab install failed: {result.stderr.strip()}")
        finally:
            os.unlink(path)


def cron_days(days) -> str:
    """Weekday ordinals (Mon=1..Sun=7) as a cron day-of-week field (Sun=0)."""
    return ",".join(str(d) for d in sorted({0 if d == 7 else d for d in days}))


class CronSynchronizer:
    """
    Keeps the crontab in step with the planned actuation entries.

    Lines carrying the owner marker belong to us and are rewritten on every
    pass; every other line is left exactly as found.
    """

    def __init__(
        self,
        runner: JobRunner,
        command_for: Callable[[str, Action], str],
        marker: str = DEFAULT_MARKER,
    ):
        self.runner = runner
        self.command_for = command_for
        self.marker = marker

    @property
    def _tag(self) -> str:
        return f"# {self.marker}:"

    def owns(self, line: str) -> bool:
        return self._tag in line

    def render(self, entry: ActuationEntry) -> str:
        command = self.command_for(entry.owner, entry.action)
        return (
            f"{entry.minute} {entry.hour} * * {cron_days(entry.days)} {command} "
            f"{self._tag} {entry.owner} {_ACTION_LABELS[entry.action]}"
        )

    def reconcile(self, existing: list[str], entries: list[ActuationEntry]) -> list[str]:
        kept = [line for line in existing if not self.owns(line)]
        return kept + [self.render(entry) for entry in entries]

    def synchronize(self, entries: list[ActuationEntry]) -> list[str]:
        """Rewrites the crontab for `entries`; returns the resulting table."""
        existing = self.runner.list_entries()
        desired = self.reconcile(existing, entries)
        if desired == existing:
            logger.debug("Crontab already up to date")
            return desired

        self.runner.replace_entries(desired)
        owners = {entry.owner for entry in entries}
        logger.info(
            f"Updated cron jobs: {len(entries)} entr{'y' if len(entries) == 1 else 'ies'} "
            f"for {len(owners)} enabled schedule(s)"
        )
        return desired
