import shlex
import subprocess
from typing import Protocol

from loguru import logger

from pihole_scheduler.errors import ActuationError
from pihole_scheduler.schema import Action

RELOAD_ARGS = ["pihole", "restartdns", "reload-lists"]
REGEX_DENY = 3
DEFAULT_GROUP_ID = 0


def group_name(schedule_name: str) -> str:
    return f"Schedule_{schedule_name}"


def block_all_regex(schedule_name: str) -> str:
    """
    A regex matching every domain, distinct per schedule.

    gravity.db keeps (domain, type) unique, so each schedule needs its own
    spelling of '.*' to get a rule it can switch independently.
    """
    return f".*({group_name(schedule_name)})?"


def block_all_comment(schedule_name: str) -> str:
    return f"Block all for {schedule_name}"


class ActuationAdapter(Protocol):
    """Toggles the blocking group that backs a schedule."""

    def enable_group(self, schedule_name: str) -> None: ...

    def disable_group(self, schedule_name: str) -> None: ...

    def associate_devices(self, schedule_name: str, devices: list[str]) -> None: ...

    def remove_group(self, schedule_name: str) -> None: ...

    def reload(self) -> None: ...

    def command_for(self, schedule_name: str, action: Action) -> str: ...


class PiholeDockerAdapter:
    """Drives Pi-hole's gravity database inside a Docker container."""

    def __init__(
        self,
        container_name: str = "pihole",
        gravity_db: str = "/etc/pihole/gravity.db",
        docker_bin: str = "docker",
        timeout: float = 30.0,
    ):
        self.container_name = container_name
        self.gravity_db = gravity_db
        self.docker_bin = docker_bin
        self.timeout = timeout

    def _exec_args(self, *args: str) -> list[str]:
        return [self.docker_bin, "exec", self.container_name, *args]

    def _run(self, args: list[str]) -> str:
        logger.debug(f"EXEC: {shlex.join(args)}")
        try:
            result = subprocess.run(
                args, capture_output=True, text=True, timeout=self.timeout
            )
        except FileNotFoundError:
            raise ActuationError(f"'{args[0]}' not found. Is Docker installed?") from None
        except subprocess.TimeoutExpired:
            raise ActuationError(
                f"Timed out after {self.timeout}s: {shlex.join(args)}"
            ) from None

        if result.returncode != 0:
            raise ActuationError(
                f"Command failed ({result.returncode}): {shlex.join(args)}: "
                f"{result.stderr.strip()}"
            )
        return result.stdout

    def _sql(self, script: str) -> str:
        """Runs one or more ';'-terminated statements in a single sqlite3 call."""
        return self._run(self._exec_args("sqlite3", self.gravity_db, script))

    @staticmethod
    def _set_enabled_sql(schedule_name: str, enabled: bool) -> str:
        # Device-scoped schedules are gated by their group, network-wide ones
        # by their regex row (linked to Default); flipping both covers either.
        return (
            f"UPDATE 'group' SET enabled = {int(enabled)} "
            f"WHERE name = '{group_name(schedule_name)}'; "
            f"UPDATE domainlist SET enabled = {int(enabled)} "
            f"WHERE type = {REGEX_DENY} AND domain = '{block_all_regex(schedule_name)}';"
        )

    def enable_group(self, schedule_name: str) -> None:
        self._sql(self._set_enabled_sql(schedule_name, True))
        logger.info(f"Enabled Pi-hole group: {group_name(schedule_name)}")

    def disable_group(self, schedule_name: str) -> None:
        self._sql(self._set_enabled_sql(schedule_name, False))
        logger.info(f"Disabled Pi-hole group: {group_name(schedule_name)}")

    def associate_devices(self, schedule_name: str, devices: list[str]) -> None:
        """
        Creates the schedule's group and its own block-everything regex, both
        switched off, and scopes the regex.

        With devices, the regex applies to the schedule's group only and each
        device joins that group. Without devices, the regex applies to the
        Default group, which every client belongs to unless moved out of it.
        Safe to repeat: existing rows and their enabled state are kept.
        """
        group = group_name(schedule_name)
        regex = block_all_regex(schedule_name)
        regex_id = f"(SELECT id FROM domainlist WHERE type = {REGEX_DENY} AND domain = '{regex}')"
        scope_group = (
            f"(SELECT id FROM 'group' WHERE name = '{group}')"
            if devices
            else str(DEFAULT_GROUP_ID)
        )
        logger.info(
            f"Setting up Pi-hole group: {group} "
            f"({', '.join(devices) if devices else 'all devices'})"
        )

        statements = [
            "INSERT OR IGNORE INTO 'group' (name, enabled, description) "
            f"VALUES ('{group}', 0, 'Schedule: {schedule_name}');",
            "INSERT OR IGNORE INTO domainlist (type, domain, enabled, comment) "
            f"VALUES ({REGEX_DENY}, '{regex}', 0, '{block_all_comment(schedule_name)}');",
            # Pi-hole links every new domain to Default; keep only the intended scope.
            f"DELETE FROM domainlist_by_group WHERE domainlist_id = {regex_id} "
            f"AND group_id != {scope_group};",
            "INSERT OR IGNORE INTO domainlist_by_group (domainlist_id, group_id) "
            f"VALUES ({regex_id}, {scope_group});",
        ]
        for device in devices:
            statements.append(
                "INSERT OR IGNORE INTO client (ip, comment) "
                f"VALUES ('{device}', 'Schedule managed device');"
            )
            statements.append(
                "INSERT OR IGNORE INTO client_by_group (client_id, group_id) "
                "SELECT c.id, g.id FROM client c, 'group' g "
                f"WHERE c.ip = '{device}' AND g.name = '{group}';"
            )
        self._sql(" ".join(statements))

    def remove_group(self, schedule_name: str) -> None:
        group = group_name(schedule_name)
        regex = block_all_regex(schedule_name)
        group_id = f"(SELECT id FROM 'group' WHERE name = '{group}')"
        self._sql(
            "DELETE FROM domainlist_by_group WHERE domainlist_id IN "
            f"(SELECT id FROM domainlist WHERE type = {REGEX_DENY} AND domain = '{regex}') "
            f"OR group_id = {group_id}; "
            f"DELETE FROM client_by_group WHERE group_id = {group_id}; "
            f"DELETE FROM 'group' WHERE name = '{group}'; "
            f"DELETE FROM domainlist WHERE type = {REGEX_DENY} AND domain = '{regex}';"
        )
        logger.info(f"Cleaned up Pi-hole group: {group}")

    def reload(self) -> None:
        self._run(self._exec_args(*RELOAD_ARGS))

    def command_for(self, schedule_name: str, action: Action) -> str:
        """Shell command a crontab line runs to apply `action`."""
        statement = self._set_enabled_sql(schedule_name, action == Action.ACTIVATE)
        toggle = shlex.join(self._exec_args("sqlite3", self.gravity_db, statement))
        reload = shlex.join(self._exec_args(*RELOAD_ARGS))
        return f"{toggle} && {reload}"
