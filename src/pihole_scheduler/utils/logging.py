import sys
from pathlib import Path

from loguru import logger

from pihole_scheduler.settings import Settings

LOG_FILE_NAME = "pihole-scheduler.log"
CONSOLE_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} | {message}"


def log_file_path(settings: Settings) -> Path:
    return settings.log_dir / LOG_FILE_NAME


def setup_logging(settings: Settings, verbose: bool = False) -> None:
    """
    Sends phsched's log to stderr and to a rotating file in the log directory.

    The file keeps a record of every group toggle and crontab rewrite, which
    is what you want when a window did not block. `--verbose` or
    PIHOLE_SCHEDULER_DEBUG=1 also logs the docker and crontab invocations.
    """
    logger.remove()
    level = "DEBUG" if verbose or settings.debug else "INFO"

    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    path = log_file_path(settings)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        path,
        level=level,
        format=FILE_FORMAT,
        rotation="5 MB",
        retention=5,
        compression="zip",
    )
    logger.debug(f"Writing log to {path}")
