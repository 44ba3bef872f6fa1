import fcntl
from contextlib import contextmanager
from pathlib import Path

from loguru import logger


@contextmanager
def exclusive_lock(lock_path: Path):
    """Holds an exclusive flock on lock_path for the duration of the block."""
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a") as f:
        logger.debug(f"Acquiring lock {lock_path}")
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
