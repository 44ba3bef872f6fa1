from pathlib import Path

from platformdirs import user_data_dir, user_log_dir

APP_NAME = "pihole_scheduler"


def get_source_checkout() -> Path | None:
    """The git checkout phsched runs from, or None for an installed copy."""
    # src/pihole_scheduler/utils/paths.py -> checkout root
    checkout = Path(__file__).resolve().parents[3]
    if (checkout / "pyproject.toml").exists() and (checkout / ".git").exists():
        return checkout
    return None


def get_default_data_dir() -> Path:
    """Where schedules.json, its lock and config.json live."""
    checkout = get_source_checkout()
    if checkout:
        return checkout / "var" / "data"
    return Path(user_data_dir(appname=APP_NAME))


def get_default_log_dir() -> Path:
    checkout = get_source_checkout()
    if checkout:
        return checkout / "var" / "log"
    return Path(user_log_dir(appname=APP_NAME))
