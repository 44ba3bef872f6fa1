import json
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pihole_scheduler.utils.paths import get_default_data_dir, get_default_log_dir


class Settings(BaseSettings):
    """Application-wide settings managed via env vars, .env and config.json."""

    debug: bool = Field(default=False, description="Master toggle for verbose logging")

    # Paths
    data_dir: Path = Field(default_factory=get_default_data_dir)
    log_dir: Path = Field(default_factory=get_default_log_dir)

    def model_post_init(self, __context):
        # Ensure paths are absolute
        self.data_dir = self.data_dir.resolve()
        self.log_dir = self.log_dir.resolve()

    @property
    def schedules_file(self) -> Path:
        return self.data_dir / "schedules.json"

    @property
    def lock_file(self) -> Path:
        return self.data_dir / "schedules.lock"

    @property
    def config_file(self) -> Path:
        return self.data_dir / "config.json"

    # Pi-hole container
    container_name: str = "pihole"
    gravity_db: str = "/etc/pihole/gravity.db"
    docker_bin: str = "docker"
    command_timeout: float = 30.0

    # Crontab
    crontab_bin: str = "crontab"
    cron_marker: str = "PiHole Schedule"

    model_config = SettingsConfigDict(
        env_prefix="PIHOLE_SCHEDULER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def save(self):
        """Saves current settings to config.json in data_dir."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        with open(self.config_file, "w") as f:
            json.dump(data, f, indent=4)


def load_settings(**overrides) -> Settings:
    """Loads settings, merging with config.json if it exists."""
    initial = Settings(**overrides)
    if not initial.config_file.exists():
        return initial

    try:
        with open(initial.config_file) as f:
            config_data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return initial

    merged = {**initial.model_dump(), **config_data, **overrides}
    return Settings(**merged)
