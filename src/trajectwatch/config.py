"""Runtime configuration, read from TRAJECTWATCH_* environment variables."""

import logging
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from trajectwatch.core.models import TrajectDefaults, TravelMode

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TRAJECTWATCH_", env_file=".env", env_file_encoding="utf-8"
    )

    DATA_DIR: str = "data"
    # Traject registry backend
    STORE_BACKEND: Literal["json", "sqlite", "memory"] = "json"
    TRAJECTS_FILE: str = "trajects.json"
    SQLITE_PATH: str = "trajects.db"
    # Defaults for registrations that omit them
    DEFAULT_MODE: TravelMode = TravelMode.DRIVING
    DEFAULT_INTERVAL_MINUTES: float = 5.0
    # Routing API
    PROVIDER: Literal["distance_matrix", "routes"] = "distance_matrix"
    API_KEY: SecretStr | None = None
    PREFER_TRAFFIC: bool = True
    PROVIDER_TIMEOUT: float | None = None  # None = wait as long as the API takes
    # Seed traject registered at startup when the store is empty
    ORIGIN: str | None = None
    DESTINATION: str | None = None
    # Calendar day boundaries for history filters
    TIMEZONE: str = "UTC"
    HOST: str = "127.0.0.1"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    @field_validator("DEFAULT_INTERVAL_MINUTES")
    @classmethod
    def _positive_interval(cls, value: float) -> float:
        return value if value > 0 else 5.0

    @property
    def data_path(self) -> Path:
        return Path(self.DATA_DIR)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.TIMEZONE)

    @property
    def defaults(self) -> TrajectDefaults:
        return TrajectDefaults(
            mode=self.DEFAULT_MODE, interval_minutes=self.DEFAULT_INTERVAL_MINUTES
        )

    def public(self) -> dict[str, object]:
        """Settings safe to expose to dashboard clients (no API key)."""
        return {
            "defaultMode": self.DEFAULT_MODE.value,
            "defaultIntervalMinutes": self.DEFAULT_INTERVAL_MINUTES,
            "provider": self.PROVIDER,
            "preferTraffic": self.PREFER_TRAFFIC,
            "timezone": self.TIMEZONE,
        }


def configure_logging(level: str = "INFO") -> None:
    """Install a basic root handler at the configured level."""
    logging.basicConfig(level=level.upper(), format=_LOG_FORMAT)
