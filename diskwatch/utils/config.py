"""
Configuration management for diskwatch.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from diskwatch.models.schemas import check_slots

DEFAULT_SLOT_MAP = {
    "/dev/sda": 0,
    "/dev/sdb": 1,
    "/dev/sdc": 2,
    "/dev/sdd": 3,
}


class Settings(BaseSettings):
    """Daemon settings loaded from environment."""

    # Monitoring
    activity: bool = False
    poll_interval: float = 0.1  # seconds, activity mode
    idle_timeout: float = 999.0  # seconds, presence only
    inflight_field: int = 8  # 1-based column in <syspath>/stat

    # Device node -> LED slot
    slot_map: Dict[str, int] = dict(DEFAULT_SLOT_MAP)

    # Indicator driver
    led_driver: str = "console"
    led_root: Path = Path("/sys/class/leds")
    led_name_format: str = "bay{slot}:{color}"

    # Logging
    verbose: int = 0
    debug: bool = False
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="DISKWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("led_driver")
    @classmethod
    def _known_driver(cls, value: str) -> str:
        value = value.lower()
        if value not in ("console", "sysfs"):
            raise ValueError(f"unknown LED driver: {value}")
        return value

    @field_validator("slot_map")
    @classmethod
    def _valid_slots(cls, value: Dict[str, int]) -> Dict[str, int]:
        return check_slots(value)

    @field_validator("inflight_field")
    @classmethod
    def _positive_field(cls, value: int) -> int:
        if value < 1:
            raise ValueError("inflight_field is 1-based and must be >= 1")
        return value

    def effective_log_level(self) -> str:
        """Resolve the loguru level from the debug/verbose switches."""
        if self.debug:
            return "TRACE"
        if self.verbose > 0:
            return "DEBUG"
        return self.log_level.upper()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
