from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EconomySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="REWARDS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Lottery
    spin_cost: int = Field(default=50, gt=0)
    max_free_spins: int = Field(default=2, ge=0)
    wheel_turns: int = Field(default=5, ge=0)
    normalize_prize_table: bool = False

    # Calendar
    timezone: str = "UTC"

    # Dashboard
    histogram_days: int = Field(default=30, gt=0)
    recent_activity_limit: int = Field(default=10, gt=0)

    # Persistence; in-memory when unset
    state_file: Optional[str] = None
    opening_balance: int = Field(default=0, ge=0)

    # API
    allowed_origins: list[str] = ["*"]
    log_level: str = "INFO"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@lru_cache
def get_settings() -> EconomySettings:
    return EconomySettings()
