from __future__ import annotations

from functools import lru_cache
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = "INFO"
    log_json: bool = False
    max_upload_bytes: int = 5 * 1024 * 1024

    # Read from TRADEJOURNAL_* environment variables
    model_config = SettingsConfigDict(env_prefix="TRADEJOURNAL_")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.strip().upper()


@lru_cache()
def get_settings() -> Settings:
    """Cached; call get_settings.cache_clear() after changing the environment."""
    return Settings()
