"""Process settings, read from ``TEST_API_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TEST_API_", extra="ignore")

    # Empty means agent.yaml in the working directory, if present.
    agent_config: str = ""
    host: str = "0.0.0.0"
    heartbeat_interval: float = Field(60.0, gt=0, description="Seconds between heartbeats")
    shutdown_timeout: float = Field(10.0, gt=0, description="Drain deadline on shutdown")
    log_level: LogLevel = "INFO"
    access_log: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v


@lru_cache
def get_settings() -> Settings:
    return Settings()
