"""Configuration management for gh-pull-all."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import TextIO

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PullAllSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    github_token: str | None = Field(default=None, validation_alias="GITHUB_TOKEN")
    threads: int = Field(default=8, validation_alias="PULL_ALL_THREADS")
    live_updates: bool = Field(default=True, validation_alias="PULL_ALL_LIVE_UPDATES")
    target_dir: Path = Field(default=Path("."), validation_alias="PULL_ALL_DIR")
    refresh_interval: float = Field(default=0.1, validation_alias="PULL_ALL_REFRESH_INTERVAL")
    log_level: str = Field(default="WARNING", validation_alias="PULL_ALL_LOG_LEVEL")
    log_file: Path | None = Field(default=None, validation_alias="PULL_ALL_LOG_FILE")
    ci: bool = Field(default=False, validation_alias="CI")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "PULL_ALL_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("threads")
    @classmethod
    def _validate_threads(cls, value: int) -> int:
        if value < 1:
            raise ValueError("PULL_ALL_THREADS must be >= 1")
        return value

    @field_validator("refresh_interval")
    @classmethod
    def _validate_refresh_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("PULL_ALL_REFRESH_INTERVAL must be > 0")
        return value

    @field_validator("ci", mode="before")
    @classmethod
    def _parse_ci(cls, value):
        # CI services set arbitrary non-empty values ("true", "1", "yes", "azure").
        if value is None:
            return False
        if isinstance(value, str):
            return value.strip().lower() not in {"", "0", "false", "no", "off"}
        return bool(value)


@lru_cache(maxsize=1)
def get_settings() -> PullAllSettings:
    """Return cached settings instance."""

    settings = PullAllSettings()
    settings.target_dir = settings.target_dir.expanduser().resolve()
    if settings.log_file is not None:
        settings.log_file = settings.log_file.expanduser().resolve()
    return settings


def is_interactive_output(stream: TextIO, settings: PullAllSettings | None = None) -> bool:
    """True when ``stream`` is a TTY and we are not running under CI."""

    isatty = getattr(stream, "isatty", None)
    if not (isatty and isatty()):
        return False
    settings = settings or get_settings()
    return not settings.ci


__all__ = ["PullAllSettings", "get_settings", "is_interactive_output"]
