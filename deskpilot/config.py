"""Application configuration."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_home() -> Path:
    return Path.home() / ".deskpilot"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every field can be overridden with a ``DESKPILOT_`` prefixed variable,
    e.g. ``DESKPILOT_TRASH_PATH=/tmp/trash``.
    """

    # Durable store
    database_url: str = Field(
        default_factory=lambda: f"sqlite:///{_default_home() / 'deskpilot.db'}"
    )
    sql_echo: bool = False  # Set to True to log all SQL queries

    # Filesystem
    # Directory scan, organize and dedupe work on when no PATH is given
    downloads_path: Path = Field(default_factory=lambda: Path.home() / "Downloads")
    trash_path: Path = Field(default_factory=lambda: Path.home() / ".deskpilot-trash")
    max_collision_attempts: int = 1000

    # Action state changes per ledger write; raise to batch on large runs
    ledger_flush_interval: int = 1

    # Hashing
    hash_workers: int = 1
    quick_hash_threshold: int = 1024 * 1024  # 1 MiB

    # Console log level when --verbose is not given
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    model_config = SettingsConfigDict(
        env_prefix="DESKPILOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra fields from .env
    )


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
