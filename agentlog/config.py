"""Configuration using Pydantic Settings for automatic env var support."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentlog.errors import ConfigError
from agentlog.redaction import RedactionOptions

DEFAULT_DATA_DIR = Path("./data/logs")


class PipelineSettings(BaseSettings):
    """Ingestion worker tuning."""

    batch_size: int = Field(default=200, ge=1)
    batch_interval_ms: int = Field(default=50, ge=1)
    error_sample_limit: int = Field(default=5, ge=0)
    chunk_size: int = Field(default=64 * 1024, ge=1)
    http_connect_timeout: float = Field(default=10.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="AGENTLOG_",
        extra="ignore",
    )

    @property
    def batch_interval(self) -> float:
        """Batch interval in seconds."""
        return self.batch_interval_ms / 1000


class RedactionDefaults(BaseSettings):
    """Default display-time redaction toggles."""

    emails: bool = True
    tokens: bool = True
    long_digits: bool = True

    model_config = SettingsConfigDict(
        env_prefix="AGENTLOG_REDACT_",
        extra="ignore",
    )

    def to_options(self) -> RedactionOptions:
        return RedactionOptions(emails=self.emails, tokens=self.tokens, long_digits=self.long_digits)


class AppConfig(BaseSettings):
    """Main application configuration.

    Supports:
    - Environment variables (AGENTLOG_*, plus DATA_DIR for the data root)
    - Keyword overrides
    - Automatic type validation
    """

    data_dir: Path = Field(
        default=DEFAULT_DATA_DIR,
        validation_alias=AliasChoices("AGENTLOG_DATA_DIR", "DATA_DIR"),
    )
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    redaction: RedactionDefaults = Field(default_factory=RedactionDefaults)

    model_config = SettingsConfigDict(
        env_prefix="AGENTLOG_",
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @property
    def data_root(self) -> Path:
        """Data directory resolved against the working directory."""
        return self.data_dir.resolve()


def load_config(**overrides: Any) -> AppConfig:
    """Build the configuration from the environment plus overrides.

    Raises:
        ConfigError: If any value fails validation
    """
    try:
        return AppConfig(**overrides)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


__all__ = ["AppConfig", "PipelineSettings", "RedactionDefaults", "DEFAULT_DATA_DIR", "load_config"]
