"""Settings management using Pydantic for type validation and configuration."""

import logging
from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "VERBOSE", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    # Console Logging
    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    # File Logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(default="DEBUG", description="File log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_bytes: int = Field(default=10 * 1024 * 1024, description="Rotate log file at this size")
    backup_count: int = Field(default=5, description="Rotated log files to keep")
    include_function_names: bool = Field(
        default=True, description="Include function names and line numbers in file logs"
    )

    # Third-party Libraries
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )

    @field_validator("console_level", "file_level", "third_party_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v.upper() not in _LOG_LEVELS:
            raise ValueError(f"log level must be one of {', '.join(_LOG_LEVELS)}")
        return v.upper()


class ICSCalSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Parser Configuration
    default_timezone: str = Field(
        default="UTC", description="Zone for values without designator: UTC or +HH:MM"
    )
    duplicate_id_policy: Literal["last", "first", "error"] = Field(
        default="last", description="Which event the UID index keeps when a UID repeats"
    )
    max_content_bytes: int = Field(
        default=50 * 1024 * 1024, description="Reject documents larger than this"
    )
    max_event_span_days: int = Field(
        default=3660, ge=1, description="Cap on dates indexed for a single event"
    )

    # Fetch Configuration
    app_name: str = Field(default="icscal", description="Application name for User-Agent")
    request_timeout: int = Field(default=30, description="HTTP request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Maximum retry attempts")
    retry_backoff_factor: float = Field(default=1.5, description="Exponential backoff factor")
    validate_ssl: bool = Field(default=True, description="Validate SSL certificates")

    # Logging Configuration
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings, description="Logging settings"
    )

    # Optional YAML file layered under environment values
    config_file: Optional[Path] = Field(default=None, description="YAML configuration file")

    model_config = SettingsConfigDict(
        env_prefix="ICSCAL_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_assignment=True,
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._load_yaml_config()

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, v: str) -> str:
        # Lazy import to avoid circular dependency with the ics package
        from ..ics.datetime_utils import parse_utc_offset

        parse_utc_offset(v)
        return v

    @property
    def default_tzinfo(self) -> tzinfo:
        """Default zone as a tzinfo."""
        from ..ics.datetime_utils import parse_utc_offset

        return parse_utc_offset(self.default_timezone)

    def _load_yaml_config(self) -> None:
        """Fill fields that were not set explicitly from the YAML file, if any."""
        if not self.config_file:
            return

        if not self.config_file.exists():
            logger.warning(f"Config file not found: {self.config_file}")
            return

        with self.config_file.open(encoding="utf-8") as f:
            config_data = yaml.safe_load(f)

        if not config_data:
            return

        explicit = set(self.model_fields_set)
        sections: Dict[str, Any] = {
            **(config_data.get("parser") or {}),
            **(config_data.get("fetch") or {}),
        }
        for key, value in sections.items():
            if key not in type(self).model_fields:
                logger.warning(f"Unknown config key ignored: {key}")
                continue
            if key not in explicit:
                setattr(self, key, value)

        if config_data.get("logging") and "logging" not in explicit:
            self.logging = LoggingSettings(**config_data["logging"])

        logger.debug(f"Loaded configuration from {self.config_file}")


@lru_cache(maxsize=1)
def get_settings() -> ICSCalSettings:
    """Process-wide settings instance."""
    return ICSCalSettings()
