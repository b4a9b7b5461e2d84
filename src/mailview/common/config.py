"""
Application configuration management for mailview.

This module provides configuration loading from environment variables
and configuration files, with type-safe settings classes.
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .exceptions import InvalidConfigError, MissingConfigError


class DisplayHeaderProp(BaseModel):
    """One entry of the ordered list of headers shown above the body."""

    name: str = Field(..., min_length=1, description="Header name")
    hidden: bool = Field(default=False, description="Never show this header")


def _default_display_headers() -> list[DisplayHeaderProp]:
    return [
        DisplayHeaderProp(name=name)
        for name in ("Date", "From", "To", "Cc", "Newsgroups", "Subject")
    ]


def _display_header_entry(item: Any) -> Any:
    if not isinstance(item, str):
        return item
    item = item.strip()
    if item.startswith("!"):
        return {"name": item[1:].strip(), "hidden": True}
    return {"name": item}


class ViewerSettings(BaseSettings):
    """Message text view settings."""

    model_config = SettingsConfigDict(
        env_prefix="MAILVIEW_VIEWER_",
        extra="ignore",
    )

    enable_color: bool = Field(
        default=True, description="Colour quotes and links"
    )
    recycle_quote_colors: bool = Field(
        default=False,
        description="Reuse quote colours for levels deeper than three",
    )
    display_header: bool = Field(
        default=True, description="Show headers above the body"
    )
    show_all_headers: bool = Field(
        default=False, description="Show every header as-is"
    )
    show_other_header: bool = Field(
        default=False,
        description="Show headers not listed in display_headers after the listed ones",
    )
    display_headers: Annotated[list[DisplayHeaderProp], NoDecode] = Field(
        default_factory=_default_display_headers,
        description="Ordered headers to display",
    )
    uri_command: Optional[str] = Field(
        None, description="Command used to open links, %s is replaced by the URI"
    )
    force_charset: Optional[str] = Field(
        None, description="Charset used for every text part"
    )
    status_trim_length: int = Field(
        default=60, ge=10, description="Maximum URI length shown in the status line"
    )

    @field_validator("display_headers", mode="before")
    @classmethod
    def parse_display_headers(cls, v: Any) -> Any:
        """Parse header names from a comma-separated string or a list.

        A leading '!' marks a header as hidden. JSON arrays are accepted
        as well, for parity with other list settings.
        """
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                v = json.loads(v)
            else:
                v = v.split(",")
        if isinstance(v, list):
            return [_display_header_entry(item) for item in v if item]
        return v


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore",
    )

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper


class Settings(BaseSettings):
    """Main application settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MAILVIEW_",
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="mailview", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-settings
    viewer: ViewerSettings = Field(default_factory=ViewerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_toml(cls, path: str | Path) -> "Settings":
        """
        Load settings from a TOML configuration file.

        Args:
            path: Path to the TOML configuration file.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            MissingConfigError: If the file does not exist.
            InvalidConfigError: If the file cannot be parsed or validated.
        """
        path = Path(path)
        if not path.exists():
            raise MissingConfigError("config_file", details={"path": str(path)})

        try:
            with open(path, "rb") as f:
                config_data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise InvalidConfigError(
                config_key="config_file",
                value=str(path),
                reason=f"Failed to parse TOML: {e}",
            )

        try:
            return cls._from_dict(config_data)
        except ValueError as e:
            raise InvalidConfigError(
                config_key="config_file",
                value=str(path),
                reason=str(e),
            )

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Settings":
        """
        Create settings from a dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            Settings instance.
        """
        # Map TOML sections to settings classes
        settings_kwargs: dict[str, Any] = {}

        if "app" in data:
            settings_kwargs.update(data["app"])

        if "viewer" in data:
            settings_kwargs["viewer"] = ViewerSettings(**data["viewer"])

        if "logging" in data:
            settings_kwargs["logging"] = LoggingSettings(**data["logging"])

        return cls(**settings_kwargs)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings come from environment variables and, when
    MAILVIEW_CONFIG_FILE points at an existing file, from that TOML
    file. The result is cached.

    Returns:
        Settings instance.
    """
    config_file = os.getenv("MAILVIEW_CONFIG_FILE")

    if config_file and Path(config_file).exists():
        settings = Settings.from_toml(config_file)
    else:
        settings = Settings()

    return settings


def reload_settings() -> Settings:
    """
    Reload settings, clearing the cache.

    Returns:
        Fresh Settings instance.
    """
    get_settings.cache_clear()
    return get_settings()
