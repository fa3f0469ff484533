"""
Mystic Alert Configuration

All runtime settings come from MYSTIC_* environment variables, or a .env
file in the working directory, validated by pydantic-settings. An
instance is a working directory holding settings.json.

Usage:
    from mystic_alert.core.config import get_settings

    path = get_settings().settings_path

Variables:
    MYSTIC_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    MYSTIC_DEBUG: Legacy debug flag (enables DEBUG level if set)
    MYSTIC_LOG_JSON: Output logs as JSON
    MYSTIC_INSTANCE_ROOT: Directory holding settings.json
    MYSTIC_SETTINGS_FILE: Override path of the persisted alert settings
    MYSTIC_BOT_PREFIX: Command prefix shown in the default alert text
    MYSTIC_FEED_URL: Websocket feed of new mystics
    MYSTIC_HEARTBEAT_INTERVAL_SECONDS: Keepalive period on the feed
    MYSTIC_RECONNECT_DELAY_SECONDS: Delay before reconnecting after a drop
    MYSTIC_SETTINGS_REFRESH_SECONDS: How often a running watcher rereads settings
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MysticSettings(BaseSettings):
    """
    Mystic Alert configuration settings with validation.

    Environment variables are automatically loaded with the MYSTIC_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="MYSTIC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level for Mystic Alert components",
    )

    debug: bool = Field(
        default=False,
        description="Legacy debug flag (enables DEBUG level if set)",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Data Paths
    # =========================================================================

    instance_root: Path = Field(
        default_factory=Path.cwd,
        description="Instance directory (defaults to the working directory)",
    )

    settings_file: Optional[Path] = Field(
        default=None,
        description="Persisted alert settings (defaults to {instance_root}/settings.json)",
    )

    # =========================================================================
    # Command Surface
    # =========================================================================

    bot_prefix: str = Field(
        default="!mystic",
        description="Command prefix referenced by the default alert text",
    )

    # =========================================================================
    # Pit Panda Endpoints
    # =========================================================================

    feed_url: str = Field(
        default="wss://pitpanda.rocks/api/newmystics",
        description="Websocket feed of mystic events",
    )

    reference_url: str = Field(
        default="https://pitpanda.rocks/pitreference",
        description="Reference data holding enchantment classes",
    )

    player_api_url: str = Field(
        default="https://pitpanda.rocks/api/players/{owner}",
        description="Player lookup used to label alert owners",
    )

    player_page_url: str = Field(
        default="https://pitpanda.rocks/players/{owner}",
        description="Player page linked from alerts",
    )

    item_image_url: str = Field(
        default="https://pitpanda.rocks/api/images/item/{item_id}",
        description="Rendered item image embedded in alerts",
    )

    # =========================================================================
    # Feed Connection Timing
    # =========================================================================

    heartbeat_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Seconds between keepalive pings on the feed",
    )

    reconnect_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Fixed delay before reconnecting after the feed drops",
    )

    enrichment_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the best-effort owner lookup",
    )

    settings_refresh_seconds: float = Field(
        default=5.0,
        gt=0,
        description="How often a running watcher checks settings.json for edits",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def effective_log_level(self) -> str:
        """Get effective log level, respecting MYSTIC_DEBUG."""
        if self.debug and self.log_level == "INFO":
            return "DEBUG"
        return self.log_level

    @property
    def log_level_int(self) -> int:
        """Get effective log level as logging constant."""
        return getattr(logging, self.effective_log_level)

    @property
    def settings_path(self) -> Path:
        """Path to the persisted alert settings."""
        if self.settings_file is not None:
            return self.settings_file
        return self.instance_root / "settings.json"


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> MysticSettings:
    """
    Get the singleton settings instance.

    The settings are validated at first access.
    """
    return MysticSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()
