"""
Mystic Alert core infrastructure: configuration, logging and formatting.
"""

from .config import MysticSettings, get_settings, reset_settings
from .formatters import (
    format_datetime,
    get_utc_now,
    get_utc_timestamp,
    strip_formatting_codes,
)
from .logging import get_logger

__all__ = [
    "MysticSettings",
    "get_settings",
    "reset_settings",
    "get_logger",
    "format_datetime",
    "get_utc_now",
    "get_utc_timestamp",
    "strip_formatting_codes",
]
