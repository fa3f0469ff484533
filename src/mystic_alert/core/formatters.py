"""
Output formatting helpers shared by the CLI and alert builder.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

# Minecraft formatting codes, e.g. "§6[§e120§6]"
_FORMATTING_CODE = re.compile(r"§.", re.DOTALL)


def strip_formatting_codes(text: str) -> str:
    """
    Remove Minecraft "§x" colour and style codes from text.

    Args:
        text: Formatted string from the Pit Panda API

    Returns:
        Plain text
    """
    return _FORMATTING_CODE.sub("", text)


def format_datetime(dt: datetime) -> str:
    """Format datetime as an ISO string with a trailing Z."""
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def get_utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def get_utc_timestamp() -> str:
    """
    Get current UTC timestamp string.

    Returns:
        ISO format timestamp like "2026-01-15T12:30:00Z"
    """
    return format_datetime(get_utc_now())
