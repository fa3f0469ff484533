"""
Discord delivery for mystic alerts.
"""

from .discord_client import DiscordClient, SendResult
from .formatter import Alert, AlertFormatter, format_alert_text

__all__ = [
    "Alert",
    "AlertFormatter",
    "DiscordClient",
    "SendResult",
    "format_alert_text",
]
