"""
Mystic Alert - Pit Panda mystic feed alerts for Discord

Watches the real-time feed of new and changed mystic items, runs every
item through a list of filter queries and posts a Discord alert listing
the filters it matched.

Usage as CLI:
    python -m mystic_alert add "sword,tokens6+"
    python -m mystic_alert set-webhook https://discord.com/api/webhooks/<id>/<token>
    python -m mystic_alert enable
    python -m mystic_alert run

Package structure:
    mystic_alert/
    ├── core/              # Configuration, logging, formatting
    ├── commands/          # CLI command implementations
    └── services/mystics/  # Query compiler, registry, feed pipeline
"""

__version__ = "1.0.0"

from .core import get_utc_timestamp

__all__ = [
    "__version__",
    "get_utc_timestamp",
]
