"""
Discord Alert Formatter.

Builds the alert for a feed event that passed one or more filters:
the alert text followed by every passing filter's own alert, and an
embed describing the mystic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Sequence

from ....core.formatters import get_utc_now

if TYPE_CHECKING:
    from ..models import FeedEvent
    from ..registry import Filter

ALERT_TITLE = "New Mystic!"

# Embed colour (decimal) for mystic alerts
ALERT_COLOR = 0x3498DB


@dataclass(frozen=True)
class Alert:
    """One dispatch: a text body plus an embed."""

    content: str
    title: str
    description: str
    image_url: str
    timestamp: datetime
    filter_names: tuple[str, ...] = ()
    owner_label: str = ""

    def to_webhook_payload(self) -> dict[str, Any]:
        """Discord webhook JSON body."""
        return {
            "content": self.content,
            "embeds": [
                {
                    "title": self.title,
                    "description": self.description,
                    "color": ALERT_COLOR,
                    "image": {"url": self.image_url},
                    "timestamp": self.timestamp.isoformat(),
                }
            ],
        }


def format_alert_text(template: str, passes: Sequence[Filter]) -> str:
    """Global alert text, then each passing filter's alert on its own line."""
    return template + "".join(f"\n{f.alert}" for f in passes if f.alert)


@dataclass
class AlertFormatter:
    """Formats mystic events as Discord alerts."""

    player_page_url: str = "https://pitpanda.rocks/players/{owner}"
    item_image_url: str = "https://pitpanda.rocks/api/images/item/{item_id}"

    def format_event(
        self,
        event: FeedEvent,
        passes: Sequence[Filter],
        template: str,
        owner_label: str | None = None,
        timestamp: datetime | None = None,
    ) -> Alert:
        """
        Format an event that passed filters.

        Args:
            event: The decoded feed event
            passes: Filters that accepted the item, in registry order
            template: Global alert text
            owner_label: Resolved owner display name (raw UUID if None)
            timestamp: Embed timestamp (now if None)

        Returns:
            Alert ready for delivery
        """
        item = event.item
        label = owner_label or item.owner
        owner_link = self.player_page_url.format(owner=item.owner)

        description = "\n".join(
            [
                f"Owner: [{label}]({owner_link})",
                "Events: " + ", ".join(f"`{tag}`" for tag in event.tags),
                "Passed filters: " + ", ".join(f"`{f.name}`" for f in passes),
            ]
        )

        return Alert(
            content=format_alert_text(template, passes),
            title=ALERT_TITLE,
            description=description,
            image_url=self.item_image_url.format(item_id=item.id),
            timestamp=timestamp or get_utc_now(),
            filter_names=tuple(f.name for f in passes),
            owner_label=label,
        )
