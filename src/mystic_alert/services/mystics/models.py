"""
Mystic Feed Data Models.

Data classes for items and events received from the Pit Panda
new-mystics feed, and the runtime configuration of the feed service.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .errors import FeedDecodeError

if TYPE_CHECKING:
    from ...core.config import MysticSettings

# Heartbeat payload exchanged on the feed in both directions
HEARTBEAT_SENTINEL = "3"

# Tag list that only reports an ownership change
OWNER_ONLY_TAGS = ("owner",)


@dataclass(frozen=True)
class Enchant:
    """A mystic enchantment: reference key plus level."""

    key: str
    level: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Enchant:
        return cls(key=str(data["key"]), level=int(data["level"]))


def _optional_int(data: dict[str, Any], key: str) -> int | None:
    value = data.get(key)
    return None if value is None else int(value)


@dataclass(frozen=True)
class Item:
    """
    Snapshot of a mystic item as it arrives on the feed.

    Field names follow Python conventions; from_dict() maps the
    feed's camelCase keys (maxLives, lastseen, _id).
    Numeric attributes the feed omits are None and fail every
    comparison.
    """

    id: str
    enchants: tuple[Enchant, ...]
    flags: frozenset[str]
    type_id: int
    lives: int | None
    max_lives: int | None
    tokens: int | None
    nonce: int | None
    owner: str
    last_seen: str | None = None
    type_name: str | None = None

    @property
    def color(self) -> int | None:
        """Pant colour class derived from the nonce."""
        return None if self.nonce is None else self.nonce % 5

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        """
        Create Item from the feed's item object.

        Raises:
            FeedDecodeError: If required fields are missing or mistyped
        """
        try:
            item_type = data.get("item") or {}
            return cls(
                id=str(data["_id"]),
                enchants=tuple(Enchant.from_dict(e) for e in data.get("enchants") or []),
                flags=frozenset(str(f) for f in data.get("flags") or []),
                type_id=int(item_type.get("id", 0)),
                lives=_optional_int(data, "lives"),
                max_lives=_optional_int(data, "maxLives"),
                tokens=_optional_int(data, "tokens"),
                nonce=_optional_int(data, "nonce"),
                owner=str(data.get("owner", "")),
                last_seen=data.get("lastseen"),
                type_name=item_type.get("name"),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise FeedDecodeError(f"Malformed item: {e!r}") from e


@dataclass(frozen=True)
class FeedEvent:
    """A decoded feed frame: what changed, and the item it changed on."""

    tags: tuple[str, ...]
    item: Item

    @property
    def is_owner_only(self) -> bool:
        """True when the event only reports a change of owner."""
        return self.tags == OWNER_ONLY_TAGS

    @classmethod
    def from_frame(cls, raw: str | bytes) -> FeedEvent:
        """
        Decode a JSON data frame.

        Raises:
            FeedDecodeError: If the frame is not a valid event object
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FeedDecodeError(f"Frame is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise FeedDecodeError("Frame is not a JSON object")

        tags = data.get("tags")
        item = data.get("item")
        if not isinstance(tags, list) or not isinstance(item, dict):
            raise FeedDecodeError("Frame lacks a tags list or item object")

        return cls(tags=tuple(str(t) for t in tags), item=Item.from_dict(item))


@dataclass
class FeedConfig:
    """Runtime configuration for the feed listener and event pipeline."""

    feed_url: str = "wss://pitpanda.rocks/api/newmystics"
    player_api_url: str = "https://pitpanda.rocks/api/players/{owner}"
    player_page_url: str = "https://pitpanda.rocks/players/{owner}"
    item_image_url: str = "https://pitpanda.rocks/api/images/item/{item_id}"
    heartbeat_interval_seconds: float = 30.0
    reconnect_delay_seconds: float = 30.0
    enrichment_timeout_seconds: float = 10.0
    settings_refresh_seconds: float = 5.0
    headers: dict[str, str] = field(
        default_factory=lambda: {"User-Agent": "MysticAlert/1.0"}
    )

    @classmethod
    def from_settings(cls, settings: MysticSettings) -> FeedConfig:
        """Create FeedConfig from environment settings."""
        return cls(
            feed_url=settings.feed_url,
            player_api_url=settings.player_api_url,
            player_page_url=settings.player_page_url,
            item_image_url=settings.item_image_url,
            heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
            reconnect_delay_seconds=settings.reconnect_delay_seconds,
            enrichment_timeout_seconds=settings.enrichment_timeout_seconds,
            settings_refresh_seconds=settings.settings_refresh_seconds,
        )
