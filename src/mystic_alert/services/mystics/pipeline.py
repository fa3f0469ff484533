"""
Mystic Event Pipeline.

Turns one feed frame into at most one alert:

1. Heartbeat frames are discarded before decoding
2. Nothing happens while alerting is disabled
3. Malformed frames are dropped
4. Owner-change-only events are suppressed
5. Every filter is evaluated; no passing filter means no further work
6. The owner label is resolved (best effort)
7. One alert listing every passing filter is handed to the sink
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from ...core.logging import get_logger
from .errors import FeedDecodeError
from .models import HEARTBEAT_SENTINEL, FeedEvent
from .notifications.formatter import Alert, AlertFormatter

if TYPE_CHECKING:
    from .name_resolver import OwnerResolver
    from .registry import FilterRegistry

logger = get_logger(__name__)


class AlertSink(Protocol):
    """Delivery channel for alerts (the Discord webhook client in production)."""

    async def send_alert(self, alert: Alert) -> Any: ...


@dataclass
class PipelineStats:
    """Counters for status reporting."""

    frames: int = 0
    heartbeats: int = 0
    malformed: int = 0
    suppressed: int = 0
    unmatched: int = 0
    dispatched: int = 0
    delivery_errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return dict(self.__dict__)


class EventPipeline:
    """
    Evaluates feed events against the filter registry and dispatches alerts.

    Each call to handle_frame() is independent. The only suspend points are
    the owner lookup and the delivery itself, so decoding and filter
    evaluation happen in frame order while alerts may be delivered out of
    order.
    """

    def __init__(
        self,
        registry: FilterRegistry,
        sink: AlertSink,
        resolver: OwnerResolver | None = None,
        formatter: AlertFormatter | None = None,
    ):
        self.registry = registry
        self.sink = sink
        self.resolver = resolver
        self.formatter = formatter or AlertFormatter()
        self.stats = PipelineStats()

    @staticmethod
    def is_heartbeat(raw: str | bytes) -> bool:
        return raw == HEARTBEAT_SENTINEL or raw == HEARTBEAT_SENTINEL.encode()

    async def handle_frame(self, raw: str | bytes) -> Alert | None:
        """
        Process one raw frame from the feed.

        Returns:
            The dispatched Alert, or None if the frame produced no alert
        """
        if self.is_heartbeat(raw):
            self.stats.heartbeats += 1
            return None

        if not self.registry.enabled:
            return None

        self.stats.frames += 1
        try:
            event = FeedEvent.from_frame(raw)
        except FeedDecodeError as e:
            self.stats.malformed += 1
            logger.warning("Dropping malformed frame: %s", e)
            return None

        return await self.handle_event(event)

    async def handle_event(self, event: FeedEvent) -> Alert | None:
        """
        Evaluate a decoded event and dispatch an alert if any filter passes.

        Returns:
            The dispatched Alert, or None
        """
        logger.debug("Event %s on item %s", list(event.tags), event.item.id)

        if event.is_owner_only:
            self.stats.suppressed += 1
            return None

        passes = self.registry.match(event.item)
        if not passes:
            self.stats.unmatched += 1
            return None

        owner_label = await self._resolve_owner(event.item.owner)
        alert = self.formatter.format_event(
            event,
            passes,
            template=self.registry.alert,
            owner_label=owner_label,
        )

        try:
            result = await self.sink.send_alert(alert)
        except Exception as e:
            self.stats.delivery_errors += 1
            logger.warning("Alert delivery for item %s failed: %s", event.item.id, e)
            return None

        if result is not None and not getattr(result, "success", True):
            self.stats.delivery_errors += 1
            logger.warning(
                "Alert delivery for item %s failed: %s",
                event.item.id,
                getattr(result, "error", None),
            )
            return None

        self.stats.dispatched += 1
        logger.info(
            "Alert dispatched",
            extra={"item_id": event.item.id, "filters": ",".join(alert.filter_names)},
        )
        return alert

    async def _resolve_owner(self, owner: str) -> str:
        """Owner display label, or the raw UUID if the lookup fails."""
        if self.resolver is None:
            return owner
        try:
            label = await self.resolver.resolve(owner)
        except Exception as e:
            logger.debug("Owner lookup for %s raised: %s", owner, e)
            return owner
        return label or owner
