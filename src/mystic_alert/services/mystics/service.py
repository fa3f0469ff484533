"""
Mystic Watcher Service.

Wires the reference index, filter registry, event pipeline, Discord
delivery and feed listener together, and keeps the running registry in
sync with edits made to the settings file by CLI commands.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from ...core.logging import get_logger
from .listener import Connector, FeedListener
from .models import FeedConfig
from .name_resolver import OwnerResolver
from .notifications import AlertFormatter, DiscordClient
from .pipeline import EventPipeline
from .reference import REFERENCE_URL, ReferenceIndex, fetch_reference_index
from .registry import FilterRegistry

if TYPE_CHECKING:
    from .settings_store import SettingsStore

logger = get_logger(__name__)


class MysticWatcher:
    """
    Top-level runtime for mystic alerts.

    start() fails with ReferenceDataError if the reference index cannot be
    built; there is no degraded mode without it.
    """

    def __init__(
        self,
        config: FeedConfig,
        store: SettingsStore,
        reference_url: str = REFERENCE_URL,
        connector: Connector | None = None,
    ):
        self.config = config
        self.store = store
        self.reference_url = reference_url
        self._connector = connector

        self.registry: FilterRegistry | None = None
        self.discord: DiscordClient | None = None
        self.resolver: OwnerResolver | None = None
        self.pipeline: EventPipeline | None = None
        self.listener: FeedListener | None = None

        self._refresh_task: asyncio.Task | None = None
        self._settings_mtime: float | None = None

    async def start(self, index: ReferenceIndex | None = None) -> None:
        """
        Build every component and start listening.

        Args:
            index: Pre-built reference index (fetched if None)

        Raises:
            ReferenceDataError: If the reference data cannot be loaded
        """
        if index is None:
            index = await fetch_reference_index(url=self.reference_url)

        self.registry = FilterRegistry.load(self.store, index)
        self._settings_mtime = self.store.modified_time()

        self.discord = DiscordClient(webhook_url=self._webhook_url())
        self.resolver = OwnerResolver(
            url_template=self.config.player_api_url,
            timeout=self.config.enrichment_timeout_seconds,
        )
        self.pipeline = EventPipeline(
            registry=self.registry,
            sink=self.discord,
            resolver=self.resolver,
            formatter=AlertFormatter(
                player_page_url=self.config.player_page_url,
                item_image_url=self.config.item_image_url,
            ),
        )
        self.listener = FeedListener(self.config, self.pipeline, connector=self._connector)

        await self.listener.start()
        self._refresh_task = asyncio.create_task(self._settings_refresh_loop())

        if not self.registry.enabled:
            logger.warning("Alerts are disabled; run 'mystic-alert enable' to turn them on")

    async def stop(self) -> None:
        """Stop listening and release HTTP clients."""
        if self._refresh_task:
            self._refresh_task.cancel()
            try:
                await self._refresh_task
            except asyncio.CancelledError:
                pass
            self._refresh_task = None

        if self.listener:
            await self.listener.stop()

        if self.resolver:
            await self.resolver.close()

        if self.discord:
            await self.discord.close()

    def get_status(self) -> dict[str, Any]:
        status: dict[str, Any] = {
            "enabled": self.registry.enabled if self.registry else False,
            "filters": len(self.registry) if self.registry else 0,
        }
        if self.listener:
            status.update(self.listener.get_status())
        if self.discord:
            status["delivery"] = self.discord.get_metrics()
        return status

    def _webhook_url(self) -> str | None:
        assert self.registry is not None
        webhook = self.registry.webhook
        return webhook.url if webhook else None

    def refresh_settings(self) -> bool:
        """
        Reload the registry if the settings file changed on disk.

        Returns:
            True if settings were reloaded
        """
        mtime = self.store.modified_time()
        if mtime is None or mtime == self._settings_mtime or self.registry is None:
            return False

        try:
            self.registry.reload()
        except (OSError, ValueError) as e:
            logger.warning("Keeping previous settings, reload failed: %s", e)
            return False

        self._settings_mtime = mtime
        if self.discord is not None:
            self.discord.webhook_url = self._webhook_url()
        return True

    async def _settings_refresh_loop(self) -> None:
        """Periodic check for settings edits made by other processes."""
        while True:
            try:
                await asyncio.sleep(self.config.settings_refresh_seconds)
                self.refresh_settings()
            except asyncio.CancelledError:
                break
