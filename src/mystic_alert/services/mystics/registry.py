"""
Filter Registry.

Ordered list of named, compiled filters plus the global alert settings.
Every mutation is persisted immediately through the SettingsStore.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...core.logging import get_logger
from .errors import DuplicateFilterError, FilterNotFoundError, WebhookNotConfiguredError
from .query import FilterQuery, compile_query
from .settings_store import AlertSettings, StoredFilter, WebhookConfig

if TYPE_CHECKING:
    from .models import Item
    from .reference import ReferenceIndex
    from .settings_store import SettingsStore

logger = get_logger(__name__)

PAGE_SIZE = 10


@dataclass
class Filter:
    """A named filter with its compiled predicate and optional alert text."""

    name: str
    predicate: FilterQuery
    alert: str | None = None

    def matches(self, item: Item) -> bool:
        return self.predicate.matches(item)


@dataclass(frozen=True)
class FilterPage:
    """One page of the filter list for operator display."""

    page: int
    total_pages: int
    filters: tuple[Filter, ...]

    def to_dict(self) -> dict:
        return {
            "page": self.page,
            "total_pages": self.total_pages,
            "filters": [{"name": f.name, "alert": f.alert} for f in self.filters],
        }


class FilterRegistry:
    """
    Owns the compiled filters and the AlertSettings they persist through.

    Registry mutations come from a single command path, so no locking
    is done here.
    """

    def __init__(
        self,
        settings: AlertSettings,
        store: SettingsStore,
        index: ReferenceIndex,
    ):
        self._settings = settings
        self._store = store
        self._index = index
        self._filters: list[Filter] = [self._compile(f) for f in settings.filters]

    @classmethod
    def load(cls, store: SettingsStore, index: ReferenceIndex) -> FilterRegistry:
        """
        Load settings from the store and compile every stored filter.

        The store is rewritten once so legacy files are upgraded on disk.
        """
        settings = store.load()
        registry = cls(settings, store, index)
        registry.save()
        logger.info(
            "Loaded %d filters (alerts %s)",
            len(registry),
            "enabled" if settings.enabled else "disabled",
        )
        return registry

    def reload(self) -> None:
        """Re-read settings from the store, recompiling every filter."""
        self._settings = self._store.load()
        self._filters = [self._compile(f) for f in self._settings.filters]
        logger.info("Reloaded %d filters", len(self._filters))

    def _compile(self, stored: StoredFilter) -> Filter:
        return Filter(
            name=stored.name,
            predicate=compile_query(stored.name, self._index),
            alert=stored.alert,
        )

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def settings(self) -> AlertSettings:
        return self._settings

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    @property
    def alert(self) -> str:
        """Global alert template prepended to every dispatch."""
        return self._settings.alert

    @property
    def webhook(self) -> WebhookConfig | None:
        return self._settings.webhook

    @property
    def filters(self) -> tuple[Filter, ...]:
        return tuple(self._filters)

    def __len__(self) -> int:
        return len(self._filters)

    def __contains__(self, name: object) -> bool:
        return any(f.name == name for f in self._filters)

    def get(self, name: str) -> Filter:
        """
        Look up a filter by exact name.

        Raises:
            FilterNotFoundError: If no filter has that name
        """
        for f in self._filters:
            if f.name == name:
                return f
        raise FilterNotFoundError(name)

    def match(self, item: Item) -> list[Filter]:
        """Filters whose predicate accepts the item, in registry order."""
        return [f for f in self._filters if f.matches(item)]

    def list_page(self, page: int = 1) -> FilterPage:
        """
        Get a 1-indexed page of up to PAGE_SIZE filters.

        Pages below 1 are treated as page 1. Pages past the end are empty.
        """
        page = max(page, 1)
        start = (page - 1) * PAGE_SIZE
        return FilterPage(
            page=page,
            total_pages=math.ceil(len(self._filters) / PAGE_SIZE),
            filters=tuple(self._filters[start : start + PAGE_SIZE]),
        )

    # =========================================================================
    # Mutations (each persists immediately)
    # =========================================================================

    def add(self, name: str) -> Filter:
        """
        Compile and append a filter.

        Raises:
            DuplicateFilterError: If a filter with this name exists
        """
        if name in self:
            raise DuplicateFilterError(name)

        new_filter = self._compile(StoredFilter(name=name))
        self._filters.append(new_filter)
        self.save()
        logger.info("Added filter %r", name)
        return new_filter

    def remove(self, name: str) -> int:
        """
        Remove every filter with this exact name.

        Returns:
            Number of filters removed (0 if none matched)
        """
        before = len(self._filters)
        self._filters = [f for f in self._filters if f.name != name]
        removed = before - len(self._filters)
        self.save()
        if removed:
            logger.info("Removed filter %r", name)
        return removed

    def set_alert(self, name: str, text: str | None) -> Filter:
        """
        Set or clear (with None or "") a filter's alert text.

        Raises:
            FilterNotFoundError: If no filter has that name
        """
        target = self.get(name)
        target.alert = text or None
        self.save()
        return target

    def set_global_alert(self, text: str) -> None:
        self._settings.alert = text
        self.save()

    def set_webhook(self, webhook: WebhookConfig) -> None:
        self._settings.webhook = webhook
        self.save()

    def enable(self) -> None:
        """
        Turn alerting on.

        Raises:
            WebhookNotConfiguredError: If there is nowhere to deliver to
        """
        if self._settings.webhook is None:
            raise WebhookNotConfiguredError()
        self._settings.enabled = True
        self.save()

    def disable(self) -> None:
        self._settings.enabled = False
        self.save()

    def save(self) -> None:
        """Write the current filters and settings to the store."""
        self._settings.filters = [StoredFilter(f.name, f.alert) for f in self._filters]
        self._store.save(self._settings)
