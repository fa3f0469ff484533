"""
Mystic Alert Service.

Watches the Pit Panda new-mystics feed, evaluates each item against the
registered filter queries and posts one Discord alert per matching event.
"""

from __future__ import annotations

__all__ = [
    # Models
    "Enchant",
    "Item",
    "FeedEvent",
    "FeedConfig",
    # Query compiler
    "FilterQuery",
    "compile_query",
    # Reference data
    "ReferenceIndex",
    "fetch_reference_index",
    # Registry
    "Filter",
    "FilterRegistry",
    "SettingsStore",
    "AlertSettings",
    # Runtime
    "EventPipeline",
    "FeedListener",
    "ConnectionState",
    "MysticWatcher",
]


def __getattr__(name: str):
    """Lazy import components to avoid circular imports."""
    if name in ("Enchant", "Item", "FeedEvent", "FeedConfig"):
        from . import models

        return getattr(models, name)

    if name in ("FilterQuery", "compile_query"):
        from . import query

        return getattr(query, name)

    if name in ("ReferenceIndex", "fetch_reference_index"):
        from . import reference

        return getattr(reference, name)

    if name in ("Filter", "FilterRegistry"):
        from . import registry

        return getattr(registry, name)

    if name in ("SettingsStore", "AlertSettings"):
        from . import settings_store

        return getattr(settings_store, name)

    if name == "EventPipeline":
        from .pipeline import EventPipeline

        return EventPipeline

    if name in ("FeedListener", "ConnectionState"):
        from . import listener

        return getattr(listener, name)

    if name == "MysticWatcher":
        from .service import MysticWatcher

        return MysticWatcher

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
