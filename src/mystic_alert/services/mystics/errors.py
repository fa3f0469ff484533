"""
Mystic Service Errors.

Domain-specific exceptions for the feed, reference data and filter registry.
These errors are independent of the transport layer (CLI, chat commands).
"""

from __future__ import annotations


class MysticError(Exception):
    """Base exception for mystic alert operations."""

    pass


class ReferenceDataError(MysticError):
    """Raised when the enchantment reference cannot be fetched or parsed."""

    pass


class FeedDecodeError(MysticError):
    """Raised when a feed frame cannot be decoded into an event."""

    pass


class FilterRegistryError(MysticError):
    """Base exception for filter registry operations."""

    pass


class DuplicateFilterError(FilterRegistryError):
    """Raised when adding a filter whose name is already registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Filter already exists: {name}")


class FilterNotFoundError(FilterRegistryError):
    """Raised when a named filter is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"No such filter: {name}")


class WebhookNotConfiguredError(FilterRegistryError):
    """Raised when enabling alerts before a delivery webhook is set."""

    def __init__(self) -> None:
        super().__init__("Set a webhook before enabling alerts")
