"""
Alert Settings Persistence.

Loads and saves the alert settings (enabled flag, filters, alert text,
webhook) as a JSON document. Compiled predicates are never stored; the
registry recompiles them from filter names on load.
"""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ...core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_FILTER = "tokens0+"
DISCORD_WEBHOOK_URL = "https://discord.com/api/webhooks/{id}/{token}"


def default_alert_text(prefix: str) -> str:
    """Alert text used until an operator sets one."""
    return f"use `{prefix} setalert [alert]` to change this text"


@dataclass
class StoredFilter:
    """Persisted form of a filter: its query text and optional alert."""

    name: str
    alert: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> StoredFilter:
        """
        Create from a stored entry.

        Accepts the current ``{"name", "alert"}`` records and the legacy
        form where each filter was just its query string.
        """
        if isinstance(value, str):
            return cls(name=value)
        return cls(name=str(value["name"]), alert=value.get("alert"))

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "alert": self.alert}


@dataclass
class WebhookConfig:
    """
    Discord webhook credentials.

    Stored as ``{"login": [id, token], "location": guild_id}``.
    """

    id: str
    token: str
    location: str | None = None

    @property
    def url(self) -> str:
        return DISCORD_WEBHOOK_URL.format(id=self.id, token=self.token)

    @classmethod
    def from_url(cls, url: str, location: str | None = None) -> WebhookConfig:
        """
        Parse a webhook URL of the form .../webhooks/<id>/<token>.

        Raises:
            ValueError: If the URL does not contain an id and token
        """
        parts = [p for p in url.rstrip("/").split("/") if p]
        if len(parts) < 3 or parts[-3] != "webhooks":
            raise ValueError(f"Not a Discord webhook URL: {url}")
        return cls(id=parts[-2], token=parts[-1], location=location)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> WebhookConfig | None:
        if not data:
            return None
        webhook_id, token = data["login"]
        return cls(id=str(webhook_id), token=str(token), location=data.get("location"))

    def to_dict(self) -> dict[str, Any]:
        return {"login": [self.id, self.token], "location": self.location}


@dataclass
class AlertSettings:
    """Process-wide alert configuration, owned by the filter registry."""

    enabled: bool = False
    filters: list[StoredFilter] = field(default_factory=list)
    alert: str = ""
    webhook: WebhookConfig | None = None

    @classmethod
    def defaults(cls, prefix: str) -> AlertSettings:
        """Settings for a fresh install."""
        return cls(
            enabled=False,
            filters=[StoredFilter(name=DEFAULT_FILTER)],
            alert=default_alert_text(prefix),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any], prefix: str) -> AlertSettings:
        filters = [StoredFilter.from_value(v) for v in data.get("filters") or []]
        alert = data.get("alert")
        return cls(
            enabled=bool(data.get("enabled", False)),
            filters=filters,
            alert=default_alert_text(prefix) if alert is None else str(alert),
            webhook=WebhookConfig.from_dict(data.get("webhook")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "enabled": self.enabled,
            "filters": [f.to_dict() for f in self.filters],
            "alert": self.alert,
        }
        if self.webhook is not None:
            data["webhook"] = self.webhook.to_dict()
        return data


class SettingsStore:
    """
    JSON file store for AlertSettings.

    Writes are synchronous and replace the whole file atomically.
    """

    def __init__(self, path: Path, prefix: str = "!mystic"):
        self.path = path
        self.prefix = prefix

    def modified_time(self) -> float | None:
        """mtime of the settings file, or None if it does not exist."""
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def load(self) -> AlertSettings:
        """
        Load settings, falling back to defaults when the file is absent.

        Raises:
            ValueError: If the file exists but is not valid settings JSON
        """
        if not self.path.exists():
            logger.info("No settings at %s, using defaults", self.path)
            return AlertSettings.defaults(self.prefix)

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        try:
            return AlertSettings.from_dict(data, self.prefix)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Invalid settings file {self.path}: {e!r}") from e

    def save(self, settings: AlertSettings) -> None:
        """Persist the full settings document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=".settings-", suffix=".json", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(settings.to_dict(), f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved settings to %s", self.path)
