"""
Owner Name Resolution for Mystic Alerts.

Resolves a player UUID to a display label such as "[120] Player" via the
Pit Panda player API. Lookups are best effort: every failure resolves to
None and the caller shows the raw UUID instead.
"""

from __future__ import annotations

from typing import Any

import httpx

from ...core.formatters import strip_formatting_codes
from ...core.logging import get_logger

logger = get_logger(__name__)

PLAYER_API_URL = "https://pitpanda.rocks/api/players/{owner}"


class OwnerResolver:
    """
    Resolves owner UUIDs to display labels.

    The HTTP client is created lazily and shared between lookups.
    """

    def __init__(
        self,
        url_template: str = PLAYER_API_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={"Accept": "application/json"},
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def resolve(self, owner: str) -> str | None:
        """
        Resolve an owner UUID to a display label.

        Args:
            owner: Player UUID

        Returns:
            "<level> <name>" with formatting codes removed, or None
        """
        try:
            response = await self._get_client().get(self.url_template.format(owner=owner))
        except httpx.HTTPError as e:
            logger.debug("Owner lookup for %s failed: %s", owner, e)
            return None

        if not response.is_success:
            logger.debug("Owner lookup for %s returned %d", owner, response.status_code)
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.debug("Owner lookup for %s returned non-JSON", owner)
            return None

        return parse_player_label(payload)


def parse_player_label(payload: Any) -> str | None:
    """
    Extract "<level> <name>" from a player API payload.

    Returns None unless the payload reports success with both fields.
    """
    if not isinstance(payload, dict) or not payload.get("success"):
        return None
    data = payload.get("data")
    if not isinstance(data, dict):
        return None
    name = data.get("name")
    level = data.get("formattedLevel")
    if not isinstance(name, str) or not isinstance(level, str):
        return None
    return f"{strip_formatting_codes(level)} {name}"
