"""
Tests for owner name resolution.
"""

from __future__ import annotations

import httpx
import pytest

from mystic_alert.services.mystics.name_resolver import OwnerResolver, parse_player_label

OWNER = "0f8fad5bd9cb469fa16570867728950e"


def _resolver(handler) -> OwnerResolver:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OwnerResolver(client=client)


def _player(level: str = "§7[§e120§7]", name: str = "Player") -> dict:
    return {"success": True, "data": {"name": name, "formattedLevel": level}}


class TestParsePlayerLabel:
    """Tests for parse_player_label."""

    def test_strips_formatting(self):
        assert parse_player_label(_player()) == "[120] Player"

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {"success": False, "data": {"name": "x", "formattedLevel": "1"}},
            {"success": True},
            {"success": True, "data": {"name": "x"}},
            {"success": True, "data": {"formattedLevel": "1"}},
        ],
    )
    def test_incomplete_payloads(self, payload):
        assert parse_player_label(payload) is None


class TestOwnerResolver:
    """Tests for OwnerResolver.resolve."""

    @pytest.mark.asyncio
    async def test_resolve(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=_player())

        resolver = _resolver(handler)
        try:
            assert await resolver.resolve(OWNER) == "[120] Player"
        finally:
            await resolver.close()

        assert seen == [f"/api/players/{OWNER}"]

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        resolver = _resolver(lambda request: httpx.Response(500))
        try:
            assert await resolver.resolve(OWNER) is None
        finally:
            await resolver.close()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        resolver = _resolver(handler)
        try:
            assert await resolver.resolve(OWNER) is None
        finally:
            await resolver.close()

    @pytest.mark.asyncio
    async def test_not_json(self):
        resolver = _resolver(lambda request: httpx.Response(200, text="nope"))
        try:
            assert await resolver.resolve(OWNER) is None
        finally:
            await resolver.close()

    @pytest.mark.asyncio
    async def test_unsuccessful_payload(self):
        resolver = _resolver(lambda request: httpx.Response(200, json={"success": False}))
        try:
            assert await resolver.resolve(OWNER) is None
        finally:
            await resolver.close()

    @pytest.mark.asyncio
    async def test_close_idempotent(self):
        resolver = OwnerResolver()
        await resolver.close()
        await resolver.close()
        assert resolver._client is None
