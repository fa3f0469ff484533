"""
Tests for the mystic event pipeline.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mystic_alert.services.mystics.notifications.discord_client import SendResult
from mystic_alert.services.mystics.pipeline import EventPipeline
from mystic_alert.services.mystics.registry import FilterRegistry
from mystic_alert.services.mystics.settings_store import WebhookConfig


@pytest.fixture
def registry(store, reference_index) -> FilterRegistry:
    registry = FilterRegistry.load(store, reference_index)
    registry.remove("tokens0+")
    registry.set_global_alert("@here")
    registry.set_webhook(WebhookConfig("123", "abc"))
    registry.enable()
    return registry


@pytest.fixture
def sink() -> MagicMock:
    sink = MagicMock()
    sink.send_alert = AsyncMock(return_value=SendResult(success=True, status_code=204))
    return sink


@pytest.fixture
def resolver() -> MagicMock:
    resolver = MagicMock()
    resolver.resolve = AsyncMock(return_value="[120] Player")
    return resolver


@pytest.fixture
def pipeline(registry, sink, resolver) -> EventPipeline:
    return EventPipeline(registry=registry, sink=sink, resolver=resolver)


class TestHeartbeat:
    """Heartbeat frames are discarded before any evaluation."""

    @pytest.mark.parametrize("raw", ["3", b"3"])
    def test_is_heartbeat(self, raw):
        assert EventPipeline.is_heartbeat(raw)

    @pytest.mark.parametrize("raw", ["33", "", '{"tags": []}'])
    def test_not_heartbeat(self, raw):
        assert not EventPipeline.is_heartbeat(raw)

    @pytest.mark.asyncio
    async def test_heartbeat_never_evaluated(self, pipeline, registry, sink):
        registry.add("tokens0+")

        with patch.object(registry, "match", wraps=registry.match) as match:
            assert await pipeline.handle_frame("3") is None

        match.assert_not_called()
        sink.send_alert.assert_not_called()
        assert pipeline.stats.heartbeats == 1
        assert pipeline.stats.frames == 0


class TestDispatch:
    """One alert per event, listing every passing filter."""

    @pytest.mark.asyncio
    async def test_zero_passes_zero_dispatches(self, pipeline, registry, sink, make_frame):
        registry.add("bow")

        assert await pipeline.handle_frame(make_frame()) is None

        sink.send_alert.assert_not_called()
        assert pipeline.stats.unmatched == 1

    @pytest.mark.asyncio
    async def test_two_passes_one_dispatch(self, pipeline, registry, sink, make_frame):
        registry.add("sword")
        registry.add("tokens5+")
        registry.add("bow")
        registry.set_alert("sword", "<@&1>")

        alert = await pipeline.handle_frame(make_frame())

        sink.send_alert.assert_awaited_once_with(alert)
        assert alert.filter_names == ("sword", "tokens5+")
        assert alert.content == "@here\n<@&1>"
        assert "Passed filters: `sword`, `tokens5+`" in alert.description
        assert pipeline.stats.dispatched == 1

    @pytest.mark.asyncio
    async def test_owner_only_suppressed(self, pipeline, registry, sink, make_frame):
        registry.add("sword")

        assert await pipeline.handle_frame(make_frame(tags=["owner"])) is None

        sink.send_alert.assert_not_called()
        assert pipeline.stats.suppressed == 1

    @pytest.mark.asyncio
    async def test_owner_with_other_tags_dispatched(self, pipeline, registry, sink, make_frame):
        registry.add("sword")

        alert = await pipeline.handle_frame(make_frame(tags=["owner", "lives"]))

        assert alert is not None
        assert "Events: `owner`, `lives`" in alert.description

    @pytest.mark.asyncio
    async def test_disabled_does_nothing(self, pipeline, registry, sink, resolver, make_frame):
        registry.add("sword")
        registry.disable()

        assert await pipeline.handle_frame(make_frame()) is None

        sink.send_alert.assert_not_called()
        resolver.resolve.assert_not_called()
        assert pipeline.stats.frames == 0

    @pytest.mark.asyncio
    async def test_malformed_frame_dropped(self, pipeline, sink, reset_logging_state, caplog):
        with caplog.at_level("WARNING"):
            assert await pipeline.handle_frame("{broken") is None

        sink.send_alert.assert_not_called()
        assert pipeline.stats.malformed == 1
        assert "malformed" in caplog.text


class TestOwnerEnrichment:
    """Owner lookups are best effort."""

    @pytest.mark.asyncio
    async def test_resolved_label(self, pipeline, registry, resolver, make_frame):
        registry.add("sword")

        alert = await pipeline.handle_frame(make_frame())

        assert alert.owner_label == "[120] Player"
        assert "Owner: [[120] Player](" in alert.description

    @pytest.mark.asyncio
    async def test_lookup_returns_none(self, pipeline, registry, sink, resolver, make_event):
        registry.add("sword")
        resolver.resolve.return_value = None
        event = make_event()

        alert = await pipeline.handle_event(event)

        assert alert.owner_label == event.item.owner
        sink.send_alert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lookup_raises(self, pipeline, registry, sink, resolver, make_event):
        registry.add("sword")
        resolver.resolve.side_effect = RuntimeError("boom")
        event = make_event()

        alert = await pipeline.handle_event(event)

        assert alert.owner_label == event.item.owner
        sink.send_alert.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_resolver(self, registry, sink, make_event):
        registry.add("sword")
        pipeline = EventPipeline(registry=registry, sink=sink)
        event = make_event()

        alert = await pipeline.handle_event(event)

        assert alert.owner_label == event.item.owner


class TestDeliveryFailures:
    """Delivery problems are counted, never raised."""

    @pytest.mark.asyncio
    async def test_sink_raises(self, pipeline, registry, sink, make_frame):
        registry.add("sword")
        sink.send_alert.side_effect = RuntimeError("network down")

        assert await pipeline.handle_frame(make_frame()) is None
        assert pipeline.stats.delivery_errors == 1
        assert pipeline.stats.dispatched == 0

    @pytest.mark.asyncio
    async def test_sink_reports_failure(self, pipeline, registry, sink, make_frame):
        registry.add("sword")
        sink.send_alert.return_value = SendResult(success=False, status_code=404)

        assert await pipeline.handle_frame(make_frame()) is None
        assert pipeline.stats.delivery_errors == 1

    @pytest.mark.asyncio
    async def test_sink_without_result(self, pipeline, registry, sink, make_frame):
        registry.add("sword")
        sink.send_alert.return_value = None

        assert await pipeline.handle_frame(make_frame()) is not None
        assert pipeline.stats.dispatched == 1
