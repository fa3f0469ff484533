"""
Tests for Discord alert formatting.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from mystic_alert.services.mystics.notifications.formatter import (
    ALERT_TITLE,
    AlertFormatter,
    format_alert_text,
)
from mystic_alert.services.mystics.query import compile_query
from mystic_alert.services.mystics.reference import ReferenceIndex
from mystic_alert.services.mystics.registry import Filter

FIXED_TIME = datetime(2026, 1, 15, 12, 30, tzinfo=timezone.utc)


def _filter(name: str, alert: str | None = None) -> Filter:
    return Filter(name=name, predicate=compile_query(name, ReferenceIndex()), alert=alert)


class TestFormatAlertText:
    """Tests for format_alert_text."""

    def test_template_only(self):
        assert format_alert_text("@here", [_filter("sword")]) == "@here"

    def test_appends_filter_alerts_in_order(self):
        passes = [_filter("sword", "<@&1>"), _filter("bow"), _filter("pants", "<@&2>")]
        assert format_alert_text("@here", passes) == "@here\n<@&1>\n<@&2>"


class TestAlertFormatter:
    """Tests for AlertFormatter.format_event."""

    @pytest.fixture
    def alert(self, make_event):
        event = make_event(tags=["new", "tokens"])
        return AlertFormatter().format_event(
            event,
            [_filter("sword", "<@&1>"), _filter("tokens5+")],
            template="@here",
            owner_label="[120] Player",
            timestamp=FIXED_TIME,
        )

    def test_content(self, alert):
        assert alert.content == "@here\n<@&1>"
        assert alert.title == ALERT_TITLE

    def test_description(self, alert):
        lines = alert.description.split("\n")
        assert lines == [
            "Owner: [[120] Player](https://pitpanda.rocks/players/0f8fad5bd9cb469fa16570867728950e)",
            "Events: `new`, `tokens`",
            "Passed filters: `sword`, `tokens5+`",
        ]

    def test_image_url(self, alert):
        assert alert.image_url == (
            "https://pitpanda.rocks/api/images/item/60f1c2aa9d1e8a3b4c5d6e7f"
        )

    def test_filter_names(self, alert):
        assert alert.filter_names == ("sword", "tokens5+")

    def test_owner_falls_back_to_uuid(self, make_event):
        event = make_event()
        alert = AlertFormatter().format_event(event, [_filter("sword")], template="x")
        assert alert.owner_label == event.item.owner
        assert alert.timestamp.tzinfo is not None

    def test_custom_urls(self, make_event):
        formatter = AlertFormatter(
            player_page_url="https://mirror.test/p/{owner}",
            item_image_url="https://mirror.test/i/{item_id}.png",
        )
        alert = formatter.format_event(make_event(), [_filter("sword")], template="x")
        assert "(https://mirror.test/p/" in alert.description
        assert alert.image_url.endswith(".png")

    def test_webhook_payload(self, alert):
        payload = alert.to_webhook_payload()

        assert payload["content"] == "@here\n<@&1>"
        (embed,) = payload["embeds"]
        assert embed["title"] == "New Mystic!"
        assert embed["description"] == alert.description
        assert embed["image"] == {"url": alert.image_url}
        assert embed["timestamp"] == "2026-01-15T12:30:00+00:00"
