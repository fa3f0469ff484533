"""
Fixtures for mystic alert tests.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from mystic_alert.services.mystics.models import FeedEvent, Item
from mystic_alert.services.mystics.reference import ReferenceIndex
from mystic_alert.services.mystics.settings_store import SettingsStore

OWNER_UUID = "0f8fad5bd9cb469fa16570867728950e"


@pytest.fixture
def sample_reference() -> dict[str, Any]:
    """Trimmed pit reference document."""
    return {
        "Pit": {
            "Mystics": {
                "perun": {"Name": "Combo: Perun's Wrath", "Classes": ["DAMAGE", "RARE"]},
                "sharp": {"Name": "Sharp", "Classes": ["DAMAGE"]},
                "mirror": {"Name": "Mirror", "Classes": ["DEFENSE"]},
                "moctezuma": {"Name": "Moctezuma", "Classes": []},
            }
        }
    }


@pytest.fixture
def reference_index(sample_reference) -> ReferenceIndex:
    return ReferenceIndex.from_reference(sample_reference)


@pytest.fixture
def sample_item_data() -> dict[str, Any]:
    """A feed item as it appears on the wire."""
    return {
        "_id": "60f1c2aa9d1e8a3b4c5d6e7f",
        "item": {"id": 283, "name": "Gold Sword"},
        "enchants": [
            {"key": "sharp", "level": 2},
            {"key": "perun", "level": 3},
        ],
        "flags": ["gemmed"],
        "lives": 4,
        "maxLives": 10,
        "tokens": 5,
        "nonce": 12,
        "owner": OWNER_UUID,
        "lastseen": "2026-01-15T12:34:56Z",
    }


@pytest.fixture
def make_item(sample_item_data) -> Callable[..., Item]:
    """
    Factory for items with overridden wire fields.

    Usage:
        item = make_item(tokens=8, flags=[])
    """

    def _make(**overrides: Any) -> Item:
        data = {**sample_item_data, **overrides}
        return Item.from_dict(data)

    return _make


@pytest.fixture
def make_frame(sample_item_data) -> Callable[..., str]:
    """Factory for raw JSON feed frames."""

    def _make(tags: list[str] | None = None, **overrides: Any) -> str:
        return json.dumps(
            {
                "tags": ["new"] if tags is None else tags,
                "item": {**sample_item_data, **overrides},
            }
        )

    return _make


@pytest.fixture
def make_event(make_frame) -> Callable[..., FeedEvent]:
    def _make(tags: list[str] | None = None, **overrides: Any) -> FeedEvent:
        return FeedEvent.from_frame(make_frame(tags, **overrides))

    return _make


@pytest.fixture
def settings_path(tmp_path: Path) -> Path:
    return tmp_path / "instance" / "settings.json"


@pytest.fixture
def store(settings_path: Path) -> SettingsStore:
    return SettingsStore(settings_path, prefix="!mystic")
