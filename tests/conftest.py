"""
Mystic Alert Test Suite - Shared Fixtures and Configuration
"""

import os

# Keep a developer's .env and environment from leaking into tests
for _key in [k for k in os.environ if k.startswith("MYSTIC_")]:
    del os.environ[_key]

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch):
    """
    Point settings at a temporary instance root.

    Every test gets a fresh settings cache and its own settings.json
    location, so CLI commands never touch the real instance.
    """
    from mystic_alert.core.config import reset_settings

    monkeypatch.setenv("MYSTIC_INSTANCE_ROOT", str(tmp_path))
    monkeypatch.setenv("MYSTIC_SETTINGS_FILE", str(tmp_path / "settings.json"))
    reset_settings()

    yield

    reset_settings()


@pytest.fixture
def reset_logging_state():
    """
    Let pytest's caplog see mystic_alert log records.

    Usage:
        def test_warns(reset_logging_state, caplog):
            ...
    """
    from mystic_alert.core.logging import reset_logging

    reset_logging()
    yield
    reset_logging()
