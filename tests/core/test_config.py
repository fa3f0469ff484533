"""
Tests for centralized configuration module.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from unittest import mock

import pytest
from pydantic import ValidationError

from mystic_alert.core.config import (
    MysticSettings,
    get_settings,
    reset_settings,
)


class TestMysticSettings:
    """Test MysticSettings class."""

    def test_default_values(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = MysticSettings()

            assert settings.log_level == "INFO"
            assert settings.debug is False
            assert settings.log_json is False
            assert settings.bot_prefix == "!mystic"
            assert settings.feed_url == "wss://pitpanda.rocks/api/newmystics"
            assert settings.reference_url == "https://pitpanda.rocks/pitreference"
            assert settings.heartbeat_interval_seconds == 30.0
            assert settings.reconnect_delay_seconds == 30.0

    def test_log_level_case_insensitive(self):
        with mock.patch.dict(os.environ, {"MYSTIC_LOG_LEVEL": "debug"}, clear=True):
            settings = MysticSettings()
            assert settings.log_level == "DEBUG"
            assert settings.log_level_int == logging.DEBUG

    def test_invalid_log_level(self):
        with mock.patch.dict(os.environ, {"MYSTIC_LOG_LEVEL": "LOUD"}, clear=True):
            with pytest.raises(ValidationError):
                MysticSettings()

    def test_debug_legacy_flag(self):
        with mock.patch.dict(os.environ, {"MYSTIC_DEBUG": "1"}, clear=True):
            settings = MysticSettings()
            assert settings.effective_log_level == "DEBUG"

    def test_debug_does_not_override_explicit_level(self):
        env = {"MYSTIC_LOG_LEVEL": "ERROR", "MYSTIC_DEBUG": "1"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert MysticSettings().effective_log_level == "ERROR"

    def test_timing_from_env(self):
        env = {
            "MYSTIC_RECONNECT_DELAY_SECONDS": "5",
            "MYSTIC_HEARTBEAT_INTERVAL_SECONDS": "12.5",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = MysticSettings()
            assert settings.reconnect_delay_seconds == 5.0
            assert settings.heartbeat_interval_seconds == 12.5

    def test_heartbeat_must_be_positive(self):
        with mock.patch.dict(os.environ, {"MYSTIC_HEARTBEAT_INTERVAL_SECONDS": "0"}, clear=True):
            with pytest.raises(ValidationError):
                MysticSettings()


class TestSettingsPath:
    """settings.json location."""

    def test_defaults_to_working_directory(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with mock.patch.dict(os.environ, {}, clear=True):
            assert MysticSettings().settings_path == tmp_path / "settings.json"

    def test_defaults_to_instance_root(self, tmp_path: Path):
        env = {"MYSTIC_INSTANCE_ROOT": str(tmp_path)}
        with mock.patch.dict(os.environ, env, clear=True):
            assert MysticSettings().settings_path == tmp_path / "settings.json"

    def test_explicit_file(self, tmp_path: Path):
        env = {"MYSTIC_SETTINGS_FILE": str(tmp_path / "alerts.json")}
        with mock.patch.dict(os.environ, env, clear=True):
            assert MysticSettings().settings_path == tmp_path / "alerts.json"


class TestSingleton:
    """get_settings caching."""

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_reset(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("MYSTIC_BOT_PREFIX", "?pit")
        assert get_settings().bot_prefix == first.bot_prefix

        reset_settings()

        assert get_settings().bot_prefix == "?pit"
