"""Tests for settings, preferences and logging setup."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from lazypulumi.config import (
    DEFAULT_API_URL,
    Preferences,
    Settings,
    config_path,
    load_preferences,
    log_path,
    save_preferences,
)
from lazypulumi.exceptions import ConfigError
from lazypulumi.logs import LogBuffer, parse_log_filter, setup_logging


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.access_token == ""
        assert settings.api_url == DEFAULT_API_URL
        assert settings.organization is None
        assert settings.log_filter == "info"

    def test_primary_names(self):
        settings = Settings.from_env({
            "PULUMI_ACCESS_TOKEN": " pul-x ",
            "PULUMI_API_URL": "https://pulumi.internal/",
            "PULUMI_ORG": "acme",
            "LOG_FILTER": "debug",
        })
        assert settings.access_token == "pul-x"
        assert settings.api_url == "https://pulumi.internal"
        assert settings.organization == "acme"
        assert settings.log_filter == "debug"

    def test_fallback_names(self):
        settings = Settings.from_env({"ACCESS_TOKEN": "t", "API_URL": "https://a", "ORG": "o"})
        assert (settings.access_token, settings.api_url, settings.organization) == ("t", "https://a", "o")

    def test_primary_wins(self):
        settings = Settings.from_env({"PULUMI_ORG": "first", "ORG": "second"})
        assert settings.organization == "first"


class TestPaths:
    def test_xdg(self, tmp_path: Path):
        env = {"XDG_CONFIG_HOME": str(tmp_path / "cfg"), "XDG_CACHE_HOME": str(tmp_path / "cache")}
        assert config_path(env) == tmp_path / "cfg" / "lazypulumi" / "config.json"
        assert log_path(env) == tmp_path / "cache" / "lazypulumi" / "app.log"


class TestPreferences:
    def test_missing_file(self, tmp_path: Path):
        assert load_preferences(tmp_path / "none.json") == Preferences()
        assert load_preferences(None).show_splash

    def test_invalid_json(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        assert load_preferences(path).show_splash

    def test_save_preserves_unknown_keys(self, tmp_path: Path):
        path = tmp_path / "nested" / "config.json"
        path.parent.mkdir()
        path.write_text(json.dumps({"theme": "dark", "show_splash": True}))
        prefs = load_preferences(path)
        assert prefs.extra == {"theme": "dark"}
        save_preferences(path, prefs.with_show_splash(False))
        data = json.loads(path.read_text())
        assert data == {"theme": "dark", "show_splash": False}
        assert not load_preferences(path).show_splash

    def test_save_creates_directory(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "config.json"
        save_preferences(path, Preferences(show_splash=False))
        assert json.loads(path.read_text()) == {"show_splash": False}

    def test_save_failure(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        with pytest.raises(ConfigError):
            save_preferences(blocker / "config.json", Preferences())


class TestLogging:
    def test_parse_filter(self):
        root, targets = parse_log_filter("warn,lazypulumi.api=debug,bogus=nope")
        assert root == logging.WARNING
        assert targets == {"lazypulumi.api": logging.DEBUG}

    def test_parse_empty(self):
        assert parse_log_filter("") == (logging.INFO, {})

    def test_buffer_is_bounded(self):
        buffer = LogBuffer(capacity=3)
        logger = logging.getLogger("lazypulumi.test.buffer")
        logger.addHandler(buffer)
        logger.setLevel(logging.INFO)
        try:
            for n in range(5):
                logger.info("line %d", n)
        finally:
            logger.removeHandler(buffer)
        lines = buffer.lines()
        assert len(lines) == 3
        assert lines[-1].endswith("line 4")
        assert buffer.lines(limit=1) == lines[-1:]

    def test_setup_writes_file_and_buffer(self, tmp_path: Path):
        root = logging.getLogger()
        saved = (list(root.handlers), root.level)
        log_file = tmp_path / "cache" / "app.log"
        try:
            buffer = setup_logging(log_file, "info")
            logging.getLogger("lazypulumi.test").info("hello from test")
            logging.getLogger("lazypulumi.test").debug("hidden")
            for handler in root.handlers:
                handler.flush()
            assert any("hello from test" in line for line in buffer.lines())
            assert not any("hidden" in line for line in buffer.lines())
            assert "hello from test" in log_file.read_text()
        finally:
            for handler in list(root.handlers):
                root.removeHandler(handler)
                if handler not in saved[0]:
                    handler.close()
            for handler in saved[0]:
                root.addHandler(handler)
            root.setLevel(saved[1])
