"""Tests for configuration loading and saving."""

import json
import tempfile
from pathlib import Path
from unittest.mock import patch

from codetime.config import (
    API_URL_ENV,
    DEFAULT_BACKEND,
    MIN_FLUSH_INTERVAL,
    BackendSettings,
    Config,
)


class TestConfig:
    """Tests for Config."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config_file = Path(self.temp_dir) / "config.json"

    def test_defaults_when_missing(self):
        config = Config.load(self.config_file)

        assert config.user_id is None
        assert config.backend.kind == DEFAULT_BACKEND
        assert config.sync.max_retries is None

    def test_save_and_load(self):
        config = Config(user_id="user-1")
        config.backend.kind = "http"
        config.sync.max_retries = 5

        config.save(self.config_file)
        loaded = Config.load(self.config_file)

        assert loaded.user_id == "user-1"
        assert loaded.backend.kind == "http"
        assert loaded.sync.max_retries == 5

    def test_unknown_backend_falls_back(self):
        self.config_file.write_text(json.dumps({"backend": {"kind": "mongo"}}))

        assert Config.load(self.config_file).backend.kind == DEFAULT_BACKEND

    def test_flush_interval_clamped(self):
        self.config_file.write_text(json.dumps({"sync": {"flush_interval_seconds": 1}}))

        assert Config.load(self.config_file).sync.flush_interval_seconds == MIN_FLUSH_INTERVAL

    def test_corrupt_file_uses_defaults(self):
        self.config_file.write_text("{not json")

        assert Config.load(self.config_file).backend.kind == DEFAULT_BACKEND

    def test_ensure_user_id_generates_once(self):
        """A user id is created on first use and then kept."""
        config = Config()

        with patch.object(Config, "save") as mock_save:
            first = config.ensure_user_id()
            second = config.ensure_user_id()

        assert first
        assert first == second
        mock_save.assert_called_once()

    def test_ensure_user_id_keeps_existing(self):
        config = Config(user_id="fixed")

        with patch.object(Config, "save") as mock_save:
            assert config.ensure_user_id() == "fixed"
        mock_save.assert_not_called()


class TestBackendSettings:
    """Tests for BackendSettings."""

    def test_api_url_env_override(self, monkeypatch):
        monkeypatch.setenv(API_URL_ENV, "https://override.example/api")

        assert BackendSettings().get_api_url() == "https://override.example/api"

    def test_api_url_from_settings(self, monkeypatch):
        monkeypatch.delenv(API_URL_ENV, raising=False)

        assert BackendSettings(api_url="https://x.example").get_api_url() == "https://x.example"

    def test_explicit_sqlite_path(self):
        assert BackendSettings(sqlite_path="/tmp/x.db").get_sqlite_path() == Path("/tmp/x.db")
