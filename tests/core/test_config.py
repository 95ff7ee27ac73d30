"""Tests for core configuration classes and config-file helpers."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from offlinesync.core.config import (
    RemoteConfig,
    SyncSettings,
    get_state_db_path,
    load_config,
    remote_config_from,
    save_config,
)


class TestRemoteConfig:
    """Tests for RemoteConfig class."""

    def test_defaults(self) -> None:
        """Should default timeout and SSL verification."""
        config = RemoteConfig(url="https://abc.supabase.co", api_key="key")
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_verify_ssl_false(self) -> None:
        """Should accept verify_ssl=False."""
        config = RemoteConfig(url="https://abc.supabase.co", api_key="key", verify_ssl=False)
        assert config.verify_ssl is False


class TestSyncSettings:
    """Tests for SyncSettings class."""

    def test_defaults(self) -> None:
        """Should use five minute sync interval and one hour staleness."""
        settings = SyncSettings()
        assert settings.sync_interval == 300.0
        assert settings.stale_after == 3600.0
        assert settings.namespace == "offlinesync"

    def test_from_dict(self) -> None:
        """Should read known keys and ignore the rest."""
        settings = SyncSettings.from_dict(
            {"sync_interval": "60", "namespace": "shop-1", "unknown": True}
        )
        assert settings.sync_interval == 60.0
        assert settings.namespace == "shop-1"
        assert settings.health_check_interval == 5.0


class TestConfigFile:
    """Tests for the JSON config file helpers."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Should return an empty config."""
        with patch("offlinesync.core.config.get_config_dir", return_value=tmp_path):
            assert load_config() == {}

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Should persist the config as JSON."""
        config_dir = tmp_path / "nested"
        with patch("offlinesync.core.config.get_config_dir", return_value=config_dir):
            save_config({"remote_url": "https://abc.supabase.co"})
            assert load_config() == {"remote_url": "https://abc.supabase.co"}
            assert get_state_db_path() == config_dir / "offline.db"
        assert (config_dir / "config.json").exists()

    def test_remote_config_from(self) -> None:
        """Should build a RemoteConfig only when URL and key are present."""
        assert remote_config_from({}) is None
        assert remote_config_from({"remote_url": "https://x"}) is None

        config = remote_config_from(
            {"remote_url": "https://x/", "api_key": "key", "timeout": 5}
        )
        assert config is not None
        assert config.url == "https://x"
        assert config.timeout == 5.0
