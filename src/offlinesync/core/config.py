"""Configuration classes and config-file helpers for offlinesync.

This module provides:
- RemoteConfig: connection settings for the hosted remote store
- SyncSettings: timing and namespacing knobs for the sync layer
- load_config / save_config: JSON config file under ~/.offlinesync
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class RemoteConfig:
    """Configuration for connecting to the remote store.

    Attributes:
        url: Base URL of the project (e.g., "https://abc.supabase.co").
        api_key: Anon or service key sent as apikey and bearer token.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    url: str
    api_key: str
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.url = self.url.rstrip("/")

    @property
    def rest_url(self) -> str:
        """Get the REST endpoint root.

        Returns:
            URL of the row-oriented REST API.
        """
        return f"{self.url}/rest/v1"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS."""
        return self.url.startswith("https://")


@dataclass
class SyncSettings:
    """Tunables for the sync layer.

    Attributes:
        sync_interval: Seconds between periodic sync passes.
        stale_after: Age in seconds after which a cached key counts as stale.
        health_check_interval: Seconds between reachability probes.
        namespace: Key namespace inside the local store.
    """

    sync_interval: float = 300.0
    stale_after: float = 3600.0
    health_check_interval: float = 5.0
    namespace: str = "offlinesync"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncSettings:
        """Create from a config dictionary, ignoring unknown keys."""
        settings = cls()
        for name in ("sync_interval", "stale_after", "health_check_interval"):
            if data.get(name) is not None:
                setattr(settings, name, float(data[name]))
        if data.get("namespace"):
            settings.namespace = str(data["namespace"])
        return settings


def get_config_dir() -> Path:
    """Get the configuration directory.

    Returns:
        Path to ~/.offlinesync.
    """
    return Path.home() / ".offlinesync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db_path() -> Path:
    """Get the path to the local store database."""
    return get_config_dir() / "offline.db"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def remote_config_from(config: dict[str, Any]) -> RemoteConfig | None:
    """Build a RemoteConfig from a loaded config dictionary.

    Returns:
        RemoteConfig, or None if url or api_key is missing.
    """
    if not config.get("remote_url") or not config.get("api_key"):
        return None
    return RemoteConfig(
        url=config["remote_url"],
        api_key=config["api_key"],
        timeout=float(config.get("timeout", 30.0)),
        verify_ssl=bool(config.get("verify_ssl", True)),
    )
