"""Wiring shared by CLI commands.

Builds the local store, queue, monitor and (when configured) remote store
and sync engine from the config directory.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass

import click

from offlinesync.connectivity import ConnectivityMonitor, HealthProbe
from offlinesync.core.config import (
    SyncSettings,
    get_state_db_path,
    load_config,
    remote_config_from,
)
from offlinesync.remote import RestRemoteStore
from offlinesync.storage import OfflineStorage, SQLiteBackend, SyncQueue
from offlinesync.sync import SyncEngine


@dataclass
class App:
    """Objects a command works with."""

    settings: SyncSettings
    backend: SQLiteBackend
    storage: OfflineStorage
    queue: SyncQueue
    monitor: ConnectivityMonitor
    remote: RestRemoteStore | None = None
    engine: SyncEngine | None = None

    def probe(self) -> HealthProbe | None:
        """Get a health probe for the remote store, if one is configured."""
        if self.remote is None:
            return None
        return HealthProbe(self.remote, self.monitor, self.settings.health_check_interval)

    def close(self) -> None:
        """Release the database connection and HTTP client."""
        if self.remote is not None:
            self.remote.close()
        self.backend.close()


def setup_logging(verbose: bool) -> None:
    """Configure logging for CLI runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def open_app(require_remote: bool = False) -> App:
    """Open the local store and, when configured, the remote store.

    The monitor starts offline; commands probe the remote to flip it.

    Args:
        require_remote: Exit with an error if no remote is configured.
    """
    config = load_config()
    settings = SyncSettings.from_dict(config)
    remote_config = remote_config_from(config)
    if remote_config is None and require_remote:
        click.echo("Error: Remote not configured. Run 'offlinesync configure' first.", err=True)
        sys.exit(1)

    backend = SQLiteBackend(get_state_db_path(), namespace=settings.namespace)
    storage = OfflineStorage(backend)
    queue = SyncQueue(storage)
    monitor = ConnectivityMonitor(online=False)
    app = App(settings=settings, backend=backend, storage=storage, queue=queue, monitor=monitor)

    if remote_config is not None:
        app.remote = RestRemoteStore(remote_config)
        app.engine = SyncEngine(app.remote, storage, monitor, queue=queue)
    return app
