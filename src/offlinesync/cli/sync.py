"""Sync commands for offlinesync CLI.

Commands:
- configure: Save remote store connection settings
- status: Show connectivity, pending queue and last sync time
- sync: Replay the offline queue once
- watch: Keep syncing until interrupted
"""

from __future__ import annotations

import sys
from datetime import datetime

import click

from offlinesync.cli.app import open_app, setup_logging
from offlinesync.core.config import load_config, save_config


def _format_time(timestamp: float | None) -> str:
    if timestamp is None:
        return "never"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


@click.command()
@click.option("--url", required=True, help="Project URL (e.g., https://abc.supabase.co).")
@click.option("--api-key", required=True, help="API key sent with every request.")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds.")
def configure(url: str, api_key: str, timeout: float | None) -> None:
    """Save the remote store connection settings."""
    config = load_config()
    config["remote_url"] = url.rstrip("/")
    config["api_key"] = api_key
    if timeout is not None:
        config["timeout"] = timeout
    save_config(config)
    click.echo(f"Remote configured: {config['remote_url']}")


@click.command()
def status() -> None:
    """Show sync status."""
    app = open_app()
    try:
        probe = app.probe()
        if probe is not None:
            probe.check_now()

        pending = app.queue.pending_count()
        if app.remote is None:
            click.echo("Remote: not configured")
        else:
            click.echo(f"Remote: {app.remote.config.url}")
            click.echo(f"Online: {'yes' if app.monitor.is_online() else 'no'}")
        click.echo(f"Pending operations: {pending}")
        click.echo(f"Last sync: {_format_time(app.queue.get_last_sync_time())}")
    finally:
        app.close()


@click.command()
@click.option("--refresh/--no-refresh", default=True, help="Refresh cached tables after syncing.")
@click.option("-v", "--verbose", is_flag=True, help="Show detailed logs.")
def sync(refresh: bool, verbose: bool) -> None:
    """Replay queued operations against the remote store."""
    setup_logging(verbose)
    app = open_app(require_remote=True)
    try:
        probe = app.probe()
        if probe is None or app.engine is None:
            return
        if not probe.check_now():
            click.echo("Error: Remote store is unreachable. Operations stay queued.", err=True)
            sys.exit(1)

        result = app.engine.sync_all()
        click.echo(f"Synced: {result.success} succeeded, {result.failed} failed")
        for error in result.errors:
            click.echo(f"  ✗ {error}", err=True)

        if refresh:
            cached = app.engine.fetch_all_critical_data()
            click.echo(f"Refreshed {cached} cached table(s)")

        if result.has_failures:
            sys.exit(1)
    finally:
        app.close()


@click.command()
@click.option("--interval", type=float, default=None, help="Seconds between periodic syncs.")
@click.option("-v", "--verbose", is_flag=True, help="Show detailed logs.")
def watch(interval: float | None, verbose: bool) -> None:
    """Sync periodically and on reconnect until interrupted (Ctrl+C)."""
    import threading

    from offlinesync.sync import SyncResult, SyncScheduler

    setup_logging(verbose)
    app = open_app(require_remote=True)
    probe = app.probe()
    if probe is None or app.engine is None:
        app.close()
        return

    def on_result(result: SyncResult) -> None:
        if result.success or result.failed:
            click.echo(f"Synced: {result.success} succeeded, {result.failed} failed")

    scheduler = SyncScheduler(
        app.engine,
        app.monitor,
        interval=interval or app.settings.sync_interval,
        on_result=on_result,
    )
    probe.check_now()
    probe.start()
    scheduler.start()
    click.echo("Watching for changes (Ctrl+C to stop)...")

    stop = threading.Event()
    try:
        while not stop.is_set():
            stop.wait(1.0)
    except KeyboardInterrupt:
        click.echo("\nStopping...")
    finally:
        scheduler.stop()
        probe.stop()
        app.close()
