"""Local data commands for offlinesync CLI.

Commands:
- queue: List pending operations
- export: Write every stored entry to a JSON backup
- import: Restore a JSON backup
- clear: Delete all offline data
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path

import click

from offlinesync.cli.app import open_app
from offlinesync.storage import StorageError


@click.command("queue")
def queue_cmd() -> None:
    """List operations waiting to be synced."""
    app = open_app()
    try:
        pending = app.queue.pending()
        if not pending:
            click.echo("No pending operations.")
            return
        click.echo(f"{len(pending)} pending operation(s):")
        for item in pending:
            queued_at = datetime.fromtimestamp(item.timestamp).strftime("%Y-%m-%d %H:%M:%S")
            click.echo(
                f"  {item.type.value:<6} {item.table:<20} {item.record_id or '-'}  ({queued_at})"
            )
    finally:
        app.close()


@click.command("export")
@click.argument("path", type=click.Path(dir_okay=False, path_type=Path))
def export_cmd(path: Path) -> None:
    """Export all offline data to PATH as JSON."""
    app = open_app()
    try:
        data = app.storage.export_all()
    finally:
        app.close()
    path.write_text(json.dumps(data, indent=2))
    click.echo(f"Exported {len(data)} entries to {path}")


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_cmd(path: Path) -> None:
    """Import offline data from a JSON backup at PATH."""
    try:
        data = json.loads(path.read_text())
    except ValueError as e:
        click.echo(f"Error: Invalid backup file: {e}", err=True)
        sys.exit(1)
    if not isinstance(data, dict):
        click.echo("Error: Invalid backup file: expected a JSON object", err=True)
        sys.exit(1)

    app = open_app()
    try:
        count = app.storage.import_data(data)
    except StorageError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        app.close()
    click.echo(f"Imported {count} entries from {path}")


@click.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
def clear(yes: bool) -> None:
    """Delete all offline data, including unsynced operations."""
    app = open_app()
    try:
        pending = app.queue.pending_count()
        if not yes:
            if pending:
                click.echo(f"Warning: {pending} operation(s) have not been synced yet.", err=True)
            if not click.confirm("Delete all offline data?"):
                click.echo("Aborted.")
                return
        app.storage.clear()
        click.echo("Offline data cleared.")
    finally:
        app.close()
