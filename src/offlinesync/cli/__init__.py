"""Command-line interface for offlinesync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Save remote store connection settings
- status: Show sync status
- sync: Replay the offline queue once
- watch: Keep syncing until interrupted
- queue: List pending operations
- export: Back up offline data to JSON
- import: Restore offline data from JSON
- clear: Delete all offline data
"""

from __future__ import annotations

import click

from offlinesync.cli.data import clear, export_cmd, import_cmd, queue_cmd
from offlinesync.cli.sync import configure, status, sync, watch


@click.group()
@click.version_option(package_name="offlinesync")
def cli() -> None:
    """offlinesync - offline-first data access with queued sync."""


# Sync commands
cli.add_command(configure)
cli.add_command(status)
cli.add_command(sync)
cli.add_command(watch)

# Local data commands
cli.add_command(queue_cmd)
cli.add_command(export_cmd)
cli.add_command(import_cmd)
cli.add_command(clear)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = ["cli", "main"]
