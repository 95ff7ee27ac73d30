"""Tests for the offlinesync CLI."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import httpx
import pytest
from click.testing import CliRunner

from offlinesync.cli import cli
from offlinesync.core.types import OperationType
from offlinesync.storage import OfflineStorage, SQLiteBackend, StorageKey, SyncQueue


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the config directory at a temp dir."""
    with patch("offlinesync.core.config.get_config_dir", return_value=tmp_path):
        yield tmp_path


def write_config(config_dir: Path) -> None:
    """Configure a remote at http://test."""
    (config_dir / "config.json").write_text(
        json.dumps({"remote_url": "http://test", "api_key": "anon-key"})
    )


def queue_create(config_dir: Path, table: str, row: dict) -> None:
    """Queue a CREATE in the local store the CLI uses."""
    backend = SQLiteBackend(config_dir / "offline.db")
    try:
        SyncQueue(OfflineStorage(backend)).add(OperationType.CREATE, table, row)
    finally:
        backend.close()


class TestConfigure:
    """Tests for configure command."""

    def test_saves_remote(self, runner: CliRunner, config_dir: Path) -> None:
        """Should write the remote settings to config.json."""
        result = runner.invoke(
            cli, ["configure", "--url", "https://abc.supabase.co/", "--api-key", "k"]
        )

        assert result.exit_code == 0
        config = json.loads((config_dir / "config.json").read_text())
        assert config == {"remote_url": "https://abc.supabase.co", "api_key": "k"}


class TestStatus:
    """Tests for status command."""

    def test_not_configured(self, runner: CliRunner, config_dir: Path) -> None:
        """Should report local state without a remote."""
        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Remote: not configured" in result.output
        assert "Pending operations: 0" in result.output
        assert "Last sync: never" in result.output

    def test_online(self, runner: CliRunner, config_dir: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should probe the remote and show pending operations."""
        write_config(config_dir)
        queue_create(config_dir, "orders", {"id": "o1"})
        httpx_mock.add_response(url="http://test/rest/v1/", json={})

        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Online: yes" in result.output
        assert "Pending operations: 1" in result.output


class TestSync:
    """Tests for sync command."""

    def test_requires_remote(self, runner: CliRunner, config_dir: Path) -> None:
        """Should fail without a configured remote."""
        result = runner.invoke(cli, ["sync"])

        assert result.exit_code == 1
        assert "Remote not configured" in result.output

    def test_unreachable(self, runner: CliRunner, config_dir: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should fail and keep the queue when the remote is down."""
        write_config(config_dir)
        queue_create(config_dir, "orders", {"id": "o1"})
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        result = runner.invoke(cli, ["sync", "--no-refresh"])

        assert result.exit_code == 1
        assert "unreachable" in result.output

    def test_replays_queue(self, runner: CliRunner, config_dir: Path, httpx_mock) -> None:  # type: ignore[no-untyped-def]
        """Should push queued operations to the remote."""
        write_config(config_dir)
        queue_create(config_dir, "orders", {"id": "o1"})
        httpx_mock.add_response(url="http://test/rest/v1/", json={})
        httpx_mock.add_response(
            url="http://test/rest/v1/orders", method="POST", status_code=201, json=[{"id": "o1"}]
        )

        result = runner.invoke(cli, ["sync", "--no-refresh"])

        assert result.exit_code == 0
        assert "Synced: 1 succeeded, 0 failed" in result.output

        status = runner.invoke(cli, ["queue"])
        assert "No pending operations." in status.output


class TestQueue:
    """Tests for queue command."""

    def test_lists_pending(self, runner: CliRunner, config_dir: Path) -> None:
        """Should print one line per pending operation."""
        queue_create(config_dir, "orders", {"id": "o1"})

        result = runner.invoke(cli, ["queue"])

        assert result.exit_code == 0
        assert "1 pending operation(s)" in result.output
        assert "CREATE" in result.output
        assert "orders" in result.output
        assert "o1" in result.output


class TestExportImport:
    """Tests for export and import commands."""

    def test_round_trip(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        """Should restore exported data after a clear."""
        queue_create(config_dir, "orders", {"id": "o1"})
        backup = tmp_path / "backup.json"

        result = runner.invoke(cli, ["export", str(backup)])
        assert result.exit_code == 0
        assert StorageKey.SYNC_QUEUE.value in json.loads(backup.read_text())

        assert runner.invoke(cli, ["clear", "--yes"]).exit_code == 0
        assert "No pending operations." in runner.invoke(cli, ["queue"]).output

        result = runner.invoke(cli, ["import", str(backup)])
        assert result.exit_code == 0
        assert "Imported 1 entries" in result.output
        assert "1 pending operation(s)" in runner.invoke(cli, ["queue"]).output

    def test_import_invalid_file(self, runner: CliRunner, config_dir: Path, tmp_path: Path) -> None:
        """Should reject a file that is not JSON."""
        backup = tmp_path / "backup.json"
        backup.write_text("not json")

        result = runner.invoke(cli, ["import", str(backup)])

        assert result.exit_code == 1
        assert "Invalid backup file" in result.output


class TestClear:
    """Tests for clear command."""

    def test_asks_for_confirmation(self, runner: CliRunner, config_dir: Path) -> None:
        """Should keep data when the user declines."""
        queue_create(config_dir, "orders", {"id": "o1"})

        result = runner.invoke(cli, ["clear"], input="n\n")

        assert "Aborted." in result.output
        assert "1 pending operation(s)" in runner.invoke(cli, ["queue"]).output

    def test_confirmed(self, runner: CliRunner, config_dir: Path) -> None:
        """Should delete everything when confirmed."""
        queue_create(config_dir, "orders", {"id": "o1"})

        result = runner.invoke(cli, ["clear"], input="y\n")

        assert result.exit_code == 0
        assert "Offline data cleared." in result.output
        assert "No pending operations." in runner.invoke(cli, ["queue"]).output
