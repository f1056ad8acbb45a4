"""Integration tests for CLI commands.

This module tests the Typer-based CLI against SQLite file stores named in a
TOML configuration file.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from projecttracker.config import load_config
from projecttracker.database.models.audit import ActionType, EntityType
from projecttracker.database.queries import audit as audit_queries
from projecttracker.main import app
from projecttracker.services.container import build_container
from projecttracker.services.schemas import ProjectCreate


@pytest.fixture
def cli_runner():
    """Create a Typer CLI runner.

    Returns:
        CliRunner instance for invoking CLI commands
    """
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a configuration file pointing both stores at tmp_path.

    Args:
        tmp_path: Pytest temporary directory fixture

    Returns:
        Path to the TOML configuration file
    """
    path = tmp_path / "projecttracker.toml"
    path.write_text(
        f"""
[database]
url = "sqlite+aiosqlite:///{tmp_path / 'primary.db'}"

[audit]
url = "sqlite+aiosqlite:///{tmp_path / 'audit.db'}"

[logging]
level = "WARNING"
format = "console"
"""
    )
    return path


@pytest.fixture
def initialized(cli_runner, config_file) -> Path:
    """Run init-db against the configured stores.

    Args:
        cli_runner: CLI runner fixture
        config_file: Configuration file fixture

    Returns:
        Path to the TOML configuration file
    """
    result = cli_runner.invoke(app, ["--config", str(config_file), "init-db"])
    assert result.exit_code == 0, result.stdout
    return config_file


def seed(config_file: Path, old_entries: int = 0) -> None:
    """Create one project and optionally some 200-day-old audit entries."""
    config = load_config(config_file)

    async def _seed() -> None:
        container = build_container(config)
        try:
            await container.projects.create_project(
                ProjectCreate(name="Apollo", deadline=datetime.now(timezone.utc) + timedelta(days=30)),
                "alice",
            )
            async with container.audit_session_factory() as session, session.begin():
                for _ in range(old_entries):
                    await audit_queries.append_entry(
                        session,
                        action_type=ActionType.DELETE,
                        entity_type=EntityType.TASK,
                        entity_id=7,
                        actor_name="legacy",
                        payload={},
                        timestamp=datetime.now(timezone.utc) - timedelta(days=200),
                    )
        finally:
            await container.close()

    asyncio.run(_seed())


@pytest.mark.integration
class TestGlobalOptions:
    """Integration tests for configuration loading and init-db."""

    def test_init_db_creates_stores(self, cli_runner, config_file, tmp_path):
        result = cli_runner.invoke(app, ["--config", str(config_file), "init-db"])

        assert result.exit_code == 0
        assert "Schema ready" in result.stdout
        assert (tmp_path / "primary.db").exists()
        assert (tmp_path / "audit.db").exists()

    def test_init_db_is_idempotent(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["--config", str(initialized), "init-db"])
        assert result.exit_code == 0

    def test_invalid_config_exits(self, cli_runner, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text("[cache]\nmax_entries = 0\n")

        result = cli_runner.invoke(app, ["--config", str(bad), "init-db"])

        assert result.exit_code == 1
        assert "Error loading configuration" in result.stdout

    def test_missing_config_file_rejected(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["--config", str(tmp_path / "nope.toml"), "init-db"])
        assert result.exit_code != 0

    def test_serve_uses_configured_address(self, cli_runner, config_file):
        with patch("uvicorn.run") as run:
            result = cli_runner.invoke(app, ["--config", str(config_file), "serve", "--port", "9001"])

        assert result.exit_code == 0
        run.assert_called_once()
        assert run.call_args.kwargs["host"] == "0.0.0.0"
        assert run.call_args.kwargs["port"] == 9001
        assert run.call_args.kwargs["log_level"] == "warning"


@pytest.mark.integration
class TestAuditCLI:
    """Integration tests for the audit command group."""

    def test_recent_lists_entries(self, cli_runner, initialized):
        seed(initialized)

        result = cli_runner.invoke(app, ["--config", str(initialized), "audit", "recent"])

        assert result.exit_code == 0
        assert "Audit Entries" in result.stdout
        assert "PROJECT" in result.stdout
        assert "alice" in result.stdout

    def test_recent_empty(self, cli_runner, initialized):
        result = cli_runner.invoke(app, ["--config", str(initialized), "audit", "recent", "--days", "1"])

        assert result.exit_code == 0
        assert "No audit entries found" in result.stdout

    def test_cleanup_removes_old_entries(self, cli_runner, initialized):
        seed(initialized, old_entries=3)

        result = cli_runner.invoke(
            app,
            ["--config", str(initialized), "audit", "cleanup", "--retention-days", "90", "--actor", "ops"],
        )

        assert result.exit_code == 0
        assert "Deleted: 3" in result.stdout
        assert "Actor: ops" in result.stdout

        again = cli_runner.invoke(app, ["--config", str(initialized), "audit", "cleanup"])
        assert "Deleted: 0" in again.stdout
        assert "Actor: system" in again.stdout

    def test_cleanup_rejects_negative_retention(self, cli_runner, initialized):
        result = cli_runner.invoke(
            app,
            ["--config", str(initialized), "audit", "cleanup", "--retention-days", "-1"],
        )
        assert result.exit_code != 0

    def test_stats(self, cli_runner, initialized):
        seed(initialized, old_entries=1)

        result = cli_runner.invoke(app, ["--config", str(initialized), "audit", "stats"])

        assert result.exit_code == 0
        assert "Total: 2" in result.stdout
        assert "By Entity Type" in result.stdout
        assert "legacy" in result.stdout
