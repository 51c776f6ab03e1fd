"""
Tests for the migrator CLI: default run, status, rollback, pending and new.
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import psycopg2
import pytest
from typer.testing import CliRunner

from migrator.cli.app import app

runner = CliRunner()


@pytest.fixture()
def project(tmp_path: Path, monkeypatch) -> dict:
    """A migrations directory with two files and a SQLite file database."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("MIGRATOR_DATABASE_URL", raising=False)

    mdir = tmp_path / "migrations"
    mdir.mkdir()
    (mdir / "1_init.sql").write_text(
        "CREATE TABLE IF NOT EXISTS users (id INTEGER PRIMARY KEY, username TEXT);\n"
    )
    (mdir / "2_add_email.sql").write_text("ALTER TABLE users ADD COLUMN email TEXT;\n")
    db = tmp_path / "app.db"
    return {
        "dir": mdir,
        "db": db,
        "args": ["--database", f"sqlite:///{db}", "--dir", str(mdir)],
    }


def _ledger_versions(db: Path) -> list[int]:
    with sqlite3.connect(db) as raw:
        return [r[0] for r in raw.execute("SELECT version FROM migrations ORDER BY version")]


def _table_names(db: Path) -> set[str]:
    with sqlite3.connect(db) as raw:
        return {r[0] for r in raw.execute("SELECT name FROM sqlite_master WHERE type='table'")}


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "status" in result.output
        assert "rollback" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "migrator" in result.output


class TestRun:
    def test_default_applies_pending(self, project):
        result = runner.invoke(app, project["args"])

        assert result.exit_code == 0, result.output
        assert "Applied 1: init" in result.output
        assert "Applied 2: add_email" in result.output
        assert "All migrations completed successfully (2 applied)" in result.output
        assert _ledger_versions(project["db"]) == [1, 2]

    def test_second_run_is_noop(self, project):
        runner.invoke(app, project["args"])
        result = runner.invoke(app, project["args"])

        assert result.exit_code == 0
        assert "No pending migrations" in result.output

    def test_up_subcommand(self, project):
        result = runner.invoke(app, [*project["args"], "up"])
        assert result.exit_code == 0
        assert _ledger_versions(project["db"]) == [1, 2]

    def test_dry_run_applies_nothing(self, project):
        result = runner.invoke(app, [*project["args"], "--dry-run"])

        assert result.exit_code == 0
        assert "Pending 1: init" in result.output
        assert "2 migration(s) pending" in result.output
        assert _ledger_versions(project["db"]) == []

    def test_json_output(self, project):
        result = runner.invoke(app, [*project["args"], "--json", "--log-level", "ERROR"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["applied"] == [
            {"version": 1, "name": "init"},
            {"version": 2, "name": "add_email"},
        ]
        assert payload["dry_run"] is False

    def test_malformed_file_exits_1(self, project):
        (project["dir"] / "abc_create_users.sql").write_text("CREATE TABLE x (id INTEGER);")

        result = runner.invoke(app, project["args"])

        assert result.exit_code == 1
        assert "abc_create_users.sql" in result.output
        # Discovery failed before the ledger was ensured or any body ran.
        tables = _table_names(project["db"])
        assert "migrations" not in tables
        assert "users" not in tables
        assert "x" not in tables

    def test_failing_migration_exits_1(self, project):
        (project["dir"] / "3_broken.sql").write_text("NOT VALID SQL;")

        result = runner.invoke(app, project["args"])

        assert result.exit_code == 1
        assert "MigrationExecutionError" in result.output
        assert _ledger_versions(project["db"]) == [1, 2]


class TestStatus:
    def test_status_after_partial_run(self, project):
        runner.invoke(app, project["args"])
        (project["dir"] / "3_orders.sql").write_text("CREATE TABLE orders (id INTEGER);")

        result = runner.invoke(app, [*project["args"], "status"])

        assert result.exit_code == 0
        assert "Migration Status" in result.output
        assert "applied  1: init" in result.output
        assert "pending  3: orders" in result.output
        assert "Total: 3 migrations, 1 pending" in result.output

    def test_status_json(self, project):
        result = runner.invoke(app, [*project["args"], "--json", "--log-level", "ERROR", "status"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["total"] == 2
        assert payload["pending"] == 2
        assert payload["orphaned"] == []


class TestRollback:
    def test_rollback_default_one(self, project):
        runner.invoke(app, project["args"])

        result = runner.invoke(app, [*project["args"], "rollback"])

        assert result.exit_code == 0
        assert "Rolled back 2: add_email" in result.output
        assert _ledger_versions(project["db"]) == [1]

    def test_rollback_n(self, project):
        runner.invoke(app, project["args"])

        result = runner.invoke(app, [*project["args"], "rollback", "5"])

        assert result.exit_code == 0
        assert _ledger_versions(project["db"]) == []

    def test_rollback_nothing(self, project):
        result = runner.invoke(app, [*project["args"], "rollback"])
        assert result.exit_code == 0
        assert "No migrations to roll back" in result.output

    def test_rollback_zero_exits_1(self, project):
        result = runner.invoke(app, [*project["args"], "rollback", "0"])
        assert result.exit_code == 1
        assert "ValidationError" in result.output


class TestPendingAndNew:
    def test_pending(self, project):
        result = runner.invoke(app, [*project["args"], "pending"])
        assert result.exit_code == 0
        assert "Pending 2: add_email" in result.output
        assert _ledger_versions(project["db"]) == []

    def test_new_creates_next_file(self, project):
        result = runner.invoke(app, [*project["args"], "new", "Add orders table"])

        assert result.exit_code == 0
        assert "Created" in result.output
        assert (project["dir"] / "3_add_orders_table.sql").exists()

    def test_new_then_run_records_scaffold(self, project):
        runner.invoke(app, [*project["args"], "new", "placeholder"])

        result = runner.invoke(app, project["args"])

        assert result.exit_code == 0, result.output
        assert "Applied 3: placeholder" in result.output
        assert _ledger_versions(project["db"]) == [1, 2, 3]


class TestFailures:
    def test_invalid_table_name(self, project):
        result = runner.invoke(app, [*project["args"], "--table", "bad-name", "status"])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_unknown_log_level(self, project):
        result = runner.invoke(app, [*project["args"], "--log-level", "verbose", "status"])

        assert result.exit_code == 1
        assert not isinstance(result.exception, AttributeError)
        assert "InvalidConfigError" in result.output
        assert "log_level" in result.output

    def test_connection_failure_prints_hint(self, project, monkeypatch):
        def refuse(*args, **kwargs):
            raise psycopg2.OperationalError("could not connect to server: Connection refused")

        monkeypatch.setattr(psycopg2, "connect", refuse)

        result = runner.invoke(
            app, ["--database", "postgresql://u:pw@localhost:5432/app", "--dir", str(project["dir"])]
        )

        assert result.exit_code == 1
        assert "DatabaseConnectionError" in result.output
        assert "Hint" in result.output
