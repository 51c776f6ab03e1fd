"""
Shared pytest fixtures for migrator tests.

This module provides:
- An in-memory SQLite connection satisfying the Connection protocol
- A temporary migrations directory and a helper to write migration files
- structlog reset between tests so CLI runs don't leak logger config
"""

from __future__ import annotations

import textwrap
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import structlog

from migrator.core.sqlite_conn import SqliteConnection
from migrator.migrations.runner import MigrationRunner


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo ``configure_logging()`` calls made by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def conn() -> Generator[SqliteConnection, None, None]:
    """In-memory SQLite connection."""
    c = SqliteConnection(":memory:")
    yield c
    c.close()


@pytest.fixture()
def migrations_dir(tmp_path: Path) -> Path:
    d = tmp_path / "migrations"
    d.mkdir()
    return d


@pytest.fixture()
def write_migration(migrations_dir: Path) -> Callable[[str, str], Path]:
    """Write ``filename`` with dedented ``sql`` into the migrations directory."""

    def _write(filename: str, sql: str) -> Path:
        path = migrations_dir / filename
        path.write_text(textwrap.dedent(sql), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def runner(conn: SqliteConnection, migrations_dir: Path) -> MigrationRunner:
    """MigrationRunner wired to the temp migrations directory."""
    return MigrationRunner(conn, migrations_dir)


@pytest.fixture()
def table_names(conn: SqliteConnection) -> Callable[[], set[str]]:
    """Names of the tables currently in ``conn``."""

    def _names() -> set[str]:
        conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        return {row[0] for row in conn.fetchall()}

    return _names
