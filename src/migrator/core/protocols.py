"""
Protocol definitions for the migrator's external capabilities.

The runner never imports a database driver or touches the filesystem
directly. It talks to two structural protocols:

    protocols.py
    ├── Connection       - execute statements against the target database
    └── ArtifactSource   - list and read migration files

Any object with the right shape satisfies them, so tests can pass an
in-memory SQLite adapter and a temp directory, and production passes a
PostgreSQL adapter.

Tags:
    protocol, connection, database, contracts
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Connection(Protocol):
    """
    Minimal synchronous connection interface used by the runner.

    ::

        execute(sql, params)  → Execute one parameterized statement
        executescript(sql)    → Execute raw, possibly multi-statement SQL
        fetchone()            → Get one result row
        fetchall()            → Get all result rows
        commit()              → Commit transaction
        rollback()            → Rollback transaction
        close()               → Release the underlying connection

    Rows are indexable by position.

    Examples:
        >>> conn.execute("SELECT version FROM migrations WHERE version = ?", (1,))
        >>> row = conn.fetchone()
    """

    def execute(self, sql: str, params: tuple = ()) -> Any:
        """Execute SQL statement with optional parameters."""
        ...

    def executescript(self, sql: str) -> None:
        """Execute raw SQL text with no parameters."""
        ...

    def fetchone(self) -> Any:
        """Fetch one row from last query."""
        ...

    def fetchall(self) -> list:
        """Fetch all rows from last query."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...

    def close(self) -> None:
        """Close the connection."""
        ...


@runtime_checkable
class ArtifactSource(Protocol):
    """
    Where migration definitions come from.

    ``list_names()`` returns bare file names (no directories);
    ``read_text()`` returns the full body of one of them.
    """

    def ensure_exists(self) -> bool:
        """Create the location if absent. Returns True if it was created."""
        ...

    def list_names(self) -> list[str]:
        """List artifact names at the location."""
        ...

    def read_text(self, name: str) -> str:
        """Read the full text of a named artifact."""
        ...


__all__ = ["Connection", "ArtifactSource"]
