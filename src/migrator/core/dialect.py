"""SQL dialect abstraction for the ledger.

The migration bodies themselves are opaque, backend-specific SQL written
by the user. The ledger queries are not: they are generated here so the
same ``Ledger`` code runs on SQLite and PostgreSQL.

::

    ┌──────────────┐  placeholders   ┌──────────────────┐
    │ SQLite       │  ?              │ PostgreSQL       │
    │ sqlite_master│  catalog        │ information_     │
    │ pragma_table_│  columns        │ schema.columns   │
    │ info()       │                 │                  │
    └──────────────┘                 └──────────────────┘

Examples:
    >>> from migrator.core.dialect import get_dialect
    >>> d = get_dialect("sqlite")
    >>> d.placeholders(2)
    '?, ?'

Tags:
    dialect, sql, portability, ledger
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

# Table names are interpolated into SQL text, so only bare identifiers pass.
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def is_identifier(name: str) -> bool:
    """True if ``name`` is a plain, unquoted SQL identifier."""
    return bool(_IDENTIFIER.match(name))


@runtime_checkable
class Dialect(Protocol):
    """SQL generation interface for one database backend."""

    @property
    def name(self) -> str:
        """Backend identifier (``"sqlite"``, ``"postgresql"``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Placeholder for the parameter at ``index`` (0-based)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholders for ``count`` parameters."""
        ...

    def table_exists_query(self) -> str:
        """Query taking one table-name parameter, returning a row if it exists."""
        ...

    def columns_query(self) -> str:
        """Query taking one table-name parameter, returning ``(name, type)`` rows
        in column order."""
        ...

    def create_ledger_table(self, table: str) -> str:
        """DDL for the ledger table."""
        ...

    def drop_table(self, table: str) -> str:
        """DDL dropping ``table`` if present."""
        ...


# =========================================================================
# Concrete Dialect Implementations
# =========================================================================


class SQLiteDialect:
    """SQLite dialect - ``?`` placeholders, ``CURRENT_TIMESTAMP``."""

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def table_exists_query(self) -> str:
        return "SELECT name FROM sqlite_master WHERE type='table' AND name = ?"

    def columns_query(self) -> str:
        return "SELECT name, type FROM pragma_table_info(?) ORDER BY cid"

    def create_ledger_table(self, table: str) -> str:
        return (
            f"CREATE TABLE {table} ("
            "version INTEGER PRIMARY KEY, "
            "name VARCHAR(255) NOT NULL, "
            "applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP"
            ")"
        )

    def drop_table(self, table: str) -> str:
        return f"DROP TABLE IF EXISTS {table}"


class PostgreSQLDialect:
    """PostgreSQL dialect - ``%s`` placeholders (psycopg2), ``NOW()``."""

    @property
    def name(self) -> str:
        return "postgresql"

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def table_exists_query(self) -> str:
        return (
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name = %s"
        )

    def columns_query(self) -> str:
        return (
            "SELECT column_name, data_type FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND table_name = %s "
            "ORDER BY ordinal_position"
        )

    def create_ledger_table(self, table: str) -> str:
        return (
            f"CREATE TABLE {table} ("
            "version INTEGER PRIMARY KEY, "
            "name VARCHAR(255) NOT NULL, "
            "applied_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()"
            ")"
        )

    def drop_table(self, table: str) -> str:
        return f"DROP TABLE IF EXISTS {table} CASCADE"


# =========================================================================
# Registry / Factory
# =========================================================================

_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        ValueError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise ValueError(
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


__all__ = [
    "Dialect",
    "is_identifier",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "get_dialect",
]
