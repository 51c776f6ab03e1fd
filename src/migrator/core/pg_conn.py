"""PostgreSQL connection adapter.

Wraps a ``psycopg2`` connection to satisfy the
:class:`~migrator.core.protocols.Connection` protocol. Parameterized
statements use ``%s`` placeholders (see
:class:`~migrator.core.dialect.PostgreSQLDialect`); raw migration bodies
go through ``executescript()``, which sends the text without parameters
so psycopg2 passes multi-statement scripts through unchanged.
"""

from __future__ import annotations

from typing import Any

import psycopg2


class PostgresConnection:
    """Adapter: ``psycopg2`` connection → ``Connection`` protocol."""

    def __init__(self, dsn: str, *, connect_timeout: int = 10) -> None:
        self._conn = psycopg2.connect(dsn, connect_timeout=connect_timeout)
        self._cursor = self._conn.cursor()

    def execute(self, sql: str, params: tuple = ()) -> Any:
        self._cursor.execute(sql, params or None)
        return self._cursor

    def executescript(self, sql: str) -> None:
        self._cursor.execute(sql)

    def fetchone(self) -> Any:
        return self._cursor.fetchone()

    def fetchall(self) -> list:
        return self._cursor.fetchall()

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    def close(self) -> None:
        self._cursor.close()
        self._conn.close()

    @property
    def raw(self) -> Any:
        return self._conn

    def __repr__(self) -> str:
        return f"PostgresConnection(dsn={self._conn.dsn!r})"
