"""Connection factory - open database connections from URL strings.

Supported URL schemes
---------------------
==================  ==========================================  ============
Scheme              Example                                     Backend
==================  ==========================================  ============
``memory``          ``memory`` or ``:memory:``                  SQLite RAM
``sqlite``          ``sqlite:///path/to/file.db``               SQLite file
``(file path)``     ``./data/app.db``                           SQLite file
``postgresql``      ``postgresql://user:pw@host:port/db``       PostgreSQL
``postgres``        ``postgres://user:pw@host:port/db``         PostgreSQL
==================  ==========================================  ============

There is no process-wide connection. Callers open one, hand it to the
runner, and close it when done::

    from migrator.core.connection import open_connection

    with open_connection("sqlite:///app.db") as (conn, info):
        runner = MigrationRunner(conn, "migrations", dialect=get_dialect(info.backend))
        runner.run()

A connection that cannot be opened raises
:class:`~migrator.core.errors.DatabaseConnectionError` with a hint for
the operator. There is no fallback to another backend.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from migrator.core.errors import DatabaseConnectionError
from migrator.core.logging import get_logger
from migrator.core.protocols import Connection

logger = get_logger(__name__)


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about a database connection."""

    backend: str
    """Backend identifier: ``"sqlite"`` or ``"postgresql"``."""

    persistent: bool
    """Whether data survives process exit."""

    url: str
    """The original URL or path used to create the connection."""

    resolved_path: str | None = None
    """For file-based SQLite, the resolved absolute path."""

    def __repr__(self) -> str:
        parts = [f"backend={self.backend!r}", f"persistent={self.persistent}"]
        if self.resolved_path:
            parts.append(f"path={self.resolved_path!r}")
        else:
            parts.append(f"url={redact_url(self.url)!r}")
        return f"ConnectionInfo({', '.join(parts)})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    @property
    def is_postgres(self) -> bool:
        return self.backend == "postgresql"


# ── Failure hints ────────────────────────────────────────────────────────

# SQLSTATE codes psycopg2 exposes as ``pgcode`` on server-side failures.
_PG_HINTS = {
    "28P01": "Authentication failed - check the username and password in DATABASE_URL.",
    "28000": "Authentication rejected - check pg_hba.conf and the role's access.",
    "3D000": "Database does not exist - create it first (e.g. `createdb <name>`).",
}


def connection_hint(exc: BaseException) -> str:
    """Return an operator-facing hint for a failed connection attempt."""
    code = getattr(exc, "pgcode", None)
    if code in _PG_HINTS:
        return _PG_HINTS[code]

    text = str(exc).lower()
    if "password authentication failed" in text:
        return _PG_HINTS["28P01"]
    if "does not exist" in text and "database" in text:
        return _PG_HINTS["3D000"]
    if "connection refused" in text:
        return "Connection refused - is the database server running on that host and port?"
    if "could not translate host name" in text or "name or service not known" in text:
        return "Host not found - check the host part of DATABASE_URL."
    if "unable to open database file" in text:
        return "SQLite file could not be opened - check the path and its permissions."
    return "Check DATABASE_URL and that the database server is reachable."


def redact_url(url: str) -> str:
    """Hide the password component of a database URL."""
    if "://" not in url or "@" not in url:
        return url
    scheme, rest = url.split("://", 1)
    creds, host = rest.rsplit("@", 1)
    if ":" in creds:
        user = creds.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"
    return url


# ── Backends ─────────────────────────────────────────────────────────────


def _create_sqlite_memory() -> tuple[Connection, ConnectionInfo]:
    from migrator.core.sqlite_conn import SqliteConnection

    conn = SqliteConnection(":memory:")
    return conn, ConnectionInfo(backend="sqlite", persistent=False, url=":memory:")


def _create_sqlite_file(path_str: str) -> tuple[Connection, ConnectionInfo]:
    from migrator.core.sqlite_conn import SqliteConnection

    path = Path(path_str)
    path.parent.mkdir(parents=True, exist_ok=True)
    resolved = str(path.resolve())

    try:
        conn = SqliteConnection(resolved)
    except sqlite3.Error as e:
        raise DatabaseConnectionError(
            f"Cannot open SQLite database {resolved}: {e}",
            hint=connection_hint(e),
            cause=e,
        ) from e
    info = ConnectionInfo(
        backend="sqlite",
        persistent=True,
        url=path_str,
        resolved_path=resolved,
    )
    return conn, info


def _create_postgresql(url: str) -> tuple[Connection, ConnectionInfo]:
    import psycopg2

    from migrator.core.pg_conn import PostgresConnection

    try:
        conn = PostgresConnection(url)
    except psycopg2.Error as e:
        raise DatabaseConnectionError(
            f"Cannot connect to PostgreSQL at {redact_url(url)}: {e}".strip(),
            hint=connection_hint(e),
            cause=e,
        ) from e
    return conn, ConnectionInfo(backend="postgresql", persistent=True, url=url)


# ── URL parsing ──────────────────────────────────────────────────────────


def _parse_url(db: str | None) -> tuple[str, str]:
    """Parse a database URL into (scheme, target).

    scheme is one of ``"memory"``, ``"sqlite"``, ``"postgresql"``, ``"file"``.
    """
    if db is None or db in ("", "memory", ":memory:"):
        return "memory", ":memory:"

    if db.startswith("sqlite://"):
        path = db[len("sqlite:///"):] if db.startswith("sqlite:///") else db[len("sqlite://"):]
        if not path or path == ":memory:":
            return "memory", ":memory:"
        return "sqlite", path

    if db.startswith(("postgresql://", "postgres://")):
        return "postgresql", db

    if db.startswith(("postgresql+", "postgres+")):
        # postgresql+psycopg2://... → postgresql://...
        base = db.split("://", 1)
        scheme = base[0].split("+")[0]
        return "postgresql", f"{scheme}://{base[1]}" if len(base) > 1 else db

    return "file", db


# ── Main factory ─────────────────────────────────────────────────────────


def create_connection(db: str | None = None) -> tuple[Connection, ConnectionInfo]:
    """Create a database connection from a URL, path, or keyword.

    Returns the connection (satisfies ``Connection``) and metadata about
    it. The caller owns the connection and must close it; prefer
    :func:`open_connection`.

    Raises:
        DatabaseConnectionError: if the database cannot be reached.
    """
    scheme, target = _parse_url(db)

    if scheme == "memory":
        conn, info = _create_sqlite_memory()
    elif scheme in ("sqlite", "file"):
        conn, info = _create_sqlite_file(target)
    else:
        conn, info = _create_postgresql(target)

    logger.debug("connection.opened", backend=info.backend, persistent=info.persistent)
    return conn, info


@contextmanager
def open_connection(db: str | None = None) -> Iterator[tuple[Connection, ConnectionInfo]]:
    """Scoped connection: opened on entry, always closed on exit."""
    conn, info = create_connection(db)
    try:
        yield conn, info
    finally:
        conn.close()
        logger.debug("connection.closed", backend=info.backend)


def describe(info: ConnectionInfo) -> dict[str, Any]:
    """Loggable summary of a connection, password redacted."""
    return {
        "backend": info.backend,
        "persistent": info.persistent,
        "target": info.resolved_path or redact_url(info.url),
    }


__all__ = [
    "ConnectionInfo",
    "connection_hint",
    "create_connection",
    "describe",
    "open_connection",
    "redact_url",
]
