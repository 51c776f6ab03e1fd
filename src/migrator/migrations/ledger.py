"""The ledger table: which migration versions have been applied, and when.

Shape (see :data:`~migrator.migrations.models.LEDGER_COLUMNS`)::

    version     INTEGER PRIMARY KEY
    name        VARCHAR(255) NOT NULL
    applied_at  TIMESTAMP, defaulted by the database at insert time

``ensure()`` decides what to do from catalog metadata rather than from a
failed query: a missing table is created, and a table that lacks any
expected column is treated as unrecoverable drift and dropped and
recreated, which discards its history.
"""

from __future__ import annotations

from datetime import datetime

from migrator.core.dialect import Dialect, is_identifier
from migrator.core.errors import LedgerError, ValidationError
from migrator.core.logging import get_logger
from migrator.core.protocols import Connection
from migrator.migrations.models import (
    LEDGER_COLUMNS,
    ColumnInfo,
    MigrationDefinition,
    MigrationRecord,
)

logger = get_logger(__name__)


def _to_datetime(value: object) -> datetime | None:
    """Normalise ``applied_at`` (SQLite hands back text, psycopg2 a datetime)."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class Ledger:
    """Reads and writes the ledger table through a ``Connection``."""

    def __init__(self, conn: Connection, dialect: Dialect, table: str = "migrations") -> None:
        if not is_identifier(table):
            raise ValidationError(
                f"Ledger table name must be a plain SQL identifier, got {table!r}"
            ).with_context(table=table)
        self._conn = conn
        self._dialect = dialect
        self._table = table

    @property
    def table(self) -> str:
        return self._table

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def exists(self) -> bool:
        self._conn.execute(self._dialect.table_exists_query(), (self._table,))
        return self._conn.fetchone() is not None

    def columns(self) -> list[ColumnInfo]:
        """Ordered ``(name, type)`` pairs for the ledger table."""
        self._conn.execute(self._dialect.columns_query(), (self._table,))
        return [ColumnInfo(name=row[0], type=str(row[1])) for row in self._conn.fetchall()]

    def missing_columns(self) -> list[str]:
        present = {c.name.lower() for c in self.columns()}
        return [name for name in LEDGER_COLUMNS if name not in present]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ensure(self) -> None:
        """Create the ledger if missing; recreate it if its shape drifted.

        Raises:
            LedgerError: if the CREATE or DROP statement fails.
        """
        if not self.exists():
            self._run_ddl(self._dialect.create_ledger_table(self._table))
            logger.info("ledger.created", table=self._table)
            return

        missing = self.missing_columns()
        if not missing:
            return

        logger.warning(
            "ledger.recreating",
            table=self._table,
            missing_columns=missing,
            detail="ledger shape does not match; dropping it discards applied history",
        )
        self._run_ddl(self._dialect.drop_table(self._table))
        self._run_ddl(self._dialect.create_ledger_table(self._table))
        logger.info("ledger.recreated", table=self._table)

    def _run_ddl(self, sql: str) -> None:
        try:
            self._conn.execute(sql)
            self._conn.commit()
        except Exception as exc:
            self._conn.rollback()
            raise LedgerError(
                f"Could not create ledger table {self._table}: {exc}",
                cause=exc,
            ).with_context(table=self._table) from exc

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    def versions(self) -> list[int]:
        """Applied versions, ascending."""
        self._conn.execute(f"SELECT version FROM {self._table} ORDER BY version")
        return [int(row[0]) for row in self._conn.fetchall()]

    def records(self) -> list[MigrationRecord]:
        """All ledger rows, ascending by version."""
        self._conn.execute(
            f"SELECT version, name, applied_at FROM {self._table} ORDER BY version"
        )
        return [self._to_record(row) for row in self._conn.fetchall()]

    def latest(self, limit: int) -> list[MigrationRecord]:
        """The ``limit`` highest-versioned rows, descending."""
        ph = self._dialect.placeholder(0)
        self._conn.execute(
            f"SELECT version, name, applied_at FROM {self._table} "
            f"ORDER BY version DESC LIMIT {ph}",
            (limit,),
        )
        return [self._to_record(row) for row in self._conn.fetchall()]

    def record(self, definition: MigrationDefinition) -> None:
        """Insert the row for a migration whose body has executed.

        Raises:
            LedgerError: if the insert fails (e.g. another runner already
                recorded this version).
        """
        sql = (
            f"INSERT INTO {self._table} (version, name) "
            f"VALUES ({self._dialect.placeholders(2)})"
        )
        try:
            self._conn.execute(sql, (definition.version, definition.name))
            self._conn.commit()
        except Exception as exc:
            self._conn.rollback()
            raise LedgerError(
                f"Migration {definition.version} executed but could not be recorded: {exc}",
                version=definition.version,
                cause=exc,
            ).with_context(table=self._table, migration=definition.name) from exc

    def remove(self, version: int) -> None:
        ph = self._dialect.placeholder(0)
        self._conn.execute(f"DELETE FROM {self._table} WHERE version = {ph}", (version,))
        self._conn.commit()

    @staticmethod
    def _to_record(row) -> MigrationRecord:
        return MigrationRecord(
            version=int(row[0]),
            name=row[1],
            applied_at=_to_datetime(row[2]),
        )


__all__ = ["Ledger"]
