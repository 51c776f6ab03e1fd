"""SQL migration runner.

Reads ``<version>_<name>.sql`` files from a migrations directory, tracks
applied versions in the ledger table, and applies pending ones in
ascending version order, one at a time.

Each migration is two separate steps: execute the body, then insert
its ledger row. If the process dies between them the migration is
executed but unrecorded and will be attempted again on the next run,
so bodies should guard themselves (``CREATE TABLE IF NOT EXISTS`` ...).
Nothing is locked across a run; two runners started against the same
database at once can race on the ledger's primary key. Run it from one
place, at deploy time.
"""

from __future__ import annotations

import re
from pathlib import Path

from migrator.core.dialect import Dialect, SQLiteDialect
from migrator.core.errors import MigrationExecutionError, ValidationError
from migrator.core.logging import get_logger
from migrator.core.protocols import ArtifactSource, Connection
from migrator.migrations.discovery import DirectorySource, discover_definitions
from migrator.migrations.ledger import Ledger
from migrator.migrations.models import (
    MigrationDefinition,
    MigrationRecord,
    MigrationResult,
    MigrationState,
    StatusReport,
)

logger = get_logger(__name__)

_SQL_COMMENTS = re.compile(r"--[^\n]*|/\*.*?\*/", re.DOTALL)


def has_statements(body: str) -> bool:
    """False if ``body`` holds nothing but comments, whitespace and semicolons."""
    return bool(_SQL_COMMENTS.sub("", body).replace(";", "").strip())


class MigrationRunner:
    """Applies SQL migrations from a directory and records them in a ledger.

    Parameters
    ----------
    conn
        An open ``Connection``. The runner never opens or closes it.
    source
        Where migration files live: an ``ArtifactSource`` or a directory path.
    dialect
        SQL dialect of ``conn``. Defaults to SQLite.
    ledger_table
        Name of the ledger table.
    extension
        Migration file extension, without the dot.

    Example::

        from migrator.core.connection import open_connection
        from migrator.core.dialect import get_dialect
        from migrator.migrations import MigrationRunner

        with open_connection("sqlite:///app.db") as (conn, info):
            runner = MigrationRunner(conn, "migrations", dialect=get_dialect(info.backend))
            result = runner.run()
            print(f"Applied {len(result.applied)} migrations")
    """

    def __init__(
        self,
        conn: Connection,
        source: ArtifactSource | Path | str,
        *,
        dialect: Dialect | None = None,
        ledger_table: str = "migrations",
        extension: str = "sql",
    ) -> None:
        self._conn = conn
        self._source = (
            DirectorySource(source) if isinstance(source, (str, Path)) else source
        )
        self._dialect = dialect or SQLiteDialect()
        self._ledger = Ledger(conn, self._dialect, ledger_table)
        self._extension = extension

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ensure_ledger(self) -> None:
        """Make sure the ledger table exists with the expected columns."""
        self._ledger.ensure()

    def list_applied(self) -> list[int]:
        """Versions recorded in the ledger, ascending."""
        return self._ledger.versions()

    def discover_definitions(self) -> list[MigrationDefinition]:
        """Migration files parsed into definitions, ascending by version."""
        return discover_definitions(self._source, self._extension)

    def get_pending(self) -> list[MigrationDefinition]:
        """Definitions whose version is not in the ledger, ascending."""
        definitions = self.discover_definitions()
        self.ensure_ledger()
        return self._pending(definitions, set(self.list_applied()))

    def run(self, *, dry_run: bool = False) -> MigrationResult:
        """Apply all pending migrations in ascending version order.

        Stops at the first failure. Migrations applied before it stay
        applied and recorded; the failing one is not recorded.

        Raises:
            LedgerError: ledger could not be created, or a row could not be written.
            DiscoveryError: a migration file name is invalid (nothing executes).
            MigrationExecutionError: a migration body failed.
        """
        # Discovery first: a bad file name fails before the database is touched.
        definitions = self.discover_definitions()
        self.ensure_ledger()
        applied = set(self.list_applied())
        pending = self._pending(definitions, applied)

        result = MigrationResult(
            skipped=[d.version for d in definitions if d.version in applied],
            dry_run=dry_run,
        )

        if not pending:
            logger.info("migrations.up_to_date", applied=len(applied))
            return result

        if dry_run:
            result.applied = pending
            logger.info("migrations.dry_run", pending=[d.version for d in pending])
            return result

        logger.info("migrations.running", count=len(pending))
        for definition in pending:
            self._apply(definition)
            result.applied.append(definition)

        logger.info("migrations.completed", count=len(result.applied))
        return result

    def rollback(self, steps: int = 1) -> list[MigrationRecord]:
        """Remove the ``steps`` most recent ledger rows, newest first.

        .. warning::
            This only removes the tracking records. It does **not**
            execute any ``DROP`` or ``ALTER`` statements: the schema
            changes made by those migrations stay in place, and the next
            ``run()`` will execute them again.

        Returns the removed records in the order they were removed.
        """
        if steps < 1:
            raise ValidationError(f"rollback steps must be at least 1, got {steps}")

        self.ensure_ledger()
        records = self._ledger.latest(steps)
        if not records:
            logger.info("migrations.nothing_to_roll_back")
            return []

        logger.info("migrations.rolling_back", count=len(records))
        for record in records:
            self._ledger.remove(record.version)
            logger.info(
                "migration.rolled_back",
                version=record.version,
                migration=record.name,
            )
        return records

    def status(self) -> StatusReport:
        """Applied / pending state of every discovered migration."""
        definitions = self.discover_definitions()
        self.ensure_ledger()
        records = {r.version: r for r in self._ledger.records()}

        report = StatusReport()
        for d in definitions:
            record = records.get(d.version)
            report.migrations.append(
                MigrationState(
                    version=d.version,
                    name=d.name,
                    applied=record is not None,
                    applied_at=record.applied_at if record else None,
                )
            )
        known = {d.version for d in definitions}
        report.orphaned = sorted(v for v in records if v not in known)
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _pending(
        definitions: list[MigrationDefinition], applied: set[int]
    ) -> list[MigrationDefinition]:
        return [d for d in definitions if d.version not in applied]

    def _apply(self, definition: MigrationDefinition) -> None:
        logger.info(
            "migration.applying",
            version=definition.version,
            migration=definition.name,
        )
        if not has_statements(definition.body):
            # psycopg2 refuses comment-only queries; there is nothing to run.
            logger.info(
                "migration.empty",
                version=definition.version,
                migration=definition.name,
            )
            self._ledger.record(definition)
            return

        try:
            self._conn.executescript(definition.body)
            self._conn.commit()
        except Exception as exc:
            self._conn.rollback()
            logger.error(
                "migration.failed",
                version=definition.version,
                migration=definition.name,
                error=str(exc),
            )
            raise MigrationExecutionError(
                f"Migration {definition.version} ({definition.name}) failed: {exc}",
                version=definition.version,
                migration=definition.name,
                cause=exc,
            ) from exc

        self._ledger.record(definition)
        logger.info(
            "migration.applied",
            version=definition.version,
            migration=definition.name,
        )


__all__ = ["MigrationRunner", "has_statements"]
