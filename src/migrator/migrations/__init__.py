"""Versioned SQL migrations.

Applies numbered ``.sql`` files in version order, tracking which have
already been applied in a ledger table.

Modules
-------
discovery   migration files → MigrationDefinition
ledger      the ledger table
models      value types
runner      MigrationRunner: run() / rollback() / status()
"""

from migrator.migrations.discovery import DirectorySource, discover_definitions
from migrator.migrations.ledger import Ledger
from migrator.migrations.models import (
    LEDGER_COLUMNS,
    ColumnInfo,
    MigrationDefinition,
    MigrationRecord,
    MigrationResult,
    MigrationState,
    StatusReport,
)
from migrator.migrations.runner import MigrationRunner

__all__ = [
    "LEDGER_COLUMNS",
    "ColumnInfo",
    "DirectorySource",
    "Ledger",
    "MigrationDefinition",
    "MigrationRecord",
    "MigrationResult",
    "MigrationRunner",
    "MigrationState",
    "StatusReport",
    "discover_definitions",
]
