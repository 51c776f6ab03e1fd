"""
migrator.core - infrastructure shared by the runner and the CLI.

Modules
-------
connection    URL → Connection factory and scoped lifecycle
dialect       Backend-specific SQL for the ledger
errors        Typed error hierarchy
logging       structlog configuration
pg_conn       psycopg2 adapter
protocols     Connection / ArtifactSource contracts
settings      pydantic-settings configuration
sqlite_conn   sqlite3 adapter
"""

from migrator.core.connection import ConnectionInfo, create_connection, open_connection
from migrator.core.dialect import Dialect, get_dialect
from migrator.core.errors import (
    ConfigError,
    DatabaseConnectionError,
    DatabaseError,
    DiscoveryError,
    LedgerError,
    MigrationExecutionError,
    MigratorError,
    ValidationError,
)
from migrator.core.protocols import ArtifactSource, Connection

__all__ = [
    "ArtifactSource",
    "ConfigError",
    "Connection",
    "ConnectionInfo",
    "DatabaseConnectionError",
    "DatabaseError",
    "Dialect",
    "DiscoveryError",
    "LedgerError",
    "MigrationExecutionError",
    "MigratorError",
    "ValidationError",
    "create_connection",
    "get_dialect",
    "open_connection",
]
