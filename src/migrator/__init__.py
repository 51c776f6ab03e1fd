"""
migrator - versioned SQL migrations with an auditable ledger table.

- migrator.core: connections, dialects, errors, logging, settings
- migrator.migrations: discovery, ledger and the MigrationRunner
- migrator.cli: the ``migrator`` command
"""

__version__ = "0.1.0"

from migrator.migrations import MigrationRunner  # noqa: E402

__all__ = ["MigrationRunner", "__version__"]
