"""Value types for migrations and the ledger."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Column names the ledger table must have, in order.
LEDGER_COLUMNS: tuple[str, ...] = ("version", "name", "applied_at")


@dataclass(frozen=True)
class MigrationDefinition:
    """A migration file parsed into version, name and SQL body."""

    version: int
    name: str
    body: str = field(repr=False)
    filename: str = ""


@dataclass(frozen=True)
class MigrationRecord:
    """Record of a single applied migration (one ledger row)."""

    version: int
    name: str
    applied_at: datetime | None


@dataclass(frozen=True)
class ColumnInfo:
    """One column of a table as reported by the database catalog."""

    name: str
    type: str


@dataclass(frozen=True)
class MigrationState:
    """Whether one discovered definition has been applied."""

    version: int
    name: str
    applied: bool
    applied_at: datetime | None = None


@dataclass
class StatusReport:
    """Status of every discovered migration against the ledger."""

    migrations: list[MigrationState] = field(default_factory=list)
    orphaned: list[int] = field(default_factory=list)
    """Ledger versions with no matching migration file."""

    @property
    def total(self) -> int:
        return len(self.migrations)

    @property
    def pending(self) -> int:
        return sum(1 for m in self.migrations if not m.applied)

    @property
    def applied(self) -> int:
        return self.total - self.pending


@dataclass
class MigrationResult:
    """Result of a migration run.

    Failures are raised, never collected here: a returned result means
    every migration in ``applied`` executed and was recorded.
    """

    applied: list[MigrationDefinition] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    dry_run: bool = False

    @property
    def applied_versions(self) -> list[int]:
        return [d.version for d in self.applied]
