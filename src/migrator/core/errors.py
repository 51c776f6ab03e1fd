"""
Structured error types for the migrator.

Every failure the runner can surface is a ``MigratorError`` subclass
carrying a category, a retryable flag, structured context and the
chained driver exception. Nothing in this package retries on its own;
the flag only tells the caller what kind of failure it is looking at.

Manifesto:
    - **Typed Error Hierarchy:** One error type per failure mode
    - **No silent recovery:** Errors propagate to the CLI, which exits 1
    - **Rich Context:** Version, file name and table travel with the error
    - **Error Chaining:** The driver exception is kept as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                      MigratorError                        │
        │        (category, retryable, context, cause)              │
        ├──────────────────────────────────────────────────────────┤
        │  ConfigError        ValidationError    DiscoveryError     │
        │  (CONFIG)           (VALIDATION)       (SOURCE)           │
        │       │                                                   │
        │  InvalidConfigError                                       │
        │                                                           │
        │  DatabaseError                  DatabaseConnectionError   │
        │  (DATABASE)                     (DATABASE, retryable)     │
        │       │                                                   │
        │  LedgerError   MigrationExecutionError                    │
        └──────────────────────────────────────────────────────────┘

Examples:
    >>> error = MigrationExecutionError("boom", version=3)
    >>> error.version
    3
    >>> error.to_dict()["category"]
    'DATABASE'

Tags:
    error-handling, exception-hierarchy, migrations, ledger
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and reporting."""

    DATABASE = "DATABASE"
    SOURCE = "SOURCE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        version: Migration version involved, if any
        migration: Migration name involved, if any
        filename: Artifact file name involved, if any
        table: Database table involved, if any
        metadata: Additional key-value pairs
    """

    version: int | None = None
    migration: str | None = None
    filename: str | None = None
    table: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["version", "migration", "filename", "table"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class MigratorError(Exception):
    """
    Base exception for all migrator errors.

    Subclasses set ``default_category`` and ``default_retryable`` to give
    sensible defaults for their domain.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> MigratorError:
        """
        Add context to this error (fluent API).

        Usage:
            raise LedgerError("Insert failed").with_context(table="migrations")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION / VALIDATION ERRORS
# =============================================================================


class ConfigError(MigratorError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


class ValidationError(MigratorError):
    """Invalid argument passed to a runner operation."""

    default_category = ErrorCategory.VALIDATION
    default_retryable = False


# =============================================================================
# DISCOVERY ERRORS
# =============================================================================


class DiscoveryError(MigratorError):
    """
    A migration artifact could not be turned into a definition.

    Raised for malformed file names, non-positive versions and duplicate
    versions. Discovery runs before any statement executes.
    """

    default_category = ErrorCategory.SOURCE
    default_retryable = False

    def __init__(self, message: str, *, filename: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.filename = filename
        if filename is not None:
            self.context.filename = filename


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(MigratorError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class DatabaseConnectionError(DatabaseError):
    """Database could not be reached or refused the session."""

    default_retryable = True

    def __init__(self, message: str, *, hint: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.hint = hint


class LedgerError(DatabaseError):
    """The ledger table could not be created, repaired or written."""

    def __init__(self, message: str, *, version: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.version = version
        if version is not None:
            self.context.version = version


class MigrationExecutionError(DatabaseError):
    """A pending migration's body failed while executing."""

    def __init__(
        self,
        message: str,
        *,
        version: int,
        migration: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.version = version
        self.migration = migration
        self.context.version = version
        if migration is not None:
            self.context.migration = migration


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "MigratorError",
    "ConfigError",
    "InvalidConfigError",
    "ValidationError",
    "DiscoveryError",
    "DatabaseError",
    "DatabaseConnectionError",
    "LedgerError",
    "MigrationExecutionError",
]
