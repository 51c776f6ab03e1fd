"""Environment-driven settings for the migrator.

``MigratorSettings`` reads ``MIGRATOR_*`` environment variables (and a
``.env`` file in the working directory). The database URL additionally
falls back to the conventional ``DATABASE_URL`` so the tool drops into
an existing application's environment without extra wiring.

Examples:
    >>> from migrator.core.settings import MigratorSettings
    >>> s = MigratorSettings(database_url="sqlite:///app.db")
    >>> s.ledger_table
    'migrations'

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from migrator.core.dialect import is_identifier
from migrator.core.logging import LOG_LEVELS


class MigratorSettings(BaseSettings):
    """Migrator configuration.

    Fields
    ──────
    database_url    : Target database (``sqlite:///...``, ``postgresql://...``)
    migrations_dir  : Directory holding ``<version>_<name>.<ext>`` files
    ledger_table    : Name of the table recording applied versions
    file_extension  : Extension of migration files, without the dot
    log_level       : Structlog log level
    log_json        : Force JSON (True) or console (False) logs; None = auto
    """

    model_config = SettingsConfigDict(
        env_prefix="MIGRATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str = Field(
        default="postgresql://localhost:5432/postgres",
        validation_alias=AliasChoices("MIGRATOR_DATABASE_URL", "DATABASE_URL"),
    )
    migrations_dir: Path = Path("migrations")
    ledger_table: str = "migrations"
    file_extension: str = "sql"

    log_level: str = "INFO"
    log_json: bool | None = None

    @field_validator("ledger_table")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        if not is_identifier(value):
            raise ValueError(f"ledger_table must be a plain SQL identifier, got {value!r}")
        return value

    @field_validator("file_extension")
    @classmethod
    def _strip_dot(cls, value: str) -> str:
        value = value.lstrip(".")
        if not value or not value.isalnum():
            raise ValueError(f"file_extension must be alphanumeric, got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
        return level


__all__ = ["MigratorSettings"]
