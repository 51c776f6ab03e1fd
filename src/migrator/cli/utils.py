"""
CLI utility helpers - state, runner wiring and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from migrator.core.connection import describe, open_connection
from migrator.core.dialect import get_dialect
from migrator.core.errors import DatabaseConnectionError, MigratorError
from migrator.core.logging import LogContext, get_logger
from migrator.core.settings import MigratorSettings
from migrator.migrations.runner import MigrationRunner

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)


@dataclass
class CliState:
    """Options resolved by the root callback, shared with sub-commands."""

    settings: MigratorSettings
    as_json: bool = False


# ── Runner helper ────────────────────────────────────────────────────────


@contextmanager
def open_runner(state: CliState) -> Iterator[MigrationRunner]:
    """Open the configured database, yield a runner, close on exit.

    Any ``MigratorError`` (or driver error) escaping the block is logged,
    printed, and turned into exit code 1.
    """
    settings = state.settings
    try:
        with open_connection(settings.database_url) as (conn, info):
            logger.debug("database.selected", **describe(info))
            with LogContext(backend=info.backend, table=settings.ledger_table):
                yield MigrationRunner(
                    conn,
                    settings.migrations_dir,
                    dialect=get_dialect(info.backend),
                    ledger_table=settings.ledger_table,
                    extension=settings.file_extension,
                )
    except typer.Exit:
        raise
    except MigratorError as exc:
        logger.error("migrator.error", **exc.to_dict())
        print_error(exc)
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        logger.exception("migrator.unexpected_error", error=str(exc))
        err_console.print(f"[bold red]Error[/bold red]: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


# ── Output helpers ───────────────────────────────────────────────────────


def print_error(exc: MigratorError) -> None:
    err_console.print(
        f"[bold red]Error[/bold red] ({exc.__class__.__name__}): {escape(exc.message)}"
    )
    if isinstance(exc, DatabaseConnectionError) and exc.hint:
        err_console.print(f"[yellow]Hint:[/yellow] {escape(exc.hint)}")


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))

