"""
Root Typer application for the ``migrator`` command.

``migrator`` with no sub-command applies pending migrations; ``status``,
``rollback``, ``pending`` and ``new`` cover the rest. Options given
before the sub-command override ``MIGRATOR_*`` environment settings.
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError as SettingsValidationError

from migrator.cli.utils import CliState, console, open_runner, print_error, print_json
from migrator.core.errors import DiscoveryError, InvalidConfigError
from migrator.core.logging import configure_logging
from migrator.core.settings import MigratorSettings
from migrator.migrations.discovery import scaffold_migration
from migrator.migrations.models import MigrationResult

app = typer.Typer(
    name="migrator",
    help="migrator - versioned SQL migrations with a ledger table.",
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        from migrator import __version__

        try:
            v = pkg_version("sql-migrator")
        except PackageNotFoundError:
            v = __version__
        typer.echo(f"migrator {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    database: str | None = typer.Option(
        None, "--database", "-d", help="Database URL or SQLite path."
    ),
    migrations_dir: Path | None = typer.Option(
        None, "--dir", help="Directory holding <version>_<name>.sql files."
    ),
    ledger_table: str | None = typer.Option(None, "--table", help="Ledger table name."),
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR or CRITICAL."),
    json_out: bool = typer.Option(False, "--json", help="JSON output."),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="With no sub-command: list pending migrations, apply nothing."
    ),
) -> None:
    """Apply pending migrations (default), or run a sub-command."""
    overrides = {
        "database_url": database,
        "migrations_dir": migrations_dir,
        "ledger_table": ledger_table,
        "log_level": log_level,
    }
    try:
        settings = MigratorSettings(**{k: v for k, v in overrides.items() if v is not None})
    except SettingsValidationError as exc:
        first = exc.errors()[0]
        key = ".".join(str(part) for part in first["loc"]) or "settings"
        print_error(
            InvalidConfigError(
                key,
                first.get("input"),
                f"Invalid configuration for {key}: {first['msg']}",
            )
        )
        raise typer.Exit(code=1) from exc

    configure_logging(level=settings.log_level, json_format=settings.log_json)
    ctx.obj = CliState(settings=settings, as_json=json_out)

    if ctx.invoked_subcommand is None:
        _run(ctx.obj, dry_run=dry_run)


# ── Commands ─────────────────────────────────────────────────────────────


def _run(state: CliState, *, dry_run: bool) -> None:
    with open_runner(state) as runner:
        result = runner.run(dry_run=dry_run)
    _print_result(result, as_json=state.as_json)


@app.command()
def up(
    ctx: typer.Context,
    dry_run: bool = typer.Option(False, "--dry-run", help="List pending migrations, apply nothing."),
) -> None:
    """Apply all pending migrations in version order."""
    _run(ctx.obj, dry_run=dry_run)


@app.command()
def pending(ctx: typer.Context) -> None:
    """List pending migrations without applying them."""
    _run(ctx.obj, dry_run=True)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show which migrations are applied and which are pending."""
    state: CliState = ctx.obj
    with open_runner(state) as runner:
        report = runner.status()

    if state.as_json:
        print_json(
            {
                "migrations": [
                    {
                        "version": m.version,
                        "name": m.name,
                        "applied": m.applied,
                        "applied_at": m.applied_at,
                    }
                    for m in report.migrations
                ],
                "total": report.total,
                "pending": report.pending,
                "orphaned": report.orphaned,
            }
        )
        return

    console.print("[bold]Migration Status[/bold]")
    for m in report.migrations:
        marker = "[green]applied[/green]" if m.applied else "[yellow]pending[/yellow]"
        console.print(f"  {marker}  {m.version}: {m.name}", highlight=False)
    if report.orphaned:
        versions = ", ".join(str(v) for v in report.orphaned)
        console.print(f"[yellow]Recorded with no migration file:[/yellow] {versions}")
    console.print(f"\nTotal: {report.total} migrations, {report.pending} pending", highlight=False)


@app.command()
def rollback(
    ctx: typer.Context,
    steps: int = typer.Argument(1, help="Number of most recent migrations to un-record."),
) -> None:
    """Remove the most recent ledger records (schema changes are NOT reversed)."""
    state: CliState = ctx.obj
    with open_runner(state) as runner:
        removed = runner.rollback(steps)

    if state.as_json:
        print_json({"rolled_back": [{"version": r.version, "name": r.name} for r in removed]})
        return

    if not removed:
        console.print("No migrations to roll back")
        return
    for record in removed:
        console.print(f"Rolled back {record.version}: {record.name}", highlight=False)
    console.print("[dim]Ledger records only; schema changes were left in place.[/dim]")


@app.command()
def new(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Short description, e.g. 'add email to users'."),
) -> None:
    """Create the next numbered, empty migration file."""
    settings: MigratorSettings = ctx.obj.settings
    try:
        path = scaffold_migration(settings.migrations_dir, name, settings.file_extension)
    except DiscoveryError as exc:
        print_error(exc)
        raise typer.Exit(code=1) from exc
    console.print(f"Created {path}", highlight=False)


# ── Output ───────────────────────────────────────────────────────────────


def _print_result(result: MigrationResult, *, as_json: bool) -> None:
    if as_json:
        print_json(
            {
                "applied": [{"version": d.version, "name": d.name} for d in result.applied],
                "skipped": result.skipped,
                "dry_run": result.dry_run,
            }
        )
        return

    if not result.applied:
        console.print("No pending migrations")
        return

    verb = "Pending" if result.dry_run else "Applied"
    for d in result.applied:
        console.print(f"{verb} {d.version}: {d.name}", highlight=False)
    if result.dry_run:
        console.print(f"{len(result.applied)} migration(s) pending", highlight=False)
    else:
        console.print(
            f"All migrations completed successfully ({len(result.applied)} applied)",
            highlight=False,
        )
