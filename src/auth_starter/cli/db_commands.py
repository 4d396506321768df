"""Database CLI commands: connection string and migrations."""

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.table import Table

from src.auth_starter.api.utils.app_startup import configure_logging
from src.auth_starter.core.exceptions import AuthStarterError
from src.auth_starter.core.services.database.db_session import DbSessionService
from src.auth_starter.runtime.connection import (
    database_url_from_connection_string,
    mask_connection_string,
    resolve_connection_string,
)
from src.auth_starter.runtime.context import AppContext
from src.auth_starter.runtime.migrations import MigrationRunner

from .utils import console, context_or_exit

db_app = typer.Typer(help="🗄️  Database connection and migration commands")


@contextmanager
def _migration_runner(context: AppContext) -> Iterator[MigrationRunner]:
    """A runner over a short-lived engine that is disposed on exit."""
    connection_string = resolve_connection_string(context.settings, context.config)
    database = DbSessionService(
        database_url_from_connection_string(connection_string),
        context.config.database,
        context.environment,
    )
    try:
        yield MigrationRunner(database, lock_id=context.config.database.migration_lock_id)
    finally:
        database.dispose()


@db_app.command("connection-string")
def connection_string() -> None:
    """Print the resolved database connection string with the password hidden."""
    context = context_or_exit()
    try:
        value = resolve_connection_string(context.settings, context.config)
    except AuthStarterError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e
    console.print(mask_connection_string(value), highlight=False, soft_wrap=True)


@db_app.command("pending")
def pending() -> None:
    """List migrations that have not been applied yet."""
    context = context_or_exit()
    configure_logging(context)
    try:
        with _migration_runner(context) as runner:
            revisions = runner.pending_revisions()
    except AuthStarterError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    if not revisions:
        console.print("[green]✅ Database schema is up to date[/green]")
        return

    table = Table(title="Pending migrations")
    table.add_column("#", style="cyan")
    table.add_column("Revision", style="green")
    for index, revision in enumerate(revisions, start=1):
        table.add_row(str(index), revision)
    console.print(table)


@db_app.command("migrate")
def migrate() -> None:
    """Apply every pending migration and exit."""
    context = context_or_exit()
    configure_logging(context)
    try:
        with _migration_runner(context) as runner:
            applied = runner.apply_pending()
    except AuthStarterError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    if applied:
        console.print(f"[green]✅ Applied {len(applied)} migration(s)[/green]")
    else:
        console.print("[green]✅ Nothing to apply[/green]")
