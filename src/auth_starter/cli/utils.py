"""Shared utilities for CLI commands."""

import typer
from rich.console import Console

from src.auth_starter.core.exceptions import AuthStarterError
from src.auth_starter.runtime.context import AppContext, load_context

# Initialize Rich console for colored output
console = Console()


def context_or_exit() -> AppContext:
    """Load the application context, exiting with code 1 on bad configuration."""
    try:
        return load_context()
    except (AuthStarterError, ValueError) as e:
        console.print(f"[red]❌ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e
