"""Main CLI application module."""

import typer
import uvicorn
from dotenv import load_dotenv
from rich.panel import Panel

from src.auth_starter.core.exceptions import AuthStarterError
from src.auth_starter.runtime.context import AppContext
from src.auth_starter.runtime.startup import bootstrap

from .db_commands import db_app
from .utils import console

# Create the main CLI application
app = typer.Typer(
    help="🛠️  auth-starter: identity web application",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(db_app, name="db")


@app.callback()
def _load_env() -> None:
    # config.yaml placeholders are substituted from the process environment
    load_dotenv()


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, help="Override the configured bind address"),
    port: int | None = typer.Option(None, help="Override PORT"),
    migrate_on_startup: bool | None = typer.Option(
        None,
        "--migrate/--no-migrate",
        help="Override database.migrate_on_startup",
    ),
) -> None:
    """
    🚀 Start the server.

    Configuration is resolved, services are registered, the pipeline is
    assembled and pending migrations are applied before the first request is
    accepted. Any failure along the way exits with code 1.
    """
    try:
        web_app, _ = bootstrap(migrate=migrate_on_startup)
    except AuthStarterError as e:
        console.print(f"[red]❌ Startup failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    context: AppContext = web_app.state.context
    bind_host = host or context.host
    bind_port = port or context.port

    console.print(
        Panel.fit(
            f"[bold green]Serving {context.config.app.name}[/bold green] "
            f"({context.environment.value}) on http://{bind_host}:{bind_port}",
            border_style="green",
        )
    )
    uvicorn.run(
        web_app,
        host=bind_host,
        port=bind_port,
        access_log=False,  # request logging middleware covers access logs
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
