"""Main CLI entry point for Project Tracker.

This module provides the main Typer application with commands for schema
setup, serving the HTTP API, and audit log maintenance.

Usage:
    projecttracker init-db
    projecttracker serve --port 8000
    projecttracker audit cleanup --retention-days 90 --actor ops
    projecttracker audit recent --days 7
    projecttracker audit stats
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Optional

import typer
from rich.console import Console

from projecttracker.cli import audit as audit_cli
from projecttracker.config import ProjectTrackerConfig, load_config
from projecttracker.database.connection import create_schema
from projecttracker.logging import get_logger, setup_logging
from projecttracker.services.container import ServiceContainer, build_container

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

app = typer.Typer(
    name="projecttracker",
    help="Project Tracker: audited project, developer, and task management",
    no_args_is_help=True,
)

app.add_typer(audit_cli.app, name="audit", help="Maintain and inspect the audit log")

console = Console()
logger = get_logger(__name__)


class AppContext:
    """Application context shared across CLI commands.

    Services are built per command inside that command's event loop and
    closed when it finishes, so engines never outlive their loop.

    Attributes:
        config: Loaded Project Tracker configuration
    """

    def __init__(self, config: ProjectTrackerConfig):
        self.config = config

    @asynccontextmanager
    async def services(self) -> AsyncIterator[ServiceContainer]:
        """Build a service container and close it on exit."""
        container = build_container(self.config)
        try:
            yield container
        finally:
            await container.close()


# Global context holder
_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: ProjectTrackerConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command("init-db")
def init_db() -> None:
    """Create any missing tables in the primary and audit stores."""
    ctx = get_app_context()

    async def _init_db() -> None:
        async with ctx.services() as container:
            await create_schema(container.engine, container.audit_engine)

    try:
        asyncio.run(_init_db())
    except Exception as e:
        logger.error("schema_creation_failed", error=str(e), exc_info=True)
        console.print(f"[red]Error creating schema:[/red] {e}")
        raise typer.Exit(code=1)

    console.print("[green]Schema ready[/green] in both stores")


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default: web.host)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default: web.port)"),
    ] = None,
) -> None:
    """Start the Project Tracker HTTP API.

    Runs the FastAPI application with uvicorn. Host and port default to
    the [web] section of the configuration.
    """
    import uvicorn

    from projecttracker.web.app import create_app

    ctx = get_app_context()
    host = host or ctx.config.web.host
    port = port or ctx.config.web.port

    console.print("[bold cyan]Starting Project Tracker API[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {host}")
    console.print(f"[dim]Port:[/dim] {port}")
    console.print()

    uvicorn.run(
        create_app(ctx.config),
        host=host,
        port=port,
        log_level=ctx.config.logging.level.lower(),
    )


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure global options and initialize application context."""
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    logging_config = config.logging
    if verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})
    setup_logging(logging_config)

    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
