"""Main CLI entry point for Catalyst.

This module provides the main Typer application with sub-commands for the
project workflow, the planned file tree and the task board.

Usage:
    catalyst project new "habit tracker" --type "Web Application"
    catalyst project next
    catalyst tree add src/app main.py --file
    catalyst board move 0-0 "In Progress"
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from pathlib import Path
from typing import Annotated, Any, Optional, TypeVar

import typer
from rich.console import Console

from catalyst.cli import board as board_cli
from catalyst.cli import project as project_cli
from catalyst.cli import tree as tree_cli
from catalyst.config import CatalystConfig, GeneratorConfig, load_config
from catalyst.generation.ollama import OllamaGenerator
from catalyst.logging import setup_logging
from catalyst.workspace import Workspace

T = TypeVar("T")

app = typer.Typer(
    name="catalyst",
    help="Catalyst: AI-assisted project planning workflow",
    no_args_is_help=True,
)

# Add sub-apps
app.add_typer(project_cli.app, name="project", help="Work through the project phases")
app.add_typer(tree_cli.app, name="tree", help="Edit the planned file tree")
app.add_typer(board_cli.app, name="board", help="Work the task board")

console = Console()


def create_generator(config: GeneratorConfig) -> AbstractAsyncContextManager[Any]:
    """Build the artifact generator used by CLI commands."""
    return OllamaGenerator(config)


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Catalyst configuration
        generator_factory: Builds an async context manager yielding a generator
    """

    def __init__(self, config: CatalystConfig):
        """Initialize application context.

        Args:
            config: Catalyst configuration
        """
        self.config = config
        self.generator_factory = create_generator


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


def initialize_context(config: CatalystConfig) -> AppContext:
    """Initialize the global application context.

    Args:
        config: Catalyst configuration

    Returns:
        Initialized AppContext instance
    """
    global _app_context
    _app_context = AppContext(config)
    return _app_context


def run_in_workspace(action: Callable[[Workspace], Awaitable[T]]) -> T:
    """Open the saved workspace, run ``action`` on it and save the result.

    Args:
        action: Coroutine function receiving the open Workspace

    Returns:
        Whatever ``action`` returns
    """
    ctx = get_app_context()

    async def _run() -> T:
        async with ctx.generator_factory(ctx.config.generator) as generator:
            workspace = Workspace.open(ctx.config, generator)
            try:
                return await action(workspace)
            finally:
                workspace.close()

    return asyncio.run(_run())


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
    """Configure global options and initialize application context.

    Args:
        config_path: Optional path to TOML configuration file
        verbose: Enable debug-level logging
    """
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
