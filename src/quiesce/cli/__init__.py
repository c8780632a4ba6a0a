"""
Quiesce CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging

import typer
from pydantic import ValidationError
from rich.console import Console

from quiesce import __version__
from quiesce.cli import run, service
from quiesce.cli.errors import ExitCode, print_invalid_config_error
from quiesce.core.config.env import load_layered_env
from quiesce.core.config.loader import load_config

# Create the main Typer app
app = typer.Typer(
    name="quiesce",
    help="Run a bundled tool with a conflicting service stopped",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def configure_logging(debug: bool) -> None:
    """Send progress lines to stderr; DEBUG adds state transitions and polling."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Quiesce - supervised runs of a bundled tool.

    Installs the tool, stops the conflicting service, runs the tool under a
    hard time limit, restarts the service, and removes the install whatever
    happened.

    Quick Start:
        quiesce run --archive APC.zip     # Full supervised run
        quiesce service status ASC        # Check the conflicting service
        quiesce config                    # Show resolved settings
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    configure_logging(debug)

    ctx.obj = {"debug": debug}


app.command(name="run")(run.run)
app.add_typer(service.app, name="service")


@app.command(name="config")
def show_config() -> None:
    """Show the resolved configuration as JSON."""
    try:
        config = load_config()
    except ValidationError as e:
        print_invalid_config_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print_json(config.model_dump_json())


@app.command()
def version() -> None:
    """Show quiesce version and exit."""
    console.print(f"quiesce version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
