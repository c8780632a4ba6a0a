"""
Quiesce CLI - Run command.

Install the tool, stop the conflicting service, run the tool under its time
limit, restart the service, and remove the install. The process exits with
the run's exit code.
"""

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from quiesce.cli.errors import (
    ExitCode,
    print_backend_not_found_error,
    print_invalid_config_error,
)
from quiesce.core.config.loader import load_config
from quiesce.core.config.models import RunConfig
from quiesce.core.errors import ServiceBackendNotFoundError
from quiesce.core.run.orchestrator import RunOrchestrator

console = Console()


def apply_cli_overrides(
    config: RunConfig,
    *,
    archive: Path | None = None,
    install_dir: Path | None = None,
    service: str | None = None,
    time_limit: float | None = None,
    no_settle: bool = False,
) -> RunConfig:
    """
    Return a copy of ``config`` with command-line values applied.

    CLI flags sit above every other configuration layer.
    """
    updated = config.model_copy(deep=True)

    if archive is not None:
        updated.payload.archive = archive
    if install_dir is not None:
        updated.payload.install_dir = install_dir
    if service is not None:
        updated.service.name = service
    if time_limit is not None:
        updated.process.time_limit_seconds = time_limit
    if no_settle:
        updated.settle_delay_seconds = 0.0

    return updated


def run(
    ctx: typer.Context,
    archive: Path | None = typer.Option(
        None,
        "--archive",
        "-a",
        help="Zip archive containing the tool",
    ),
    install_dir: Path | None = typer.Option(
        None,
        "--install-dir",
        help="Directory to install the tool into (removed afterwards)",
    ),
    service: str | None = typer.Option(
        None,
        "--service",
        "-s",
        help="Conflicting service to stop while the tool runs",
    ),
    time_limit: float | None = typer.Option(
        None,
        "--time-limit",
        "-t",
        min=1,
        help="Seconds before the tool is killed",
    ),
    no_settle: bool = typer.Option(
        False,
        "--no-settle",
        help="Skip the settle delay before exiting",
    ),
) -> None:
    """
    Run the bundled tool with the conflicting service stopped.

    Exit codes:
        0 / tool code   Tool finished; its own exit status
        -1              Payload staging failed
        -2              Service could not be stopped (tool not run)
        -3              Service could not be restarted
        -4              Tool exceeded its time limit and was killed

    Examples:
        quiesce run --archive APC.zip
        quiesce run -a APC.zip --service ASC --time-limit 3600
    """
    debug = ctx.obj.get("debug", False) if ctx.obj else False

    try:
        config = apply_cli_overrides(
            load_config(),
            archive=archive,
            install_dir=install_dir,
            service=service,
            time_limit=time_limit,
            no_settle=no_settle,
        )
    except ValidationError as e:
        print_invalid_config_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if debug:
        console.print(f"[dim]Service: {config.service.name}[/dim]")
        console.print(f"[dim]Install dir: {config.payload.install_dir}[/dim]")
        console.print(f"[dim]Time limit: {config.process.time_limit_seconds:g}s[/dim]")

    try:
        orchestrator = RunOrchestrator.from_config(config)
    except ServiceBackendNotFoundError as e:
        print_backend_not_found_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    try:
        result = orchestrator.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Run interrupted[/yellow]")
        raise typer.Exit(ExitCode.SIGINT)

    style = "green" if result.succeeded else "red"
    console.print(f"[{style}]{result.summary()}[/{style}]")
    raise typer.Exit(result.exit_code)
