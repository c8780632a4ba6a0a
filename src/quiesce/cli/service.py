"""
Quiesce CLI - Service commands.

Inspect and control the conflicting service outside of a run, using the
same controller and success rules as ``quiesce run``.
"""

import typer
from pydantic import ValidationError
from rich.console import Console

from quiesce.cli.errors import (
    ExitCode,
    print_backend_not_found_error,
    print_invalid_config_error,
)
from quiesce.core.config.loader import load_config
from quiesce.core.config.models import ServiceConfig
from quiesce.core.errors import ServiceBackendNotFoundError, ServiceControlError
from quiesce.core.services import ServiceAction, ServiceController, get_backend

app = typer.Typer(
    name="service",
    help="Inspect and control the conflicting service",
    no_args_is_help=True,
)

console = Console()


def _service_config() -> ServiceConfig:
    try:
        return load_config().service
    except ValidationError as e:
        print_invalid_config_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _get_controller(
    service_config: ServiceConfig,
    backend: str | None,
    timeout: float | None,
) -> ServiceController:
    """
    Build a controller from config, with CLI overrides.

    Raises:
        typer.Exit: If the backend name is unknown
    """
    try:
        return ServiceController(
            get_backend(backend or service_config.backend),
            timeout=timeout or service_config.timeout_seconds,
            poll_interval=service_config.poll_interval_seconds,
        )
    except ServiceBackendNotFoundError as e:
        print_backend_not_found_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _control(
    name: str | None,
    action: ServiceAction,
    backend: str | None,
    timeout: float | None,
) -> None:
    service_config = _service_config()
    controller = _get_controller(service_config, backend, timeout)
    service_name = name or service_config.name

    if not controller.control(service_name, action):
        console.print(f"[red]{service_name}: could not {action.value.lower()}[/red]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    # Missing services succeed too; print the state actually observed
    try:
        state = controller.backend.status(service_name)
    except ServiceControlError:
        state = action.target_state

    console.print(f"[green]{service_name}: {state.value}[/green]")


@app.command()
def status(
    name: str | None = typer.Argument(None, help="Service name (defaults to configured service)"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Service backend"),
) -> None:
    """
    Show the current state of a service.

    Examples:
        quiesce service status
        quiesce service status ASC
    """
    service_config = _service_config()
    controller = _get_controller(service_config, backend, None)
    service_name = name or service_config.name

    try:
        state = controller.backend.status(service_name)
    except ServiceControlError as e:
        console.print(f"[red]Could not query {service_name}: {e}[/red]")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    console.print(f"{service_name}: [bold]{state.value}[/bold] ({controller.backend.name})")


@app.command()
def stop(
    name: str | None = typer.Argument(None, help="Service name (defaults to configured service)"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Service backend"),
    timeout: float | None = typer.Option(
        None, "--timeout", min=0.1, help="Seconds to wait for the service to stop"
    ),
) -> None:
    """Stop a service and wait for it to report stopped."""
    _control(name, ServiceAction.STOP, backend, timeout)


@app.command()
def start(
    name: str | None = typer.Argument(None, help="Service name (defaults to configured service)"),
    backend: str | None = typer.Option(None, "--backend", "-b", help="Service backend"),
    timeout: float | None = typer.Option(
        None, "--timeout", min=0.1, help="Seconds to wait for the service to start"
    ),
) -> None:
    """Start a service and wait for it to report running."""
    _control(name, ServiceAction.START, backend, timeout)
