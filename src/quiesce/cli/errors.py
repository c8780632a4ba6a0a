"""
Standardized operator-facing error messages for the quiesce CLI.

Exit codes themselves live in ``quiesce.core.errors.ExitCode`` because a run
reports them without going through the CLI.
"""

from rich.console import Console

from quiesce.core.errors import ExitCode

console = Console(stderr=True)


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "No payload archive configured",
        ...     solution="quiesce run --archive path/to/tool.zip",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_backend_not_found_error(detail: str) -> None:
    """Print error when the configured service backend does not exist."""
    print_error(
        "Unknown service backend",
        reason=detail,
        solution="set service.backend to systemd, windows or none (or leave it unset)",
    )


def print_invalid_config_error(detail: str) -> None:
    """Print error when the merged configuration fails validation."""
    print_error(
        "Invalid configuration",
        reason=detail,
        solution="quiesce config  # to inspect the resolved settings",
    )


__all__ = [
    "ExitCode",
    "print_error",
    "print_backend_not_found_error",
    "print_invalid_config_error",
]
