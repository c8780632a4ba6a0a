"""
Typed exceptions and exit codes shared across quiesce components.

Components raise these at their boundaries; the run orchestrator converts
them into exit codes so nothing escapes as an unhandled fault.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes reported by a run."""

    SUCCESS = 0
    """Tool completed; a non-zero tool exit status is passed through as-is."""

    GENERAL_ERROR = 1
    """Configuration or launch error outside the run's own taxonomy."""

    STAGING_FAILED = -1
    """Payload could not be written or extracted."""

    SERVICE_STOP_FAILED = -2
    """Conflicting service could not be stopped."""

    SERVICE_START_FAILED = -3
    """Conflicting service could not be restarted."""

    TIMED_OUT = -4
    """Tool exceeded its time budget and was killed."""

    SIGINT = 130
    """Terminated by SIGINT (Ctrl+C) - Unix standard."""


class QuiesceError(Exception):
    """Base exception for quiesce errors."""


class StagingError(QuiesceError):
    """The payload could not be written or extracted."""


class ProcessLaunchError(QuiesceError):
    """The supervised command could not be started."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to launch {command}: {reason}")


class ServiceControlError(QuiesceError):
    """A service backend command failed."""


class ServiceWaitTimeoutError(ServiceControlError):
    """A service did not reach the requested state in time."""

    def __init__(self, service_name: str, target: str, timeout: float) -> None:
        self.service_name = service_name
        self.target = target
        self.timeout = timeout
        super().__init__(
            f"Service '{service_name}' did not become {target} within {timeout:g}s"
        )


class ServiceBackendNotFoundError(QuiesceError):
    """The requested service backend is not registered."""


__all__ = [
    "ExitCode",
    "QuiesceError",
    "StagingError",
    "ProcessLaunchError",
    "ServiceControlError",
    "ServiceWaitTimeoutError",
    "ServiceBackendNotFoundError",
]
