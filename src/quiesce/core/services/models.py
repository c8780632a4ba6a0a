"""
Service data models.

Backend-neutral lifecycle states and control actions for OS services.
"""

from enum import Enum


class ServiceState(str, Enum):
    """Service lifecycle state as reported by a backend."""

    NOT_INSTALLED = "not_installed"
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    UNKNOWN = "unknown"


class ServiceAction(str, Enum):
    """Control action the orchestrator can request."""

    STOP = "STOP"
    START = "START"

    @property
    def target_state(self) -> ServiceState:
        """State the service must reach for the action to count as done."""
        if self is ServiceAction.STOP:
            return ServiceState.STOPPED
        return ServiceState.RUNNING

    @property
    def verb(self) -> str:
        """Progress verb used in log lines ("Stopping", "Starting")."""
        return "Stopping" if self is ServiceAction.STOP else "Starting"
