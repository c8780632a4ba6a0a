"""
Run orchestration models.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RunState(str, Enum):
    """Orchestrator state. Transitions only move forward."""

    STAGING = "staging"
    SERVICE_STOPPING = "service_stopping"
    PROCESS_RUNNING = "process_running"
    SERVICE_RESTARTING = "service_restarting"
    CLEANUP = "cleanup"
    EXITED = "exited"


class RunResult(BaseModel):
    """
    Outcome of one run.

    Created once when the run exits and never modified; ``exit_code`` is the
    process exit code the CLI reports.
    """

    model_config = ConfigDict(frozen=True)

    exit_code: int = Field(description="Final exit code for the run")
    timed_out: bool = Field(
        default=False,
        description="Tool was killed at its deadline",
    )
    service_stop_failed: bool = Field(
        default=False,
        description="Conflicting service could not be stopped (tool not run)",
    )
    service_start_failed: bool = Field(
        default=False,
        description="Conflicting service could not be restarted",
    )
    staging_failed: bool = Field(
        default=False,
        description="Payload could not be installed (nothing else attempted)",
    )

    @property
    def succeeded(self) -> bool:
        """True if the run completed with exit code 0."""
        return self.exit_code == 0

    def summary(self) -> str:
        """Generate a human-readable summary of the run."""
        parts = []

        if self.staging_failed:
            parts.append("Payload staging failed")
        if self.service_stop_failed:
            parts.append("Service could not be stopped, tool not run")
        if self.timed_out:
            parts.append("Tool exceeded its time limit and was killed")
        if self.service_start_failed:
            parts.append("Service could not be restarted")

        if not parts:
            parts.append("Tool finished")

        parts.append(f"exit code {self.exit_code}")
        return ", ".join(parts)
