"""
Configuration data models for quiesce.

These models define the structure of .quiesce.json and
~/.config/quiesce/config.json files, with validation and type safety via
Pydantic.
"""

import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

INSTALL_DIR_PLACEHOLDER = "{install_dir}"


def _default_install_dir() -> Path:
    return Path(tempfile.gettempdir()) / "quiesce" / "APC"


class ServiceConfig(BaseModel):
    """
    Conflicting service configuration.

    The named service is stopped before the tool runs and started again
    afterwards.
    """
    name: str = Field(
        default="ASC",
        min_length=1,
        description="Name of the OS service that conflicts with the tool"
    )
    backend: Optional[str] = Field(
        default=None,
        description="Service backend: 'systemd', 'windows', 'none', or None to auto-detect"
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="How long to wait for the service to reach its target state"
    )
    poll_interval_seconds: float = Field(
        default=0.25,
        gt=0,
        description="How often to query service status while waiting"
    )


class PayloadConfig(BaseModel):
    """
    Payload staging configuration.

    Controls where the bundled archive comes from and where it is installed.
    """
    archive: Optional[Path] = Field(
        default=None,
        description="Path to the zip archive holding the tool"
    )
    install_dir: Path = Field(
        default_factory=_default_install_dir,
        description="Directory the archive is extracted into (removed after the run)"
    )
    temp_archive: Optional[Path] = Field(
        default=None,
        description="Where the archive is written before extraction (default: <install_dir>.zip)"
    )


class ProcessConfig(BaseModel):
    """
    Supervised tool invocation.

    ``{install_dir}`` in the command or any argument is replaced with the
    payload install directory before launch.
    """
    command: str = Field(
        default="{install_dir}/java/bin/java",
        min_length=1,
        description="Executable to launch"
    )
    args: list[str] = Field(
        default_factory=lambda: [
            "-Xmx1024m",
            "-Xms16m",
            "-XX:+UseG1GC",
            "-cp",
            "{install_dir}/ABNPanelCheck.jar",
            "apc.APC",
            "{install_dir}/panel.ini",
        ],
        description="Arguments passed literally to the executable (no shell)"
    )
    time_limit_seconds: float = Field(
        default=7200.0,
        gt=0,
        description="Hard wall-clock limit before the tool is killed"
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="How often the tool's liveness is checked"
    )

    def expand(self, install_dir: Path) -> tuple[str, list[str]]:
        """
        Substitute the install directory into command and args.

        Args:
            install_dir: Directory the payload was extracted to

        Returns:
            Tuple of (command, args) ready to launch
        """
        target = str(install_dir)
        command = self.command.replace(INSTALL_DIR_PLACEHOLDER, target)
        args = [arg.replace(INSTALL_DIR_PLACEHOLDER, target) for arg in self.args]
        return command, args


class RunConfig(BaseModel):
    """
    Top-level quiesce configuration.

    Passed explicitly to the orchestrator; nothing is read from ambient
    state once a run has started.

    Example:
        >>> config = RunConfig(
        ...     service=ServiceConfig(name="ASC"),
        ...     process=ProcessConfig(time_limit_seconds=60),
        ... )
        >>> config.process.time_limit_seconds
        60.0
    """
    service: ServiceConfig = Field(
        default_factory=ServiceConfig,
        description="Conflicting service settings"
    )
    payload: PayloadConfig = Field(
        default_factory=PayloadConfig,
        description="Payload archive and install location"
    )
    process: ProcessConfig = Field(
        default_factory=ProcessConfig,
        description="Supervised tool invocation"
    )
    settle_delay_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Pause before exiting so pending service notifications flush"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )

    @field_validator("service", mode="before")
    @classmethod
    def validate_service(cls, v: object) -> object:
        """Accept a bare service name as shorthand for ServiceConfig."""
        if isinstance(v, str):
            return {"name": v}
        return v
