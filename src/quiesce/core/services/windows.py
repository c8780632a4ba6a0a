"""
Windows Service Control Manager backend.

Uses ``sc.exe`` so no extra Windows-only packages are required.
"""

import re
import shutil
import subprocess
import sys

from quiesce.core.errors import ServiceControlError

from .backend import register_backend
from .models import ServiceState

# sc.exe exit code for ERROR_SERVICE_DOES_NOT_EXIST
SERVICE_DOES_NOT_EXIST = 1060

_STATE_PATTERN = re.compile(r"STATE\s*:\s*(\d+)")

_STATE_CODE_MAP = {
    1: ServiceState.STOPPED,
    2: ServiceState.STARTING,
    3: ServiceState.STOPPING,
    4: ServiceState.RUNNING,
}


@register_backend("windows")
class WindowsServiceBackend:
    """Service backend for the Windows Service Control Manager."""

    COMMAND_TIMEOUT = 30

    @property
    def name(self) -> str:
        """Backend name."""
        return "windows"

    def is_available(self) -> bool:
        """Check if this is a Windows host with sc.exe on PATH."""
        return sys.platform == "win32" and shutil.which("sc") is not None

    def exists(self, service_name: str) -> bool:
        """Check whether the SCM knows this service."""
        return self.status(service_name) is not ServiceState.NOT_INSTALLED

    def status(self, service_name: str) -> ServiceState:
        """
        Get the service state from ``sc query``.

        Args:
            service_name: Service key name (not the display name)

        Returns:
            Mapped ServiceState
        """
        result = self._run_sc(["query", service_name], check=False)
        if result.returncode == SERVICE_DOES_NOT_EXIST:
            return ServiceState.NOT_INSTALLED
        if result.returncode != 0:
            raise ServiceControlError(
                f"sc query {service_name} exited with {result.returncode}: "
                f"{result.stdout.strip()}"
            )

        match = _STATE_PATTERN.search(result.stdout)
        if match is None:
            return ServiceState.UNKNOWN
        return _STATE_CODE_MAP.get(int(match.group(1)), ServiceState.UNKNOWN)

    def stop(self, service_name: str) -> None:
        """Issue a stop request."""
        self._run_sc(["stop", service_name])

    def start(self, service_name: str) -> None:
        """Issue a start request."""
        self._run_sc(["start", service_name])

    def _run_sc(self, args: list[str], check: bool = True) -> subprocess.CompletedProcess[str]:
        """
        Run an sc.exe command.

        Raises:
            ServiceControlError: On timeout, missing binary, or (with check) non-zero exit
        """
        cmd = ["sc"] + args
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.COMMAND_TIMEOUT,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise ServiceControlError(f"{' '.join(cmd)} failed: {e}") from e

        if check and result.returncode != 0:
            raise ServiceControlError(
                f"{' '.join(cmd)} exited with {result.returncode}: {result.stdout.strip()}"
            )
        return result
