"""
systemd service backend.

Drives services through ``systemctl``. Stop and start requests are issued
with ``--no-block`` so the controller's bounded wait decides when the
transition is complete.
"""

import shutil
import subprocess

from quiesce.core.errors import ServiceControlError

from .backend import register_backend
from .models import ServiceState

_ACTIVE_STATE_MAP = {
    "active": ServiceState.RUNNING,
    "reloading": ServiceState.RUNNING,
    "inactive": ServiceState.STOPPED,
    "failed": ServiceState.STOPPED,
    "activating": ServiceState.STARTING,
    "deactivating": ServiceState.STOPPING,
}


@register_backend("systemd")
class SystemdBackend:
    """Service backend for hosts managed by systemd."""

    # Upper bound for any single systemctl invocation
    COMMAND_TIMEOUT = 30

    @property
    def name(self) -> str:
        """Backend name."""
        return "systemd"

    def is_available(self) -> bool:
        """Check if systemctl exists and can talk to the manager."""
        if not shutil.which("systemctl"):
            return False
        try:
            result = subprocess.run(
                ["systemctl", "--version"],
                capture_output=True,
                timeout=10,
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, OSError):
            return False

    def exists(self, service_name: str) -> bool:
        """Check whether systemd knows a unit with this name."""
        return self.status(service_name) is not ServiceState.NOT_INSTALLED

    def status(self, service_name: str) -> ServiceState:
        """
        Get the unit state from ``systemctl show``.

        Args:
            service_name: Unit name, with or without the .service suffix

        Returns:
            Mapped ServiceState
        """
        result = self._run_systemctl(
            ["show", service_name, "--property=LoadState,ActiveState"]
        )
        properties = self._parse_properties(result.stdout)

        if properties.get("LoadState") == "not-found":
            return ServiceState.NOT_INSTALLED

        return _ACTIVE_STATE_MAP.get(properties.get("ActiveState", ""), ServiceState.UNKNOWN)

    def stop(self, service_name: str) -> None:
        """Issue a non-blocking stop request."""
        self._run_systemctl(["stop", "--no-block", service_name])

    def start(self, service_name: str) -> None:
        """Issue a non-blocking start request."""
        self._run_systemctl(["start", "--no-block", service_name])

    @staticmethod
    def _parse_properties(output: str) -> dict[str, str]:
        properties: dict[str, str] = {}
        for line in output.splitlines():
            key, sep, value = line.partition("=")
            if sep:
                properties[key.strip()] = value.strip()
        return properties

    def _run_systemctl(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        """
        Run a systemctl command.

        Raises:
            ServiceControlError: On non-zero exit, timeout, or missing binary
        """
        cmd = ["systemctl"] + args
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.COMMAND_TIMEOUT,
            )
        except (subprocess.TimeoutExpired, OSError) as e:
            raise ServiceControlError(f"{' '.join(cmd)} failed: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise ServiceControlError(
                f"{' '.join(cmd)} exited with {result.returncode}: {detail}"
            )
        return result
