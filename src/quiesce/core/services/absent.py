"""
Fallback backend for hosts without a supported service manager.

With no service manager there is no conflicting service to stop, so every
service is reported as not installed and the controller treats both
actions as no-ops.
"""

from quiesce.core.errors import ServiceControlError

from .backend import register_backend
from .models import ServiceState


@register_backend("none")
class AbsentServiceBackend:
    """Backend that reports every service as not installed."""

    @property
    def name(self) -> str:
        """Backend name."""
        return "none"

    def is_available(self) -> bool:
        """Always usable."""
        return True

    def exists(self, service_name: str) -> bool:
        return False

    def status(self, service_name: str) -> ServiceState:
        return ServiceState.NOT_INSTALLED

    def stop(self, service_name: str) -> None:
        raise ServiceControlError(f"No service manager to stop {service_name}")

    def start(self, service_name: str) -> None:
        raise ServiceControlError(f"No service manager to start {service_name}")
