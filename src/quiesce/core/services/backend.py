"""
Service backend protocol and registry.

A backend is the OS control surface the ServiceController consumes:
query-by-name, stop, and start. Waiting for a state change is done by the
controller on top of ``status()``, so backends stay thin wrappers over the
platform's service manager.
"""

import logging
import os
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from quiesce.core.errors import ServiceBackendNotFoundError

from .models import ServiceState

logger = logging.getLogger(__name__)


@runtime_checkable
class ServiceBackend(Protocol):
    """
    Protocol for service manager implementations.

    Backends must not wait for a state transition themselves; ``stop`` and
    ``start`` only issue the request.
    """

    @property
    def name(self) -> str:
        """Backend name (e.g., 'systemd', 'windows')."""
        ...

    def is_available(self) -> bool:
        """Check whether the service manager can be driven on this host."""
        ...

    def exists(self, service_name: str) -> bool:
        """
        Check whether a service is installed.

        Raises:
            ServiceControlError: If the service manager cannot be queried
        """
        ...

    def status(self, service_name: str) -> ServiceState:
        """
        Get the current state of a service.

        Returns ServiceState.NOT_INSTALLED for unknown services.

        Raises:
            ServiceControlError: If the service manager cannot be queried
        """
        ...

    def stop(self, service_name: str) -> None:
        """
        Request that a service stop.

        Raises:
            ServiceControlError: If the request is rejected
        """
        ...

    def start(self, service_name: str) -> None:
        """
        Request that a service start.

        Raises:
            ServiceControlError: If the request is rejected
        """
        ...


# Backend registry
_backends: dict[str, type[ServiceBackend]] = {}

# Checked by detect_backend, in order
_DETECTION_ORDER = ("windows", "systemd")

# Used when no service manager is detected
ABSENT_BACKEND = "none"


def register_backend(
    name: str,
) -> Callable[[type[ServiceBackend]], type[ServiceBackend]]:
    """
    Decorator to register a service backend implementation.

    Usage:
        @register_backend('systemd')
        class SystemdBackend:
            ...
    """

    def decorator(backend_class: type[ServiceBackend]) -> type[ServiceBackend]:
        _backends[name] = backend_class
        return backend_class

    return decorator


def detect_backend() -> str | None:
    """
    Auto-detect which service backend to use.

    Detection order:
    1. QUIESCE_SERVICE_BACKEND environment variable (if set and not 'auto')
    2. The first of 'windows', 'systemd' whose ``is_available()`` is True

    Returns:
        Backend name if found, None if no service manager is available
    """
    backend_env = os.environ.get("QUIESCE_SERVICE_BACKEND", "").lower()
    if backend_env and backend_env != "auto" and backend_env in _backends:
        return backend_env

    for name in _DETECTION_ORDER:
        backend_class = _backends.get(name)
        if backend_class is not None and backend_class().is_available():
            return name

    return None


def get_backend(name: str | None = None) -> ServiceBackend:
    """
    Get a service backend by name or auto-detect.

    A host with no supported service manager gets the 'none' backend, which
    reports every service as not installed.

    Args:
        name: Backend name ('systemd', 'windows', 'none') or None for auto-detect

    Returns:
        ServiceBackend instance

    Raises:
        ServiceBackendNotFoundError: If the name is not registered
    """
    if name is None or name == "auto":
        name = detect_backend()
        if name is None:
            logger.warning("No service manager found, treating services as not installed")
            name = ABSENT_BACKEND

    backend_class = _backends.get(name)
    if backend_class is None:
        raise ServiceBackendNotFoundError(
            f"Service backend '{name}' not registered. "
            f"Available backends: {', '.join(_backends.keys())}"
        )

    logger.debug("Using service backend %s", name)
    return backend_class()


def list_backends() -> list[str]:
    """List all registered backend names."""
    return list(_backends.keys())
