"""
OS service control.

Backends wrap the platform's service manager; the ServiceController adds
bounded waits and the success rules the run orchestrator depends on.

Importing this package registers the built-in backends (systemd, windows,
and the "none" fallback).
"""

from . import absent, systemd, windows  # noqa: F401  (register backends)
from .backend import (
    ServiceBackend,
    detect_backend,
    get_backend,
    list_backends,
    register_backend,
)
from .controller import ServiceController
from .models import ServiceAction, ServiceState

__all__ = [
    "ServiceAction",
    "ServiceBackend",
    "ServiceController",
    "ServiceState",
    "detect_backend",
    "get_backend",
    "list_backends",
    "register_backend",
]
