"""
Service controller with bounded waits and idempotent success semantics.

The controller answers one question for the run orchestrator: did the
service end up in the requested state? Every failure along the way is
logged and reported as ``False``; nothing propagates.

Rules:
- A service that is not installed trivially satisfies STOP and START.
- A service already in the target state is left alone.
- Otherwise the request is issued and the controller polls status until the
  target state is reached or the timeout elapses.

Example:
    >>> from quiesce.core.services import ServiceAction, ServiceController
    >>> controller = ServiceController(get_backend(), timeout=15)
    >>> controller.control("ASC", ServiceAction.STOP)
    True
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from quiesce.core.errors import ServiceControlError, ServiceWaitTimeoutError

from .backend import ServiceBackend, get_backend
from .models import ServiceAction, ServiceState

if TYPE_CHECKING:
    from quiesce.core.config.models import ServiceConfig

logger = logging.getLogger(__name__)


class ServiceController:
    """
    Start and stop a named OS service through a backend.

    Attributes:
        backend: Service manager backend used for all OS calls
        timeout: Seconds to wait for a state transition
        poll_interval: Seconds between status queries while waiting
    """

    DEFAULT_TIMEOUT = 15.0
    DEFAULT_POLL_INTERVAL = 0.25

    def __init__(
        self,
        backend: ServiceBackend,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the controller.

        Args:
            backend: Service manager backend
            timeout: Seconds to wait for a state transition (must be > 0)
            poll_interval: Seconds between status queries (must be > 0)
            clock: Monotonic clock, injectable for tests
            sleep: Sleep function, injectable for tests

        Raises:
            ValueError: If timeout or poll_interval is not positive
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval}")

        self.backend = backend
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: ServiceConfig) -> ServiceController:
        """
        Build a controller from service configuration.

        Raises:
            ServiceBackendNotFoundError: If the configured backend is not registered
        """
        return cls(
            get_backend(config.backend),
            timeout=config.timeout_seconds,
            poll_interval=config.poll_interval_seconds,
        )

    def control(self, service_name: str, action: ServiceAction) -> bool:
        """
        Drive a service to the state implied by ``action``.

        Args:
            service_name: Service to control
            action: STOP or START

        Returns:
            True if the service is absent or ended in the target state
        """
        target = action.target_state

        try:
            if not self.backend.exists(service_name):
                logger.info("Service %s is not installed, nothing to do", service_name)
                return True

            logger.info("%s %s", action.verb, service_name)

            current = self.backend.status(service_name)
            if current is target:
                logger.debug("Service %s already %s", service_name, target.value)
                return True

            if action is ServiceAction.STOP:
                self.backend.stop(service_name)
            else:
                self.backend.start(service_name)

            final = self.wait_for_state(service_name, target)
            return final is target

        except ServiceWaitTimeoutError as e:
            logger.error("%s", e)
            self._log_observed_state(service_name)
            return False
        except ServiceControlError as e:
            logger.error("Could not %s %s: %s", action.value.lower(), service_name, e)
            return False
        except Exception as e:
            logger.exception(
                "Unexpected error while trying to %s %s: %s",
                action.value.lower(),
                service_name,
                e,
            )
            return False

    def wait_for_state(
        self,
        service_name: str,
        target: ServiceState,
        timeout: float | None = None,
    ) -> ServiceState:
        """
        Block until the service reports ``target`` or the timeout elapses.

        Args:
            service_name: Service to watch
            target: State to wait for
            timeout: Override for the controller's timeout

        Returns:
            The target state once observed

        Raises:
            ServiceWaitTimeoutError: If the target is not reached in time
            ServiceControlError: If the backend cannot be queried
        """
        limit = self.timeout if timeout is None else timeout
        deadline = self._clock() + limit

        while True:
            state = self.backend.status(service_name)
            if state is target:
                return state

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise ServiceWaitTimeoutError(service_name, target.value, limit)

            logger.debug("Service %s is %s, waiting for %s", service_name, state.value, target.value)
            self._sleep(min(self.poll_interval, remaining))

    def _log_observed_state(self, service_name: str) -> None:
        try:
            state = self.backend.status(service_name)
        except ServiceControlError as e:
            logger.warning("Could not read state of %s: %s", service_name, e)
            return
        logger.warning("Service %s is %s", service_name, state.value)
