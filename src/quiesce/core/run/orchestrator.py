"""
Run orchestrator.

Sequences one run of the supervised tool:

    Staging -> ServiceStopping -> ProcessRunning -> ServiceRestarting
            -> Cleanup -> Exited

Failures are recorded, not raised. A staging failure ends the run at once
with STAGING_FAILED. Every later state is always entered, except that the
tool is skipped when the service could not be stopped. Later codes
overwrite earlier ones, so a restart failure masks both the tool's own
exit status and a stop failure.

Usage:
    >>> from quiesce.core.config import load_config
    >>> from quiesce.core.run import RunOrchestrator
    >>> orchestrator = RunOrchestrator.from_config(load_config())
    >>> result = orchestrator.run()
    >>> raise SystemExit(result.exit_code)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from quiesce.core.config.models import RunConfig
from quiesce.core.errors import ExitCode, ProcessLaunchError, StagingError
from quiesce.core.process.runner import BoundedProcessRunner
from quiesce.core.services.controller import ServiceController
from quiesce.core.services.models import ServiceAction
from quiesce.core.stage.stager import ArtifactStager, load_payload

from .models import RunResult, RunState

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """
    Drive one run from staging to exit under a single exit-code policy.

    Not thread-safe; one orchestrator instance performs one run.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        services: ServiceController,
        runner: BoundedProcessRunner,
        stager: ArtifactStager,
        payload: bytes | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the orchestrator with pre-wired collaborators.

        Prefer ``from_config`` for typical usage; use this constructor
        when injecting fakes in tests.

        Args:
            config: Run configuration
            services: Controller for the conflicting service
            runner: Bounded runner for the tool
            stager: Payload stager
            payload: Archive bytes; read from ``config.payload.archive`` if None
            sleep: Sleep function used for the settle delay
        """
        self.config = config
        self._services = services
        self._runner = runner
        self._stager = stager
        self._payload = payload
        self._sleep = sleep
        self._state = RunState.STAGING

    @classmethod
    def from_config(cls, config: RunConfig, payload: bytes | None = None) -> RunOrchestrator:
        """
        Build an orchestrator with the default OS collaborators.

        Raises:
            ServiceBackendNotFoundError: If the configured service backend is unknown
        """
        return cls(
            config,
            services=ServiceController.from_config(config.service),
            runner=BoundedProcessRunner(poll_interval=config.process.poll_interval_seconds),
            stager=ArtifactStager(temp_archive=config.payload.temp_archive),
            payload=payload,
        )

    @property
    def state(self) -> RunState:
        """Current orchestrator state."""
        return self._state

    def run(self) -> RunResult:
        """
        Perform the run.

        Returns:
            RunResult whose exit_code is the process exit code to report
        """
        install_dir = self.config.payload.install_dir
        service_name = self.config.service.name

        self._transition(RunState.STAGING)
        try:
            self._stage()
        except StagingError as e:
            logger.error("Staging failed: %s", e)
            return self._abort_staging(install_dir)
        except Exception as e:
            logger.exception("Unexpected error while staging %s: %s", install_dir, e)
            return self._abort_staging(install_dir)

        exit_code = int(ExitCode.SUCCESS)
        timed_out = False
        stop_failed = False
        start_failed = False

        try:
            self._transition(RunState.SERVICE_STOPPING)
            if self._services.control(service_name, ServiceAction.STOP):
                self._transition(RunState.PROCESS_RUNNING)
                exit_code, timed_out = self._run_tool()
            else:
                logger.error("%s could not be stopped, skipping tool run", service_name)
                stop_failed = True
                exit_code = int(ExitCode.SERVICE_STOP_FAILED)
        finally:
            self._transition(RunState.SERVICE_RESTARTING)
            if not self._services.control(service_name, ServiceAction.START):
                logger.error("%s did not start!", service_name)
                start_failed = True
                exit_code = int(ExitCode.SERVICE_START_FAILED)

            self._transition(RunState.CLEANUP)
            self._stager.unstage(install_dir)

        self._sleep(self.config.settle_delay_seconds)
        self._transition(RunState.EXITED)

        return RunResult(
            exit_code=exit_code,
            timed_out=timed_out,
            service_stop_failed=stop_failed,
            service_start_failed=start_failed,
        )

    def _stage(self) -> None:
        payload = self._payload
        if payload is None:
            archive = self.config.payload.archive
            if archive is None:
                raise StagingError("No payload archive configured")
            payload = load_payload(archive)

        self._stager.stage(payload, self.config.payload.install_dir)

    def _abort_staging(self, install_dir: Path) -> RunResult:
        """Remove partial staging output and end the run before any service call."""
        self._stager.unstage(install_dir)
        self._transition(RunState.EXITED)
        return RunResult(exit_code=int(ExitCode.STAGING_FAILED), staging_failed=True)

    def _run_tool(self) -> tuple[int, bool]:
        """Run the tool, converting launch problems into an exit code."""
        install_dir = self.config.payload.install_dir
        command, args = self.config.process.expand(install_dir)

        try:
            result = self._runner.run(
                command,
                args,
                time_limit=self.config.process.time_limit_seconds,
                cwd=install_dir,
            )
        except ProcessLaunchError as e:
            logger.error("%s", e)
            return int(ExitCode.GENERAL_ERROR), False
        except Exception as e:
            logger.exception("Unexpected error while supervising %s: %s", command, e)
            return int(ExitCode.GENERAL_ERROR), False

        return result.exit_code, result.timed_out

    def _transition(self, state: RunState) -> None:
        logger.debug("Run state: %s -> %s", self._state.value, state.value)
        self._state = state
