"""
Bounded process runner.

Launches one external command and supervises it until it exits or its
deadline passes. Liveness is polled on a fixed cadence instead of blocking
on ``wait()``, because the deadline has to be enforced even if the process
never exits. The poll interval bounds how late a timeout is detected.

Example:
    >>> from quiesce.core.process import BoundedProcessRunner
    >>> runner = BoundedProcessRunner()
    >>> result = runner.run("java", ["-version"], time_limit=60)
    >>> result.timed_out
    False
"""

from __future__ import annotations

import logging
import subprocess
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from quiesce.core.errors import ExitCode, ProcessLaunchError

from .models import Deadline, ProcessHandle, ProcessResult

logger = logging.getLogger(__name__)

Launcher = Callable[[str, Sequence[str], Path | None], ProcessHandle]


def popen_launcher(
    command: str,
    args: Sequence[str],
    cwd: Path | None = None,
) -> subprocess.Popen[bytes]:
    """
    Start a process with no shell and no console window.

    Arguments are passed as a list so they are never re-parsed by a shell.
    stdin is detached; stdout and stderr are inherited so the tool's own
    output stays visible.

    Raises:
        OSError: If the executable is missing or cannot be started
    """
    creationflags = 0
    if sys.platform == "win32":
        creationflags = subprocess.CREATE_NO_WINDOW

    return subprocess.Popen(
        [command, *args],
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        shell=False,
        creationflags=creationflags,
    )


class BoundedProcessRunner:
    """
    Run a command under a hard wall-clock limit.

    Attributes:
        poll_interval: Seconds between liveness checks
    """

    DEFAULT_POLL_INTERVAL = 1.0

    # How long to wait for a killed process to be reaped
    KILL_WAIT_SECONDS = 10.0

    def __init__(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        launcher: Launcher = popen_launcher,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the runner.

        Args:
            poll_interval: Seconds between liveness checks (must be > 0)
            launcher: Callable that starts the process, injectable for tests
            clock: Monotonic clock, injectable for tests
            sleep: Sleep function, injectable for tests

        Raises:
            ValueError: If poll_interval is not positive
        """
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got {poll_interval}")

        self.poll_interval = poll_interval
        self._launcher = launcher
        self._clock = clock
        self._sleep = sleep

    def run(
        self,
        command: str,
        args: Sequence[str],
        time_limit: float,
        cwd: Path | None = None,
    ) -> ProcessResult:
        """
        Launch ``command`` and supervise it until exit or deadline.

        Args:
            command: Executable path
            args: Arguments passed literally
            time_limit: Seconds before the process is killed
            cwd: Optional working directory

        Returns:
            ProcessResult with the real exit code, or the timeout code if killed

        Raises:
            ProcessLaunchError: If the process cannot be started
        """
        deadline = Deadline(limit=time_limit, clock=self._clock)

        try:
            proc = self._launcher(command, list(args), cwd)
        except OSError as e:
            raise ProcessLaunchError(command, str(e)) from e

        logger.info("Running %s (pid %s, limit %gs)", command, proc.pid, time_limit)

        try:
            while True:
                exit_code = proc.poll()
                if exit_code is not None:
                    logger.info("Process exited with exit code %d", exit_code)
                    return ProcessResult(
                        exit_code=exit_code,
                        timed_out=False,
                        duration_seconds=deadline.elapsed(),
                    )

                if deadline.expired():
                    logger.warning("Process has exceeded the time limit of %gs", time_limit)
                    self._kill(proc)
                    return ProcessResult(
                        exit_code=int(ExitCode.TIMED_OUT),
                        timed_out=True,
                        duration_seconds=deadline.elapsed(),
                    )

                self._sleep(self.poll_interval)
        except KeyboardInterrupt:
            # Never leave the tool running behind an interrupted supervisor
            self._kill(proc)
            raise

    def _kill(self, proc: ProcessHandle) -> None:
        """Force-terminate and reap a process; tolerate one that already exited."""
        try:
            proc.kill()
        except ProcessLookupError:
            logger.debug("Process %s exited before it could be killed", proc.pid)
        except OSError as e:
            logger.error("Failed to kill process %s: %s", proc.pid, e)
            return

        try:
            proc.wait(timeout=self.KILL_WAIT_SECONDS)
        except subprocess.TimeoutExpired:
            logger.warning("Process %s did not exit after kill", proc.pid)
