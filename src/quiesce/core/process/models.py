"""
Process supervision models.

ProcessHandle is the liveness abstraction the runner polls; anything with
``poll``/``kill``/``wait`` works, so tests can supply a fake process
instead of an OS one.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@runtime_checkable
class ProcessHandle(Protocol):
    """Subset of subprocess.Popen the runner relies on."""

    pid: int

    def poll(self) -> int | None:
        """Return the exit code if the process has exited, else None."""
        ...

    def kill(self) -> None:
        """Forcibly terminate the process."""
        ...

    def wait(self, timeout: float | None = None) -> int:
        """Wait for the process to exit and return its exit code."""
        ...


@dataclass
class Deadline:
    """
    Wall-clock budget for a supervised process.

    Elapsed time is recomputed on every call from the injected clock; no
    other state is kept.
    """

    limit: float
    clock: Callable[[], float] = time.monotonic
    started_at: float = field(init=False)

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ValueError(f"limit must be > 0, got {self.limit}")
        self.started_at = self.clock()

    def elapsed(self) -> float:
        """Seconds since the deadline was created."""
        return self.clock() - self.started_at

    def remaining(self) -> float:
        """Seconds left before expiry (never negative)."""
        return max(0.0, self.limit - self.elapsed())

    def expired(self) -> bool:
        """True once elapsed time reaches the limit."""
        return self.elapsed() >= self.limit


@dataclass(frozen=True)
class ProcessResult:
    """
    Outcome of one supervised process.

    Attributes:
        exit_code: Process exit status, or the timeout code if killed
        timed_out: Whether the process was killed at the deadline
        duration_seconds: Time from launch to exit or kill
    """

    exit_code: int
    timed_out: bool
    duration_seconds: float = 0.0
