"""
Pytest configuration and shared fixtures.

Provides fakes for the clock, the OS service manager, and the supervised
process so service waits and deadlines can be tested deterministically.
"""

import io
import struct
import zipfile
from pathlib import Path

import pytest

from quiesce.core.config import clear_cache
from quiesce.core.errors import ServiceControlError
from quiesce.core.services.models import ServiceState

# ==============================================================================
# Fakes
# ==============================================================================


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeServiceBackend:
    """
    In-memory service manager.

    ``transition_delay`` is how long (on the shared FakeClock) a stop or start
    takes to complete; None means the transition never completes.
    """

    def __init__(
        self,
        clock: FakeClock,
        services: dict[str, ServiceState] | None = None,
        transition_delay: float | None = 0.0,
    ) -> None:
        self.clock = clock
        self.services = dict(services or {})
        self.transition_delay = transition_delay
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()
        self._pending: dict[str, tuple[ServiceState, float]] = {}

    @property
    def name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True

    def exists(self, service_name: str) -> bool:
        self._maybe_fail("exists")
        return service_name in self.services

    def status(self, service_name: str) -> ServiceState:
        self._maybe_fail("status")
        if service_name not in self.services:
            return ServiceState.NOT_INSTALLED
        pending = self._pending.get(service_name)
        if pending is not None and self.clock() >= pending[1]:
            self.services[service_name] = pending[0]
            del self._pending[service_name]
        return self.services[service_name]

    def stop(self, service_name: str) -> None:
        self.calls.append(("stop", service_name))
        self._maybe_fail("stop")
        self._begin(service_name, ServiceState.STOPPING, ServiceState.STOPPED)

    def start(self, service_name: str) -> None:
        self.calls.append(("start", service_name))
        self._maybe_fail("start")
        self._begin(service_name, ServiceState.STARTING, ServiceState.RUNNING)

    def _begin(self, service_name: str, interim: ServiceState, final: ServiceState) -> None:
        self.services[service_name] = interim
        if self.transition_delay is not None:
            self._pending[service_name] = (final, self.clock() + self.transition_delay)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise ServiceControlError(f"{operation} failed")


class FakeProcess:
    """Process double that exits with ``exit_code`` after ``runtime`` seconds."""

    def __init__(self, clock: FakeClock, runtime: float | None, exit_code: int = 0) -> None:
        self.clock = clock
        self.started_at = clock()
        self.runtime = runtime
        self.exit_code = exit_code
        self.pid = 4242
        self.killed = False

    def poll(self) -> int | None:
        if self.killed:
            return -9
        if self.runtime is not None and self.clock() - self.started_at >= self.runtime:
            return self.exit_code
        return None

    def kill(self) -> None:
        self.killed = True

    def wait(self, timeout: float | None = None) -> int:
        code = self.poll()
        assert code is not None
        return code


class FakeLauncher:
    """Launcher that records invocations and hands out FakeProcess objects."""

    def __init__(self, clock: FakeClock, runtime: float | None, exit_code: int = 0) -> None:
        self.clock = clock
        self.runtime = runtime
        self.exit_code = exit_code
        self.calls: list[tuple[str, list[str], Path | None]] = []
        self.processes: list[FakeProcess] = []

    def __call__(self, command: str, args: list[str], cwd: Path | None) -> FakeProcess:
        self.calls.append((command, list(args), cwd))
        proc = FakeProcess(self.clock, self.runtime, self.exit_code)
        self.processes.append(proc)
        return proc


def make_zip(files: dict[str, str]) -> bytes:
    """Build an in-memory zip archive."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return buffer.getvalue()


def make_corrupt_deflate_zip(name: str = "panel.ini") -> bytes:
    """Build a deflated archive whose compressed stream is garbage."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(name, "[panel]\nkey=value\n" * 200)
    data = bytearray(buffer.getvalue())

    with zipfile.ZipFile(io.BytesIO(bytes(data))) as archive:
        info = archive.getinfo(name)
    name_len, extra_len = struct.unpack_from("<HH", data, info.header_offset + 26)
    start = info.header_offset + 30 + name_len + extra_len
    for i in range(start, start + info.compress_size):
        data[i] ^= 0xFF
    return bytes(data)


def with_compression_method(blob: bytes, method: int) -> bytes:
    """Rewrite the compression method of every member header."""
    data = bytearray(blob)
    # Method field offsets in local (PK\3\4) and central (PK\1\2) headers
    for signature, offset in ((b"PK\x03\x04", 8), (b"PK\x01\x02", 10)):
        start = data.find(signature)
        while start != -1:
            struct.pack_into("<H", data, start + offset, method)
            start = data.find(signature, start + 4)
    return bytes(data)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake monotonic clock."""
    return FakeClock()


@pytest.fixture
def make_backend(clock: FakeClock):
    """Factory for fake service backends sharing the test clock."""

    def _make(
        services: dict[str, ServiceState] | None = None,
        transition_delay: float | None = 0.0,
    ) -> FakeServiceBackend:
        return FakeServiceBackend(clock, services, transition_delay)

    return _make


@pytest.fixture
def make_launcher(clock: FakeClock):
    """Factory for fake launchers sharing the test clock."""

    def _make(runtime: float | None, exit_code: int = 0) -> FakeLauncher:
        return FakeLauncher(clock, runtime, exit_code)

    return _make


@pytest.fixture
def zip_bytes():
    """Factory for in-memory zip archives."""
    return make_zip


@pytest.fixture
def payload() -> bytes:
    """Provide a small tool archive."""
    return make_zip(
        {
            "panel.ini": "[panel]\n",
            "bin/tool.sh": "#!/bin/sh\nexit 0\n",
        }
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep user config, project config and QUIESCE_* env out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for var in (
        "QUIESCE_SERVICE_NAME",
        "QUIESCE_SERVICE_BACKEND",
        "QUIESCE_TIME_LIMIT",
        "QUIESCE_INSTALL_DIR",
        "QUIESCE_ARCHIVE",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def corrupt_deflate_payload() -> bytes:
    """Provide an archive whose deflate stream cannot be decompressed."""
    return make_corrupt_deflate_zip()


@pytest.fixture
def unsupported_method_payload(payload: bytes) -> bytes:
    """Provide an archive using a compression method zipfile cannot read."""
    return with_compression_method(payload, 99)
