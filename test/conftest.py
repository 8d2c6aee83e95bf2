from __future__ import annotations

import logging
import pathlib
import subprocess
from typing import Any, Callable

import pytest

from snitchprot import config, core
from snitchprot.errors import StoreWriteFailed
from snitchprot.models import ConnectionState
from snitchprot.services.actuator import ProfileActuator
from snitchprot.services.store import StateStore

SCUTIL_CONNECTED = (
    "Available network connection services in the current set (*=enabled):\n"
    '* (Disconnected)   6F2A1C3B-0000-4000-8000-000000000001 PPP --> L2TP "Office"'
    "                  [PPP/L2TP]\n"
    "* (Connected)      6F2A1C3B-0000-4000-8000-000000000002 VPN "
    '(ch.protonvpn.mac) "ProtonVPN"  [VPN/ch.protonvpn.mac]\n'
)
SCUTIL_DISCONNECTED = (
    "Available network connection services in the current set (*=enabled):\n"
    "* (Disconnected)   6F2A1C3B-0000-4000-8000-000000000002 VPN "
    '(ch.protonvpn.mac) "ProtonVPN"  [VPN/ch.protonvpn.mac]\n'
)


def completed(
    args: list[str],
    stdout: bytes | str = b"",
    stderr: bytes | str = b"",
    returncode: int = 0,
) -> subprocess.CompletedProcess[Any]:
    """Create the result of a finished command."""
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


class FakeProbe:
    """Status probe returning a fixed state or raising an error."""

    def __init__(self, state: ConnectionState | Exception) -> None:
        self.state = state
        self.calls = 0

    def probe(self) -> ConnectionState:
        self.calls += 1
        if isinstance(self.state, Exception):
            raise self.state
        return self.state


class MemoryStore(StateStore):
    """State store kept in a dictionary, recording every write."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data = dict(data or {})
        self.writes: list[tuple[str, str]] = []
        self.fail_writes = False

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.fail_writes:
            msg = "disk full"
            raise StoreWriteFailed(msg)
        self.writes.append((key, value))
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def sync(self) -> None:
        pass


class FakeActuator(ProfileActuator):
    """Profile actuator recording the applied states instead of running them."""

    def __init__(self, error: Exception | None = None) -> None:
        super().__init__(command=["littlesnitch"], off_profile="VPN Off")
        self.applied: list[ConnectionState] = []
        self.error = error

    def apply(self, state: ConnectionState) -> subprocess.CompletedProcess[bytes]:
        if self.error is not None:
            raise self.error
        self.applied.append(state)
        return completed(self.arguments(state), stdout=b"ok")


class Clock:
    """Settable clock in unix seconds."""

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(1_700_000_000)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def fake_actuator() -> FakeActuator:
    return FakeActuator()


@pytest.fixture
def make_reconciler(
    clock: Clock,
    memory_store: MemoryStore,
    fake_actuator: FakeActuator,
) -> Callable[..., core.Reconciler]:
    """Build a reconciler around the fakes, observing the given state."""

    def _make(
        state: ConnectionState | Exception,
        state_store: StateStore | None = None,
        profile_actuator: ProfileActuator | None = None,
    ) -> core.Reconciler:
        return core.Reconciler(
            status_probe=FakeProbe(state),
            state_store=state_store if state_store is not None else memory_store,
            profile_actuator=profile_actuator or fake_actuator,
            clock=clock,
        )

    return _make


@pytest.fixture
def audit_records(caplog: pytest.LogCaptureFixture) -> Callable[[], list[str]]:
    """Return the messages written to the audit log."""
    caplog.set_level(logging.INFO, logger="snitchprot.audit")

    def _records() -> list[str]:
        return [
            r.getMessage() for r in caplog.records if r.name == "snitchprot.audit"
        ]

    return _records


@pytest.fixture
def clean_logging() -> Any:
    """Restore the package loggers after a test configured them."""
    yield
    for name in ("snitchprot", "snitchprot.audit"):
        log = logging.getLogger(name)
        for handler in log.handlers[:]:
            log.removeHandler(handler)
            handler.close()
        log.setLevel(logging.NOTSET)


@pytest.fixture
def settings_file(tmp_path: pathlib.Path) -> pathlib.Path:
    """Configuration file keeping all state and logs below tmp_path."""
    path = tmp_path.joinpath("config.yaml")
    path.write_text(
        "---\n"
        f"log_home: {tmp_path.joinpath('logs')}\n"
        "store:\n"
        "  backend: file\n"
        f"  state_dir: {tmp_path.joinpath('state')}\n"
        "probe:\n"
        "  command: [scutil, --nc, list]\n"
        "actuator:\n"
        "  command: [littlesnitch]\n"
        "...\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def state_path(tmp_path: pathlib.Path) -> pathlib.Path:
    """Path of the file store created from settings_file."""
    return tmp_path.joinpath("state", f"{config.APP_ID}.yaml")
