"""Pytest fixtures for wsldoctor tests.

Capabilities are replaced by in-memory fakes, except the FileStore, for
which the real LocalFileStore runs against ``tmp_path``.
"""

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Generator

import pytest
import structlog

from wsldoctor.capabilities import (
    Capabilities,
    CommandResult,
    DiskInfo,
    MemoryInfo,
    ProcessInfo,
)
from wsldoctor.capabilities.files import LocalFileStore
from wsldoctor.core.config import DoctorConfig
from wsldoctor.core.errors import ExternalCallFailedError, PartialTerminationError
from wsldoctor.probes.environment import WSL2_MARKER

WSL_KERNEL = "Linux version 5.15.153.1-microsoft-standard-WSL2 (root@host) #1 SMP"


@pytest.fixture(autouse=True)
def reset_logging_state() -> Generator[None, None, None]:
    """Reset logging and CLI module state before and after each test."""
    import wsldoctor.cli.helpers as helpers

    helpers.reset_cli_state()
    structlog.reset_defaults()

    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    for handler in original_handlers:
        root_logger.removeHandler(handler)

    yield

    helpers.reset_cli_state()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in original_handlers:
        root_logger.addHandler(handler)


# =============================================================================
# Fake capabilities
# =============================================================================


class FakeProcessLister:
    def __init__(self, processes: Sequence[ProcessInfo] = ()) -> None:
        self.processes = list(processes)
        self.terminated: list[int] = []
        self.denied: set[int] = set()

    def list_processes(self) -> list[ProcessInfo]:
        return list(self.processes)

    def terminate(self, pids: Sequence[int], timeout: float) -> list[int]:
        gone = [pid for pid in pids if pid not in self.denied]
        self.terminated.extend(gone)
        self.processes = [p for p in self.processes if p.pid not in gone]
        failed = [pid for pid in pids if pid in self.denied]
        if failed:
            raise PartialTerminationError(gone, failed, "access denied")
        return gone


class FakeHostInfo:
    def __init__(self) -> None:
        self.total_mb = 16384.0
        self.available_mb = 8192.0
        self.used_percent = 40.0
        self.kernel = WSL_KERNEL
        self.current_dir = Path("/home/dev/project")
        self.paths: set[Path] = {WSL2_MARKER}
        self.environ: dict[str, str] = {}

    def memory(self) -> MemoryInfo:
        return MemoryInfo(total_mb=self.total_mb, available_mb=self.available_mb)

    def disk_usage(self, path: Path) -> DiskInfo:
        return DiskInfo(total_gb=250.0, used_percent=self.used_percent)

    def kernel_release(self) -> str:
        return self.kernel

    def cwd(self) -> Path:
        return self.current_dir

    def path_exists(self, path: Path) -> bool:
        return path in self.paths

    def env(self, name: str) -> str | None:
        return self.environ.get(name)


class FakeCommandRunner:
    """Records calls; answers from ``responses`` or with a zero exit."""

    def __init__(self) -> None:
        self.binaries: dict[str, str] = {
            "claude": "/usr/local/bin/claude",
            "node": "/usr/bin/node",
            "npm": "/usr/bin/npm",
        }
        self.responses: dict[tuple[str, ...], CommandResult | BaseException] = {
            ("node", "--version"): CommandResult(("node", "--version"), 0, "v20.11.0\n"),
            ("claude", "--version"): CommandResult(("claude", "--version"), 0, "1.0.51\n"),
        }
        self.calls: list[tuple[str, ...]] = []

    def which(self, name: str) -> str | None:
        return self.binaries.get(name)

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        key = tuple(argv)
        self.calls.append(key)
        response = self.responses.get(key)
        if isinstance(response, BaseException):
            raise response
        if response is None:
            return CommandResult(key, 0)
        return response


class FakeServiceControl:
    def __init__(self) -> None:
        self.states: dict[str, str] = {}
        self.restarted: list[str] = []
        self.broken: set[str] = set()

    def status(self, name: str, timeout: float) -> str:
        return self.states.get(name, "inactive")

    def start(self, name: str, timeout: float) -> None:
        self.states[name] = "active"

    def stop(self, name: str, timeout: float) -> None:
        self.states[name] = "inactive"

    def restart(self, name: str, timeout: float) -> None:
        self.restarted.append(name)
        if name in self.broken:
            raise ExternalCallFailedError(f"systemctl restart {name} failed")
        self.states[name] = "active"


class FakeNetwork:
    def __init__(self) -> None:
        self.addresses = ["142.250.74.78"]
        self.resolve_error: BaseException | None = None
        self.reachable = True
        self.status = 200

    def resolve(self, host: str, timeout: float) -> list[str]:
        if self.resolve_error is not None:
            raise self.resolve_error
        return list(self.addresses)

    def ping(self, host: str, timeout: float) -> bool:
        return self.reachable

    def http_status(self, url: str, timeout: float) -> int:
        return self.status


class FakePrivilege:
    def __init__(self, elevated: bool = False) -> None:
        self.elevated = elevated

    def is_elevated(self) -> bool:
        return self.elevated


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path: Path) -> DoctorConfig:
    """Config whose file paths all live under tmp_path, in a healthy state."""
    home = tmp_path / "home"
    home.mkdir()
    wslconfig = tmp_path / "win" / ".wslconfig"
    wslconfig.parent.mkdir()
    wslconfig.write_text("[wsl2]\nmemory=8GB\nnetworkingMode=mirrored\n")
    bashrc = home / ".bashrc"
    bashrc.write_text("alias ll='ls -l'\n\n# wsl-doctor: CLI environment\nexport NODE_NO_WARNINGS=1\n")
    (tmp_path / "etc").mkdir()
    (tmp_path / "etc" / "resolv.conf").write_text("nameserver 172.20.0.1\n")
    (tmp_path / "tmp").mkdir()

    return DoctorConfig.model_validate(
        {
            "network": {"resolv_conf": str(tmp_path / "etc" / "resolv.conf")},
            "cli": {
                "config_file": str(home / ".claude" / "config.json"),
                "cache_dirs": [str(home / ".cache" / "claude"), str(home / ".npm" / "_cacache")],
                "shell_rc": str(bashrc),
            },
            "wslconfig": {"path": str(wslconfig)},
            "temp_dir": str(tmp_path / "tmp"),
        }
    )


@pytest.fixture
def caps() -> Capabilities:
    """A healthy host built from fakes."""
    return Capabilities(
        processes=FakeProcessLister(),
        host=FakeHostInfo(),
        commands=FakeCommandRunner(),
        services=FakeServiceControl(),
        network=FakeNetwork(),
        files=LocalFileStore(),
        privilege=FakePrivilege(elevated=False),
    )


@pytest.fixture
def root_caps(caps: Capabilities) -> Capabilities:
    caps.privilege = FakePrivilege(elevated=True)
    return caps
