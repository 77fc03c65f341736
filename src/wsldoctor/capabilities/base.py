"""Narrow interfaces to the external systems probes and remediations touch.

Probes and remediations never call psutil, subprocess, sockets or the
filesystem directly. They depend on the protocols below, which are
bundled into a Capabilities object at startup. Tests substitute fakes.

Every operation that calls out of process takes a timeout and raises
OperationTimeoutError when it is exceeded; any other fault of the
collaborator is raised as ExternalCallFailedError.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class ProcessInfo:
    """Snapshot of one process-table entry."""

    pid: int
    ppid: int
    name: str
    status: str = "running"
    cmdline: tuple[str, ...] = ()

    @property
    def is_zombie(self) -> bool:
        return self.status == "zombie"


@dataclass(frozen=True)
class MemoryInfo:
    total_mb: float
    available_mb: float


@dataclass(frozen=True)
class DiskInfo:
    total_gb: float
    used_percent: float


@dataclass(frozen=True)
class CommandResult:
    """Result of running an external command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessLister(Protocol):
    def list_processes(self) -> list[ProcessInfo]:
        """Return a snapshot of the process table."""
        ...

    def terminate(self, pids: Sequence[int], timeout: float) -> list[int]:
        """Terminate exactly the given pids; return those that are gone.

        Raises PartialTerminationError if some of them could not be terminated.
        """
        ...


class HostInfo(Protocol):
    def memory(self) -> MemoryInfo: ...

    def disk_usage(self, path: Path) -> DiskInfo: ...

    def kernel_release(self) -> str:
        """Contents of /proc/version."""
        ...

    def cwd(self) -> Path: ...

    def path_exists(self, path: Path) -> bool: ...

    def env(self, name: str) -> str | None: ...


class CommandRunner(Protocol):
    def which(self, name: str) -> str | None: ...

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        """Run argv (no shell); raise OperationTimeoutError on timeout."""
        ...


class ServiceControl(Protocol):
    def status(self, name: str, timeout: float) -> str:
        """Return the service state, e.g. "active", "inactive", "failed"."""
        ...

    def start(self, name: str, timeout: float) -> None: ...

    def stop(self, name: str, timeout: float) -> None: ...

    def restart(self, name: str, timeout: float) -> None: ...


class NetworkProbe(Protocol):
    def resolve(self, host: str, timeout: float) -> list[str]:
        """Resolve host to addresses; raise on failure."""
        ...

    def ping(self, host: str, timeout: float) -> bool: ...

    def http_status(self, url: str, timeout: float) -> int:
        """Return the HTTP status code; raise on transport failure."""
        ...


class FileStore(Protocol):
    def exists(self, path: Path) -> bool: ...

    def read_text(self, path: Path) -> str: ...

    def write_text(self, path: Path, content: str) -> Path | None:
        """Replace path's content; return the backup of the old version."""
        ...

    def append_text(self, path: Path, content: str) -> Path | None: ...

    def read_sections(self, path: Path) -> SectionedConfig: ...

    def write_sections(self, path: Path, config: SectionedConfig) -> Path | None: ...

    def backup(self, path: Path) -> Path:
        """Move path aside to a timestamped backup and return its new name."""
        ...

    def remove_tree(self, path: Path) -> None: ...

    def iter_stale_files(self, directory: Path, max_age_days: int) -> Iterator[Path]: ...

    def remove_file(self, path: Path) -> None: ...


class PrivilegeCheck(Protocol):
    def is_elevated(self) -> bool: ...


@dataclass
class SectionedConfig:
    """In-memory form of an INI-style configuration file.

    Section and key order is preserved, as is the case of keys, so a
    rewrite keeps every key it did not touch.
    """

    sections: dict[str, dict[str, str]] = field(default_factory=dict)

    def get(self, section: str, key: str) -> str | None:
        return self.sections.get(section, {}).get(key)

    def set(self, section: str, key: str, value: str) -> None:
        self.sections.setdefault(section, {})[key] = value

    def has_section(self, section: str) -> bool:
        return section in self.sections


@dataclass
class Capabilities:
    """Bundle of capability implementations injected into probes and remediations."""

    processes: ProcessLister
    host: HostInfo
    commands: CommandRunner
    services: ServiceControl
    network: NetworkProbe
    files: FileStore
    privilege: PrivilegeCheck
