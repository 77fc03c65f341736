"""Host process and resource capabilities backed by psutil.

Processes are only ever matched by exact pid. Callers build the pid set
from list_processes() with exact name comparison, never a substring
match on the command line.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path

import psutil

from wsldoctor.capabilities.base import DiskInfo, MemoryInfo, ProcessInfo
from wsldoctor.core.errors import ExternalCallFailedError, PartialTerminationError
from wsldoctor.core.logging import get_logger

_logger = get_logger("capabilities.system")

_MB = 1024 * 1024
_GB = 1024 * _MB


class PsutilProcessLister:
    """Process listing and termination through psutil."""

    def list_processes(self) -> list[ProcessInfo]:
        processes: list[ProcessInfo] = []
        for proc in psutil.process_iter(["pid", "ppid", "name", "status", "cmdline"]):
            info = proc.info
            processes.append(
                ProcessInfo(
                    pid=info["pid"],
                    ppid=info.get("ppid") or 0,
                    name=info.get("name") or "",
                    status=info.get("status") or "",
                    cmdline=tuple(info.get("cmdline") or ()),
                )
            )
        return processes

    def terminate(self, pids: Sequence[int], timeout: float) -> list[int]:
        """SIGTERM each pid, then SIGKILL whatever survives ``timeout`` seconds.

        A pid that cannot be signalled does not stop the others. Once every
        signalled process has been reaped, PartialTerminationError reports
        both the reaped and the failed pids.
        """
        procs: list[psutil.Process] = []
        failed: dict[int, str] = {}
        for pid in pids:
            try:
                proc = psutil.Process(pid)
                proc.terminate()
                procs.append(proc)
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied as e:
                _logger.warning("process.terminate_denied", pid=pid)
                failed[pid] = str(e) or "access denied"

        survivors: list[psutil.Process] = []
        if procs:
            _, alive = psutil.wait_procs(procs, timeout=timeout)
            for proc in alive:
                _logger.debug("process.kill", pid=proc.pid)
                try:
                    proc.kill()
                    survivors.append(proc)
                except psutil.NoSuchProcess:
                    continue
                except psutil.AccessDenied as e:
                    failed[proc.pid] = str(e) or "access denied"
        if survivors:
            _, still_alive = psutil.wait_procs(survivors, timeout=timeout)
            for proc in still_alive:
                failed[proc.pid] = "survived SIGKILL"

        terminated = sorted(p.pid for p in procs if p.pid not in failed)
        if failed:
            raise PartialTerminationError(
                terminated,
                sorted(failed),
                "; ".join(f"{pid}: {reason}" for pid, reason in sorted(failed.items())),
            )
        return terminated


class PsutilHostInfo:
    """Memory, disk and kernel information about the current host."""

    def __init__(self, proc_version: Path = Path("/proc/version")) -> None:
        self._proc_version = proc_version

    def memory(self) -> MemoryInfo:
        vm = psutil.virtual_memory()
        return MemoryInfo(total_mb=vm.total / _MB, available_mb=vm.available / _MB)

    def disk_usage(self, path: Path) -> DiskInfo:
        try:
            usage = psutil.disk_usage(str(path))
        except OSError as e:
            raise ExternalCallFailedError(f"Cannot stat {path}", detail=str(e)) from e
        return DiskInfo(total_gb=usage.total / _GB, used_percent=usage.percent)

    def kernel_release(self) -> str:
        try:
            return self._proc_version.read_text()
        except OSError as e:
            raise ExternalCallFailedError(
                f"Cannot read {self._proc_version}", detail=str(e)
            ) from e

    def cwd(self) -> Path:
        return Path.cwd()

    def path_exists(self, path: Path) -> bool:
        return path.expanduser().exists()

    def env(self, name: str) -> str | None:
        return os.environ.get(name)


class EuidPrivilegeCheck:
    """Elevated means running as root (effective uid 0)."""

    def is_elevated(self) -> bool:
        return os.geteuid() == 0


__all__ = ["EuidPrivilegeCheck", "PsutilHostInfo", "PsutilProcessLister"]
