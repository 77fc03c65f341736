"""Probes for the WSL guest itself: kernel, VM config, memory, processes, disk.

- WslKernelProbe: Confirms we are running inside WSL
- WslVersionProbe: Distinguishes WSL2 from WSL1
- WslConfigProbe: Checks the host .wslconfig for memory/networking settings
- MemoryProbe: Available memory
- ZombieProcessProbe: Zombie processes left behind by hung tools
- FilesystemLocationProbe: Working under /mnt (slow 9P filesystem)
- DiskUsageProbe: Disk usage of the working directory
"""

from __future__ import annotations

from pathlib import Path

from wsldoctor.probes.base import BaseProbe, Outcome

WSL2_MARKER = Path("/run/WSL")
WINDOWS_MOUNT_ROOT = Path("/mnt")


class WslKernelProbe(BaseProbe):
    identifier = "wsl.kernel"
    description = "Running inside WSL"

    def execute(self) -> Outcome:
        version = self.caps.host.kernel_release().strip()
        if "microsoft" in version.lower():
            return Outcome.ok("Running in WSL", detail=version)
        return Outcome.failed(
            "Not running inside WSL",
            detail="Most fixes assume a WSL guest; run wsldoctor from inside the distro.",
        )


class WslVersionProbe(BaseProbe):
    identifier = "wsl.version"
    description = "WSL2 (not WSL1)"

    def execute(self) -> Outcome:
        if self.caps.host.path_exists(WSL2_MARKER):
            return Outcome.ok("Running WSL2")
        return Outcome.warning(
            "May be running WSL1",
            detail="Some fixes only apply to WSL2. Check with 'wsl -l -v' from Windows.",
        )


class WslConfigProbe(BaseProbe):
    """Checks that .wslconfig caps VM memory and sets a networking mode.

    Without a memory cap the VM can balloon until the host stalls, and the
    default NAT networking is a common cause of DNS/connectivity loss.
    """

    identifier = "wsl.config"
    description = ".wslconfig limits memory and sets networking mode"

    def execute(self) -> Outcome:
        path = self.config.wslconfig.path
        if path is None:
            return Outcome.warning(
                "No .wslconfig path configured",
                detail="Set wslconfig.path in the wsldoctor config "
                "(e.g. /mnt/c/Users/<name>/.wslconfig)",
            )
        if not self.caps.files.exists(path):
            return Outcome.warning(f"{path} does not exist", detail="Run: wsldoctor fix wslconfig.write")

        sections = self.caps.files.read_sections(path)
        missing = [
            key for key in ("memory", "networkingMode") if sections.get("wsl2", key) is None
        ]
        if missing:
            return Outcome.warning(
                f"[wsl2] is missing {', '.join(missing)}",
                detail="Run: wsldoctor recommend",
            )
        return Outcome.ok(
            f"memory={sections.get('wsl2', 'memory')}, "
            f"networkingMode={sections.get('wsl2', 'networkingMode')}"
        )


class MemoryProbe(BaseProbe):
    identifier = "system.memory"
    description = "Available memory"

    def execute(self) -> Outcome:
        mem = self.caps.host.memory()
        available = round(mem.available_mb)
        threshold = self.config.thresholds.low_memory_mb
        if available < threshold:
            return Outcome.failed(
                f"Low memory: {available} MB available of {mem.total_mb:.0f} MB",
                metric=available,
                metric_unit="MB",
                detail="Consider a memory limit in .wslconfig, or run: wsldoctor fix cache.drop",
            )
        return Outcome.ok(
            f"{available} MB available of {mem.total_mb:.0f} MB",
            metric=available,
            metric_unit="MB",
        )


class ZombieProcessProbe(BaseProbe):
    identifier = "system.zombies"
    description = "No zombie processes"

    def execute(self) -> Outcome:
        zombies = [p for p in self.caps.processes.list_processes() if p.is_zombie]
        if not zombies:
            return Outcome.ok("No zombie processes", metric=0, metric_unit="count")
        listing = ", ".join(f"{p.pid} ({p.name})" for p in zombies[:10])
        return Outcome.warning(
            f"Found {len(zombies)} zombie process(es)",
            metric=len(zombies),
            metric_unit="count",
            detail=listing,
        )


class FilesystemLocationProbe(BaseProbe):
    identifier = "fs.location"
    description = "Working directory on the Linux filesystem"

    def execute(self) -> Outcome:
        cwd = self.caps.host.cwd()
        if cwd == WINDOWS_MOUNT_ROOT or WINDOWS_MOUNT_ROOT in cwd.parents:
            return Outcome.warning(
                f"Working in Windows filesystem ({cwd})",
                detail="Files under /mnt are much slower; work under ~/ instead.",
            )
        return Outcome.ok(f"Working in Linux filesystem ({cwd})")


class DiskUsageProbe(BaseProbe):
    identifier = "fs.disk"
    description = "Disk usage below threshold"

    def execute(self) -> Outcome:
        disk = self.caps.host.disk_usage(self.caps.host.cwd())
        used = round(disk.used_percent, 1)
        if used > self.config.thresholds.disk_used_percent:
            return Outcome.failed(
                f"Disk usage is high: {used}%",
                metric=used,
                metric_unit="%",
                detail="Free space, or run: wsldoctor fix tmp.clean",
            )
        return Outcome.ok(f"Disk usage OK: {used}%", metric=used, metric_unit="%")
