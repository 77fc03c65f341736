"""Cache and temporary-file remediations."""

from __future__ import annotations

from pathlib import Path

from wsldoctor.capabilities.commands import run_checked
from wsldoctor.core.errors import DoctorError, ErrorKind, ExternalCallFailedError
from wsldoctor.core.logging import get_logger
from wsldoctor.remediations.base import BaseRemediation, RemediationResult

_logger = get_logger("remediations.cache")


class DropPageCacheRemediation(BaseRemediation):
    identifier = "cache.drop"
    description = "Flush and drop the kernel page cache"
    requires_elevated_privilege = True
    related_probe_identifiers = frozenset({"system.memory"})

    def run(self) -> RemediationResult:
        run_checked(self.caps.commands, ["sync"], self.timeout)
        run_checked(self.caps.commands, ["sysctl", "-w", "vm.drop_caches=1"], self.timeout)
        return RemediationResult(success=True, message="Page cache dropped")


class CleanNpmCacheRemediation(BaseRemediation):
    identifier = "cache.npm"
    description = "Clean the npm cache"

    def run(self) -> RemediationResult:
        if self.caps.commands.which("npm") is None:
            raise ExternalCallFailedError("npm is not installed")
        run_checked(self.caps.commands, ["npm", "cache", "clean", "--force"], self.timeout)
        return RemediationResult(success=True, message="npm cache cleaned")


class CleanStaleTempRemediation(BaseRemediation):
    identifier = "tmp.clean"
    description = "Delete temp files not accessed recently"
    requires_elevated_privilege = True
    is_destructive = True
    related_probe_identifiers = frozenset({"fs.disk"})

    def preview(self) -> str:
        days = self.config.thresholds.stale_tmp_days
        return f"delete files in {self.config.temp_dir} not accessed for {days} days"

    def run(self) -> RemediationResult:
        removed: list[Path] = []
        failures: list[str] = []
        stale = self.caps.files.iter_stale_files(
            self.config.temp_dir, self.config.thresholds.stale_tmp_days
        )
        for path in stale:
            try:
                self.caps.files.remove_file(path)
            except DoctorError as e:
                failures.append(f"{path}: {e.message}")
                continue
            removed.append(path)

        if failures:
            _logger.warning("tmp.clean_partial", removed=len(removed), failed=len(failures))
            return RemediationResult(
                success=False,
                message=f"Removed {len(removed)} file(s), {len(failures)} could not be removed",
                error_detail="; ".join(failures[:5]),
                error_kind=ErrorKind.EXTERNAL_CALL_FAILED,
                modified_files=removed,
            )
        return RemediationResult(
            success=True,
            message=f"Removed {len(removed)} stale file(s) from {self.config.temp_dir}",
            modified_files=removed,
        )


class ClearCliCacheRemediation(BaseRemediation):
    identifier = "cli.cache.clear"
    description = "Remove the CLI tool's cache directories"
    is_destructive = True

    def preview(self) -> str:
        dirs = ", ".join(str(d) for d in self.config.cli.cache_dirs)
        return f"remove {dirs}"

    def run(self) -> RemediationResult:
        cleared: list[Path] = []
        for directory in self.config.cli.cache_dirs:
            if not self.caps.files.exists(directory):
                continue
            self.caps.files.remove_tree(directory)
            cleared.append(directory)
        if not cleared:
            return RemediationResult(success=True, message="No cache directories found")
        return RemediationResult(
            success=True,
            message=f"Cleared {len(cleared)} cache director{'y' if len(cleared) == 1 else 'ies'}",
            modified_files=cleared,
        )
