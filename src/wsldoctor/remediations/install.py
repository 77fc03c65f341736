"""Reinstall (or roll back) the CLI tool through npm."""

from __future__ import annotations

from wsldoctor.capabilities.commands import run_checked
from wsldoctor.core.errors import ExternalCallFailedError
from wsldoctor.core.logging import get_logger
from wsldoctor.remediations.base import BaseRemediation, RemediationResult

_logger = get_logger("remediations.install")


class ReinstallCliRemediation(BaseRemediation):
    """Uninstalls, cleans the npm cache and installs the configured version.

    Pinning ``cli.version`` to an older release turns this into a rollback.
    """

    identifier = "cli.reinstall"
    description = "Reinstall the CLI tool with npm"
    is_destructive = True
    related_probe_identifiers = frozenset({"cli.installed"})

    @property
    def package_spec(self) -> str:
        return f"{self.config.cli.npm_package}@{self.config.cli.version}"

    def preview(self) -> str:
        return f"npm install -g {self.package_spec}"

    def run(self) -> RemediationResult:
        npm = self.caps.commands
        if npm.which("npm") is None:
            raise ExternalCallFailedError("npm is not installed")

        package = self.config.cli.npm_package
        uninstall = npm.run(["npm", "uninstall", "-g", package], self.timeout)
        if not uninstall.ok:
            _logger.info("install.uninstall_failed", package=package, code=uninstall.returncode)
        run_checked(npm, ["npm", "cache", "clean", "--force"], self.timeout)
        run_checked(npm, ["npm", "install", "-g", self.package_spec], self.timeout)

        binary = self.config.cli.binary
        version = npm.run([binary, "--version"], self.timeout)
        installed = version.stdout.strip() if version.ok else "unknown"
        return RemediationResult(success=True, message=f"Installed {binary} {installed}")
