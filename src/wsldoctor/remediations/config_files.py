"""Remediations that rewrite configuration files.

Every rewrite goes through the FileStore, which keeps a timestamped
backup of the previous version.
"""

from __future__ import annotations

import shlex

from wsldoctor.capabilities import SectionedConfig
from wsldoctor.core.config import WslConfigSettings
from wsldoctor.core.errors import ConfigWriteFailedError
from wsldoctor.remediations.base import BaseRemediation, RemediationResult


def recommended_wslconfig(total_memory_mb: float, settings: WslConfigSettings) -> SectionedConfig:
    """Recommended .wslconfig settings for a machine with ``total_memory_mb``.

    The VM gets half of the memory, but never less than ``min_memory_gb``.
    """
    memory_gb = max(int(total_memory_mb // 1024) // 2, settings.min_memory_gb)
    return SectionedConfig(
        sections={
            "wsl2": {
                "memory": f"{memory_gb}GB",
                "processors": str(settings.processors),
                "swap": settings.swap,
                "localhostForwarding": "true",
                "networkingMode": settings.networking_mode,
            },
            "experimental": {
                "autoMemoryReclaim": settings.auto_memory_reclaim,
                "sparseVhd": "true",
            },
        }
    )


class WriteWslConfigRemediation(BaseRemediation):
    """Merges the recommended settings into .wslconfig.

    Keys the recommendation does not cover are preserved as they are.
    Takes effect after 'wsl --shutdown' from Windows.
    """

    identifier = "wslconfig.write"
    description = "Write recommended memory and networking settings to .wslconfig"
    is_destructive = True
    related_probe_identifiers = frozenset({"wsl.config"})

    def preview(self) -> str:
        return f"merge recommended settings into {self.config.wslconfig.path or '.wslconfig'}"

    def run(self) -> RemediationResult:
        path = self.config.wslconfig.path
        if path is None:
            raise ConfigWriteFailedError(
                "No .wslconfig path configured",
                detail="Set wslconfig.path in the wsldoctor config",
            )

        current = (
            self.caps.files.read_sections(path)
            if self.caps.files.exists(path)
            else SectionedConfig()
        )
        recommended = recommended_wslconfig(self.caps.host.memory().total_mb, self.config.wslconfig)
        for section, values in recommended.sections.items():
            for key, value in values.items():
                current.set(section, key, value)

        backup = self.caps.files.write_sections(path, current)
        return RemediationResult(
            success=True,
            message=f"Updated {path}; run 'wsl --shutdown' from Windows to apply",
            modified_files=[path],
            backup_paths=[backup] if backup else [],
        )


class ResetCliConfigRemediation(BaseRemediation):
    identifier = "cli.config.reset"
    description = "Move the CLI tool's config file aside"
    is_destructive = True

    def run(self) -> RemediationResult:
        path = self.config.cli.config_file
        if not self.caps.files.exists(path):
            return RemediationResult(success=True, message="No config file found")
        backup = self.caps.files.backup(path)
        return RemediationResult(
            success=True,
            message=f"Configuration reset; previous version at {backup}",
            modified_files=[path],
            backup_paths=[backup],
        )


def render_env_block(marker: str, env: dict[str, str]) -> str:
    lines = ["", marker]
    lines.extend(f"export {name}={shlex.quote(value)}" for name, value in env.items())
    return "\n".join(lines) + "\n"


class AppendShellEnvRemediation(BaseRemediation):
    identifier = "shell.env"
    description = "Add recommended CLI environment variables to the shell rc file"
    related_probe_identifiers = frozenset({"cli.env"})

    def run(self) -> RemediationResult:
        cli = self.config.cli
        if self.caps.files.exists(cli.shell_rc) and cli.env_marker in self.caps.files.read_text(
            cli.shell_rc
        ):
            return RemediationResult(
                success=True, message=f"Environment block already in {cli.shell_rc}"
            )

        backup = self.caps.files.append_text(cli.shell_rc, render_env_block(cli.env_marker, cli.env))
        return RemediationResult(
            success=True,
            message=f"Environment variables added; run: source {cli.shell_rc}",
            modified_files=[cli.shell_rc],
            backup_paths=[backup] if backup else [],
        )
