"""Configuration models for wsl-doctor.

Defines Pydantic v2 models for the tool's own settings: probe thresholds,
external-call timeouts, network targets, the CLI tool being repaired and
the location of the host configuration files the remediations rewrite.

The configuration is read from ``~/.wsldoctor/config.yaml`` (or the path
given with ``--config``). A missing file yields the defaults.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from wsldoctor.core.logging import get_logger

_logger = get_logger("core.config")

DEFAULT_CONFIG_DIR = Path("~/.wsldoctor")
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"


class ThresholdConfig(BaseModel):
    """Limits at which probes report WARNING or FAILED."""

    low_memory_mb: int = Field(
        default=500,
        ge=0,
        description="Available memory below this many MB is reported as FAILED",
    )
    disk_used_percent: float = Field(
        default=90.0,
        gt=0,
        le=100,
        description="Disk usage above this percentage is reported as FAILED",
    )
    max_node_processes: int = Field(
        default=5,
        ge=0,
        description="More node processes than this is reported as WARNING",
    )
    min_node_major: int = Field(
        default=18,
        ge=1,
        description="Minimum recommended Node.js major version",
    )
    stale_tmp_days: int = Field(
        default=7,
        ge=1,
        description="Files in the temp dir not accessed for this many days are removed",
    )


class TimeoutConfig(BaseModel):
    """Upper bounds for external calls."""

    probe_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout applied to each external call made by a probe",
    )
    remediation_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Timeout applied to each external call made by a remediation "
        "(npm installs can be slow)",
    )
    terminate_grace_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Seconds to wait after SIGTERM before sending SIGKILL",
    )


class NetworkConfig(BaseModel):
    """Network reachability targets and the DNS fix."""

    dns_host: str = Field(default="google.com", description="Host name resolved by net.dns")
    ping_target: str = Field(default="8.8.8.8", description="Address pinged by net.connectivity")
    api_url: str = Field(
        default="https://api.anthropic.com",
        description="URL checked by net.api",
    )
    resolv_conf: Path = Field(default=Path("/etc/resolv.conf"))
    nameservers: list[str] = Field(
        default=["8.8.8.8", "8.8.4.4", "1.1.1.1"],
        min_length=1,
        description="Nameservers written by dns.rewrite",
    )
    lock_resolv_conf: bool = Field(
        default=True,
        description="Mark resolv.conf immutable (chattr +i) after rewriting "
        "so WSL does not regenerate it",
    )

    @field_validator("nameservers")
    @classmethod
    def _strip_nameservers(cls, v: list[str]) -> list[str]:
        cleaned = [ns.strip() for ns in v if ns.strip()]
        if not cleaned:
            raise ValueError("at least one non-empty nameserver is required")
        return cleaned


class CliToolConfig(BaseModel):
    """The CLI tool whose startup/runtime hangs are being repaired."""

    binary: str = Field(default="claude", description="Executable name on PATH")
    npm_package: str = Field(default="@anthropic-ai/claude-code")
    version: str = Field(
        default="latest",
        description="Version installed by cli.reinstall; pin an older version to roll back",
    )
    process_names: list[str] = Field(
        default=["claude"],
        description="Exact process names terminated by cli.kill",
    )
    config_file: Path = Field(default=Path("~/.claude/config.json"))
    cache_dirs: list[Path] = Field(
        default=[
            Path("~/.cache/claude"),
            Path("~/.config/claude-code"),
            Path("~/.npm/_cacache"),
        ],
        description="Directories removed by cli.cache.clear",
    )
    shell_rc: Path = Field(default=Path("~/.bashrc"))
    env_marker: str = Field(
        default="# wsl-doctor: CLI environment",
        description="Marker line identifying the env block appended by shell.env",
    )
    env: dict[str, str] = Field(
        default={
            "NODE_OPTIONS": "--max-old-space-size=4096",
            "CLAUDE_CODE_SKIP_ANALYTICS": "1",
            "NODE_NO_WARNINGS": "1",
            "TERM": "xterm-256color",
        },
        description="Environment variables exported by the env block",
    )


class WslConfigSettings(BaseModel):
    """Location and recommended contents of the host's .wslconfig."""

    path: Path | None = Field(
        default=None,
        description="Path to .wslconfig as seen from inside WSL, "
        "e.g. /mnt/c/Users/<name>/.wslconfig. None disables wslconfig.write.",
    )
    min_memory_gb: int = Field(default=4, ge=1)
    processors: int = Field(default=4, ge=1)
    swap: str = Field(default="8GB")
    networking_mode: str = Field(default="mirrored")
    auto_memory_reclaim: str = Field(default="gradual")


class ServiceConfig(BaseModel):
    """System services checked and restartable through systemctl."""

    names: list[str] = Field(
        default_factory=list,
        description="Each name gets a service.<name> probe and a "
        "service.restart.<name> remediation",
    )


class DoctorConfig(BaseModel):
    """Top-level wsl-doctor configuration."""

    thresholds: ThresholdConfig = Field(default_factory=ThresholdConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    cli: CliToolConfig = Field(default_factory=CliToolConfig)
    wslconfig: WslConfigSettings = Field(default_factory=WslConfigSettings)
    services: ServiceConfig = Field(default_factory=ServiceConfig)
    temp_dir: Path = Field(default=Path("/tmp"))

    @classmethod
    def from_yaml(cls, path: Path) -> DoctorConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)

    @classmethod
    def load(cls, path: Path | None = None) -> DoctorConfig:
        """Load from ``path`` (or the default location), falling back to defaults.

        An explicitly given path must exist; the default path is optional.
        """
        resolved = (path or DEFAULT_CONFIG_FILE).expanduser()
        if resolved.exists():
            _logger.debug("config.loaded", path=str(resolved))
            return cls.from_yaml(resolved)
        if path is not None:
            raise FileNotFoundError(f"Config file not found: {resolved}")
        return cls()

    def with_timeout(self, seconds: float | None) -> DoctorConfig:
        """Return a copy whose probe and remediation timeouts are ``seconds``."""
        if seconds is None:
            return self
        timeouts = self.timeouts.model_copy(
            update={"probe_seconds": seconds, "remediation_seconds": seconds}
        )
        return self.model_copy(update={"timeouts": timeouts})


__all__ = [
    "CliToolConfig",
    "DEFAULT_CONFIG_FILE",
    "DoctorConfig",
    "NetworkConfig",
    "ServiceConfig",
    "ThresholdConfig",
    "TimeoutConfig",
    "WslConfigSettings",
]
