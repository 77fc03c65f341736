"""Shared utilities for wsldoctor CLI commands.

This module contains helpers used across multiple command modules:
- Output level management
- Logging configuration from the global options
- Loading the tool configuration
- Building the orchestrator and its confirmation callback
- Translating SIGINT into orchestrator cancellation
"""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.prompt import Confirm

from wsldoctor.capabilities import host_capabilities
from wsldoctor.core.config import DoctorConfig
from wsldoctor.core.errors import DanglingProbeReferenceError, DuplicateIdentifierError
from wsldoctor.core.logging import configure_logging, get_logger
from wsldoctor.orchestrator import ConfirmCallback, Orchestrator
from wsldoctor.probes.registry import create_default_probe_registry
from wsldoctor.remediations.catalog import create_default_catalog

from .output import console, output_error

if TYPE_CHECKING:
    from wsldoctor.capabilities import Capabilities
    from wsldoctor.remediations.base import Remediation

_logger = get_logger("cli")

# Exit code for a startup error: invalid tool config or an inconsistent
# probe registry / remediation catalog
EXIT_STARTUP_ERROR = 4


# =============================================================================
# Output level management
# =============================================================================


class OutputLevel(str, Enum):
    """Output verbosity level."""

    QUIET = "quiet"  # Minimal output (errors only)
    NORMAL = "normal"  # Default output
    VERBOSE = "verbose"  # Detailed output


_output_level: OutputLevel = OutputLevel.NORMAL


def set_output_level(level: OutputLevel) -> None:
    global _output_level
    _output_level = level


def is_verbose() -> bool:
    return _output_level == OutputLevel.VERBOSE


def is_quiet() -> bool:
    return _output_level == OutputLevel.QUIET


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """Logging options collected from the global CLI options."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    _log_config.level = level.upper()  # type: ignore[assignment]


def set_log_file(path: Path | None) -> None:
    _log_config.file = path


def set_log_format(fmt: str) -> None:
    _log_config.format = fmt  # type: ignore[assignment]


def configure_global_logging(console: Console) -> None:
    """Configure logging from the global options. Only configures once.

    Raises:
        typer.Exit: If the logging options are invalid.
    """
    if _log_config.configured:
        return

    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
    except (ValueError, AttributeError) as e:
        # AttributeError: unknown level name
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(1) from None
    _log_config.configured = True


def reset_cli_state() -> None:
    """Reset module-level CLI state (primarily for testing)."""
    global _log_config, _output_level, _config_path
    _log_config = CliLoggingConfig()
    _output_level = OutputLevel.NORMAL
    _config_path = None


# =============================================================================
# Tool configuration
# =============================================================================

_config_path: Path | None = None


def set_config_path(path: Path | None) -> None:
    global _config_path
    _config_path = path


def get_config_path() -> Path | None:
    return _config_path


def load_config(timeout: float | None = None) -> DoctorConfig:
    """Load the tool configuration named by --config (or the default).

    Raises:
        typer.Exit: With EXIT_STARTUP_ERROR if the file is missing or invalid.
    """
    try:
        config = DoctorConfig.load(_config_path)
    except FileNotFoundError as e:
        output_error(str(e), hints=["Create one with: wsldoctor config init"])
        raise typer.Exit(EXIT_STARTUP_ERROR) from None
    except (ValidationError, yaml.YAMLError, OSError) as e:
        output_error(f"Invalid configuration: {e}")
        raise typer.Exit(EXIT_STARTUP_ERROR) from None
    return config.with_timeout(timeout)


# =============================================================================
# Orchestrator construction
# =============================================================================


def get_capabilities() -> Capabilities:
    """Capabilities backed by the real host."""
    return host_capabilities()


def prompt_confirm(remediation: Remediation) -> bool:
    """Ask the user to confirm one destructive remediation."""
    console.print(
        f"\n[yellow]Destructive fix:[/yellow] [cyan]{remediation.identifier}[/cyan] "
        f"{remediation.description}"
    )
    console.print(f"[dim]Will {remediation.preview()}[/dim]")
    return Confirm.ask("Apply this fix?", default=False, console=console)


def make_confirm(auto_confirm: bool) -> ConfirmCallback:
    if auto_confirm:
        return lambda remediation: True
    return prompt_confirm


def build_orchestrator(
    config: DoctorConfig,
    confirm: ConfirmCallback | None = None,
    dry_run: bool = False,
    json_output: bool = False,
) -> Orchestrator:
    """Wire capabilities, registry and catalog into an orchestrator.

    Raises:
        typer.Exit: With EXIT_STARTUP_ERROR if the registry or catalog is
            inconsistent; the orchestrator never runs in that case.
    """
    capabilities = get_capabilities()
    try:
        registry = create_default_probe_registry(capabilities, config)
        catalog = create_default_catalog(registry, capabilities, config)
    except (DuplicateIdentifierError, DanglingProbeReferenceError) as e:
        _logger.error("cli.startup_failed", error_kind=e.kind.value, error=e.message)
        output_error(e.message, error_code=e.kind.value, json_output=json_output)
        raise typer.Exit(EXIT_STARTUP_ERROR) from None

    return Orchestrator(
        registry,
        catalog,
        confirm=confirm or make_confirm(auto_confirm=False),
        dry_run=dry_run,
    )


@contextmanager
def cancel_on_interrupt(orchestrator: Orchestrator) -> Iterator[Orchestrator]:
    """Translate Ctrl-C into Orchestrator.cancel() for the duration of a block.

    A second Ctrl-C restores the default behaviour and interrupts at once.
    """

    def _handler(signum: int, frame: object) -> None:
        if orchestrator.cancelled:
            signal.signal(signal.SIGINT, previous)
            raise KeyboardInterrupt
        console.print("\n[yellow]Cancelling after the current step...[/yellow]")
        orchestrator.cancel()

    try:
        previous = signal.signal(signal.SIGINT, _handler)
    except ValueError:
        # Not in the main thread; cancellation is then only programmatic
        yield orchestrator
        return
    try:
        yield orchestrator
    finally:
        signal.signal(signal.SIGINT, previous)
