"""wsldoctor CLI.

The CLI is built using Typer and organized into command modules. Global
options (verbosity, logging, config file) are handled by the app
callback before any command runs.

Package structure:
    cli/
    ├── __init__.py           # This file - app assembly
    ├── helpers.py            # Shared state, config loading, orchestrator wiring
    ├── output.py             # Console and error output
    └── commands/
        ├── diagnose.py       # diagnose command
        ├── fix.py            # fix command
        ├── list_cmd.py       # list command
        ├── recommend.py      # recommend command
        └── config_cmd.py     # config show/path/init/check
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from wsldoctor import __version__

from . import helpers as helpers
from .commands import config_app, diagnose, fix, list_remediations, recommend
from .helpers import (
    OutputLevel,
    configure_global_logging,
    set_config_path,
    set_log_file,
    set_log_format,
    set_log_level,
    set_output_level,
)
from .output import console

app = typer.Typer(
    name="wsldoctor",
    help="Diagnose and fix WSL2 environment problems and CLI tool hangs",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    if value:
        console.print(f"wsl-doctor v{__version__}")
        raise typer.Exit()


def verbose_callback(value: bool) -> None:
    if value:
        set_output_level(OutputLevel.VERBOSE)


def quiet_callback(value: bool) -> None:
    if value:
        set_output_level(OutputLevel.QUIET)


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


def config_callback(value: Path | None) -> Path | None:
    set_config_path(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        callback=verbose_callback,
        is_eager=True,
        help="Show details for passing checks too",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        callback=quiet_callback,
        is_eager=True,
        help="Show minimal output (errors only)",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="WSLDOCTOR_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="WSLDOCTOR_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="WSLDOCTOR_LOG_FORMAT",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            callback=config_callback,
            help="Path to the wsldoctor config file (default: ~/.wsldoctor/config.yaml)",
            envvar="WSLDOCTOR_CONFIG",
        ),
    ] = None,
) -> None:
    """wsl-doctor - diagnose and fix WSL2 environment problems."""
    configure_global_logging(console)


# =============================================================================
# Command registration
# =============================================================================

app.command()(diagnose)
app.command()(fix)
app.command(name="list")(list_remediations)
app.command()(recommend)
app.add_typer(config_app)


__all__ = [
    "app",
    "helpers",
]
