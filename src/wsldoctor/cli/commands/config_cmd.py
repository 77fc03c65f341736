"""Configuration commands for wsldoctor CLI.

This module implements the `wsldoctor config` command group for viewing
and creating the tool's own configuration file.

Subcommands:
- `wsldoctor config show`   Display the effective config as a Rich table
- `wsldoctor config path`   Show config file location
- `wsldoctor config init`   Create a default config file
- `wsldoctor config check`  Validate a config file
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
import yaml
from pydantic import ValidationError
from rich.table import Table

from wsldoctor.core.config import DEFAULT_CONFIG_FILE, DoctorConfig

from ..helpers import get_config_path
from ..output import console

config_app = typer.Typer(
    name="config",
    help="Manage wsldoctor configuration.",
    invoke_without_command=True,
)


def _resolve_config_path() -> Path:
    """Resolve the config file path from --config, expanding ~."""
    return (get_config_path() or DEFAULT_CONFIG_FILE).expanduser()


def _load_config_data(path: Path) -> dict[str, Any]:
    """Load config YAML from disk, returning empty dict if missing."""
    if path.exists():
        with open(path) as f:
            return yaml.safe_load(f) or {}
    return {}


def _save_config_data(path: Path, data: dict[str, Any]) -> None:
    """Write config data to YAML file atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".yaml.tmp")
    with open(tmp, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
    tmp.replace(path)


def _get_nested(data: dict[str, Any], dotted_key: str) -> Any:
    """Get a value from a nested dict using dot notation."""
    current: Any = data
    for key in dotted_key.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten a nested dict into dot-notation keys."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict) and value:
            result.update(_flatten(value, full_key))
        else:
            result[full_key] = value
    return result


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    """Manage wsldoctor configuration."""
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(0)


@config_app.command()
def show() -> None:
    """Display the effective configuration as a table.

    Values come from the config file where set, otherwise from defaults.

    Examples:
        wsldoctor config show
        wsldoctor --config ./doctor.yaml config show
    """
    path = _resolve_config_path()
    try:
        file_data = _load_config_data(path)
        effective = DoctorConfig.model_validate(file_data)
    except (ValidationError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1) from None

    source_label = f"[dim]{path}[/dim]" if path.exists() else "[dim](defaults)[/dim]"
    console.print(f"\nwsldoctor configuration: {source_label}\n")

    table = Table(show_header=True, header_style="bold cyan", padding=(0, 1))
    table.add_column("Key", style="white", min_width=30)
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    for key, value in _flatten(effective.model_dump(mode="json")).items():
        source = "file" if _get_nested(file_data, key) is not None else "default"
        source_display = f"[dim]{source}[/dim]" if source == "default" else source
        table.add_row(key, str(value), source_display)

    console.print(table)


@config_app.command()
def path() -> None:
    """Show the config file location and whether it exists.

    Examples:
        wsldoctor config path
    """
    resolved = _resolve_config_path()
    status = "[green]exists[/green]" if resolved.exists() else "[yellow]not created[/yellow]"
    console.print(f"{resolved}  ({status})")


@config_app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing config file",
    ),
    wslconfig: Path | None = typer.Option(
        None,
        "--wslconfig",
        help="Path to the Windows .wslconfig as seen from WSL "
        "(e.g. /mnt/c/Users/me/.wslconfig)",
    ),
) -> None:
    """Create a default config file.

    Refuses to overwrite an existing file unless --force is given.

    Examples:
        wsldoctor config init
        wsldoctor config init --wslconfig /mnt/c/Users/me/.wslconfig
        wsldoctor config init --force
    """
    resolved = _resolve_config_path()

    if resolved.exists() and not force:
        console.print(
            f"[yellow]Config file already exists:[/yellow] {resolved}\n"
            "Use --force to overwrite."
        )
        raise typer.Exit(1)

    defaults = DoctorConfig()
    if wslconfig is not None:
        defaults.wslconfig.path = wslconfig

    _save_config_data(resolved, defaults.model_dump(mode="json"))
    console.print(f"[green]Created default config:[/green] {resolved}")


@config_app.command("check")
def check() -> None:
    """Validate the config file.

    Exits 0 if valid, 1 if invalid or the file cannot be loaded.

    Examples:
        wsldoctor --config ./doctor.yaml config check
    """
    path = _resolve_config_path()
    if not path.exists():
        console.print(f"[red]Config file not found:[/red] {path}")
        raise typer.Exit(1)

    try:
        DoctorConfig.model_validate(_load_config_data(path))
    except (ValidationError, yaml.YAMLError) as e:
        console.print(f"[red]Invalid config:[/red] {path}")
        console.print(f"  {e}")
        raise typer.Exit(1) from None

    console.print(f"[green]Valid config:[/green] {path}")


__all__ = [
    "config_app",
]
