"""Recommend command for wsldoctor CLI.

Prints the .wslconfig recommended for this machine without writing it.
"""

from __future__ import annotations

import typer

from wsldoctor.capabilities.files import render_sections
from wsldoctor.remediations.config_files import recommended_wslconfig

from ..helpers import get_capabilities, is_quiet, load_config
from ..output import console, print_json


def recommend(
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the settings as JSON",
    ),
) -> None:
    """Show the recommended .wslconfig for this machine.

    Memory is half of the machine's RAM (at least the configured minimum).
    Apply it with 'wsldoctor fix wslconfig.write' or copy it to
    %UserProfile%\\.wslconfig on Windows, then run 'wsl --shutdown'.

    Examples:
        wsldoctor recommend
        wsldoctor recommend > /mnt/c/Users/me/.wslconfig
    """
    config = load_config()
    memory = get_capabilities().host.memory()
    recommended = recommended_wslconfig(memory.total_mb, config.wslconfig)

    if json_output:
        print_json(recommended.sections)
        return

    if not is_quiet():
        console.print(
            f"[dim]# Detected {memory.total_mb / 1024:.1f} GB of memory[/dim]",
            highlight=False,
        )
    console.print(render_sections(recommended), markup=False, highlight=False)
