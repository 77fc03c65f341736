"""Diagnose command for wsldoctor CLI.

Runs every registered probe and reports the environment's health.
"""

from __future__ import annotations

import typer

from wsldoctor.core.logging import SessionContext, with_context
from wsldoctor.reporting import report_to_dict

from ..helpers import (
    build_orchestrator,
    cancel_on_interrupt,
    is_quiet,
    is_verbose,
    load_config,
)
from ..output import get_renderer, print_json


def diagnose(
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the report as JSON",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        min=0.1,
        help="Timeout in seconds for each external call (overrides config)",
    ),
) -> None:
    """Run all environment checks and report their status.

    Exit codes: 0 all checks OK, 1 at least one warning, 2 at least one failure.

    Examples:
        wsldoctor diagnose
        wsldoctor diagnose --json
        wsldoctor diagnose --timeout 3
    """
    config = load_config(timeout)
    orchestrator = build_orchestrator(config, json_output=json_output)

    with with_context(SessionContext(command="diagnose")), cancel_on_interrupt(orchestrator):
        report = orchestrator.diagnose()

    if json_output:
        print_json(report_to_dict(report))
    elif not is_quiet():
        get_renderer().render_report(report, verbose=is_verbose())

    raise typer.Exit(report.exit_code)
