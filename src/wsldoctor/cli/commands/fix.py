"""Fix command for wsldoctor CLI.

Applies selected remediations, asking before destructive ones, and
re-runs the affected probes to show the before/after state.
"""

from __future__ import annotations

import typer

from wsldoctor.core.errors import UnknownRemediationError
from wsldoctor.core.logging import SessionContext, with_context
from wsldoctor.reporting import fix_report_to_dict

from ..helpers import (
    build_orchestrator,
    cancel_on_interrupt,
    is_quiet,
    load_config,
    make_confirm,
)
from ..output import get_renderer, output_error, print_json

# Exit code when the request itself is invalid (unknown id, no selection)
EXIT_BAD_REQUEST = 2


def _decline_all(remediation: object) -> bool:
    return False


def fix(
    identifiers: list[str] | None = typer.Argument(
        None,
        help="Remediation ids to apply, in order (see 'wsldoctor list')",
        show_default=False,
    ),
    all_remediations: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Apply every available remediation",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Apply destructive remediations without asking",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        "-n",
        help="Show what would be done without changing anything",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the result as JSON (destructive fixes need --yes)",
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        min=0.1,
        help="Timeout in seconds for each external call (overrides config)",
    ),
) -> None:
    """Apply remediations and re-check the probes they affect.

    Remediations run strictly in the order given. One failed fix does not
    stop the others.

    Exit codes: 0 all applied fixes succeeded, 1 a fix failed,
    3 a fix needs root, 2 unknown remediation id.

    Examples:
        wsldoctor fix dns.rewrite
        sudo wsldoctor fix cache.drop tmp.clean --yes
        wsldoctor fix --all --dry-run
    """
    if all_remediations and identifiers:
        output_error("Give remediation ids or --all, not both", json_output=json_output)
        raise typer.Exit(EXIT_BAD_REQUEST)
    if not all_remediations and not identifiers:
        output_error(
            "No remediation selected",
            hints=["Run 'wsldoctor list' to see available remediations", "Or use --all"],
            json_output=json_output,
        )
        raise typer.Exit(EXIT_BAD_REQUEST)

    # A prompt would corrupt JSON output
    confirm = _decline_all if json_output and not yes else make_confirm(auto_confirm=yes)

    config = load_config(timeout)
    orchestrator = build_orchestrator(
        config, confirm=confirm, dry_run=dry_run, json_output=json_output
    )

    with with_context(SessionContext(command="fix")), cancel_on_interrupt(orchestrator):
        try:
            if all_remediations:
                fix_report = orchestrator.fix_all()
            else:
                fix_report = orchestrator.fix(identifiers or [])
        except UnknownRemediationError as e:
            output_error(
                e.message,
                error_code=e.kind.value,
                hints=["Run 'wsldoctor list' to see available remediations"],
                json_output=json_output,
                unknown=e.identifier,
            )
            raise typer.Exit(EXIT_BAD_REQUEST) from None

    if json_output:
        print_json(fix_report_to_dict(fix_report))
    elif not is_quiet() or fix_report.failed:
        get_renderer().render_fix(fix_report)

    raise typer.Exit(fix_report.exit_code)
