"""Report formatting and output.

Renders diagnose reports, fix reports and the remediation catalog,
either to the terminal with Rich or as JSON-ready dictionaries for
tooling.
"""

from collections.abc import Iterable
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from wsldoctor.orchestrator import FixReport, ProbeComparison
from wsldoctor.probes.base import Outcome, Probe, ProbeStatus
from wsldoctor.probes.registry import Report
from wsldoctor.remediations.base import Remediation, RemediationResult


class ReportRenderer:
    """Formats and outputs orchestrator results on a Rich console."""

    STATUS_COLORS = {
        ProbeStatus.OK: "green",
        ProbeStatus.WARNING: "yellow",
        ProbeStatus.FAILED: "red",
    }

    STATUS_ICONS = {
        ProbeStatus.OK: "✓",
        ProbeStatus.WARNING: "!",
        ProbeStatus.FAILED: "✗",
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def _status_cell(self, outcome: Outcome | None) -> str:
        if outcome is None:
            return "[dim]-[/dim]"
        color = self.STATUS_COLORS[outcome.status]
        icon = self.STATUS_ICONS[outcome.status]
        return f"[{color}]{icon} {outcome.status.value.upper()}[/{color}]"

    def render_report(self, report: Report, verbose: bool = False) -> None:
        """Print a diagnose report.

        Args:
            report: Outcomes from one diagnostic pass.
            verbose: Show details for passing probes too.
        """
        table = Table(title="Environment diagnostics", show_lines=False)
        table.add_column("Status", no_wrap=True)
        table.add_column("Probe", style="cyan", no_wrap=True)
        table.add_column("Result")
        table.add_column("Value", justify="right", style="dim")

        for entry in report:
            table.add_row(
                self._status_cell(entry.outcome),
                entry.probe_id,
                escape(entry.outcome.message),
                entry.outcome.format_metric(),
            )
        self.console.print(table)

        details = [
            e for e in report
            if e.outcome.detail and (verbose or e.outcome.status != ProbeStatus.OK)
        ]
        if details:
            self.console.print("\n[bold]Details:[/bold]")
            for entry in details:
                color = self.STATUS_COLORS[entry.outcome.status]
                self.console.print(f"  [{color}]{entry.probe_id}[/{color}] {escape(entry.description)}")
                self.console.print(f"         [dim]{escape(entry.outcome.detail)}[/dim]")

        counts = report.counts()
        self.console.print()
        summary = (
            f"[green]{counts[ProbeStatus.OK]} ok[/green], "
            f"[yellow]{counts[ProbeStatus.WARNING]} warning[/yellow], "
            f"[red]{counts[ProbeStatus.FAILED]} failed[/red]"
        )
        self.console.print(f"Summary: {summary}")
        if report.cancelled:
            self.console.print("[yellow]Cancelled: remaining probes were not run[/yellow]")

        worst = report.worst_status
        if worst == ProbeStatus.OK:
            self.console.print(Panel("[green]✓ No problems detected[/green]", border_style="green"))
        elif worst == ProbeStatus.FAILED:
            self.console.print("\n[dim]See 'wsldoctor list' for available fixes.[/dim]")

    def _result_line(self, result: RemediationResult) -> str:
        if result.success:
            return f"[green]✓[/green] {escape(result.message)}"
        return f"[red]✗[/red] {escape(result.message)}"

    def render_fix(self, fix: FixReport) -> None:
        """Print what a fix request did, with before/after probe status."""
        self.console.print()

        if fix.declined:
            self.console.print("[yellow bold]Declined:[/yellow bold]")
            for remediation_id in fix.declined:
                self.console.print(f"  - {remediation_id}")

        if fix.previews:
            self.console.print("[blue bold]Dry run, nothing was changed:[/blue bold]")
            for remediation_id, preview in fix.previews:
                self.console.print(f"  [cyan]{remediation_id}[/cyan] would {escape(preview)}")

        if fix.attempts:
            self.console.print("[bold]Remediations applied:[/bold]")
            for attempt in fix.attempts:
                result = attempt.result
                self.console.print(f"  [cyan]{attempt.remediation_id}[/cyan] {self._result_line(result)}")
                if not result.success:
                    self.console.print(f"         [dim]{escape(attempt.description)}[/dim]")
                    if result.error_detail:
                        self.console.print(f"         [dim]{escape(result.error_detail)}[/dim]")
                for backup in result.backup_paths:
                    self.console.print(f"         [dim]backup: {escape(str(backup))}[/dim]")

        if fix.comparisons:
            self.console.print()
            self.console.print(self._comparison_table(fix.comparisons))

        if fix.cancelled:
            self.console.print("[yellow]Cancelled: remaining remediations were not run[/yellow]")

        if not fix.attempts and not fix.previews:
            self.console.print("[dim]No remediations were applied.[/dim]")
            return

        failed = len(fix.failed)
        if fix.dry_run:
            return
        if failed:
            self.console.print(f"\n[bold red]{failed} of {len(fix.attempts)} remediation(s) failed[/bold red]")
        else:
            self.console.print(f"\n[bold green]{len(fix.attempts)} remediation(s) applied[/bold green]")

    def _comparison_table(self, comparisons: list[ProbeComparison]) -> Table:
        table = Table(title="Re-check")
        table.add_column("Probe", style="cyan", no_wrap=True)
        table.add_column("Before", no_wrap=True)
        table.add_column("After", no_wrap=True)
        table.add_column("Change", no_wrap=True)
        table.add_column("Result")
        for comparison in comparisons:
            after = comparison.after
            table.add_row(
                comparison.probe_id,
                self._status_cell(comparison.before),
                self._status_cell(after),
                _change_cell(comparison),
                escape(after.message) if after else "[dim]not re-checked[/dim]",
            )
        return table

    def render_probes(self, probes: Iterable[Probe]) -> None:
        table = Table(title="Probes")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Checks")
        for probe in probes:
            table.add_row(probe.identifier, escape(probe.description))
        self.console.print(table)

    def render_catalog(self, remediations: Iterable[Remediation]) -> None:
        table = Table(title="Available remediations")
        table.add_column("Id", style="cyan", no_wrap=True)
        table.add_column("Description")
        table.add_column("Root", justify="center")
        table.add_column("Destructive", justify="center")
        table.add_column("Re-checks", style="dim")
        for remediation in remediations:
            table.add_row(
                remediation.identifier,
                escape(remediation.description),
                "[yellow]yes[/yellow]" if remediation.requires_elevated_privilege else "",
                "[red]yes[/red]" if remediation.is_destructive else "",
                ", ".join(sorted(remediation.related_probe_identifiers)),
            )
        self.console.print(table)


def _change_cell(comparison: ProbeComparison) -> str:
    if comparison.regressed:
        return "[red]regressed[/red]"
    if comparison.improved:
        return "[green]improved[/green]"
    return ""


def outcome_to_dict(outcome: Outcome | None) -> dict[str, Any] | None:
    if outcome is None:
        return None
    result: dict[str, Any] = {
        "status": outcome.status.value,
        "message": outcome.message,
    }
    if outcome.metric is not None:
        result["metric"] = outcome.metric
        result["metric_unit"] = outcome.metric_unit
    if outcome.detail:
        result["detail"] = outcome.detail
    if outcome.error_kind is not None:
        result["error_kind"] = outcome.error_kind.value
    return result


def report_to_dict(report: Report) -> dict[str, Any]:
    counts = report.counts()
    return {
        "status": report.worst_status.value,
        "exit_code": report.exit_code,
        "cancelled": report.cancelled,
        "counts": {status.value: count for status, count in counts.items()},
        "probes": [
            {"id": e.probe_id, "description": e.description, **(outcome_to_dict(e.outcome) or {})}
            for e in report
        ],
    }


def result_to_dict(result: RemediationResult) -> dict[str, Any]:
    data: dict[str, Any] = {"success": result.success, "message": result.message}
    if result.error_kind is not None:
        data["error_kind"] = result.error_kind.value
    if result.error_detail:
        data["error_detail"] = result.error_detail
    if result.modified_files:
        data["modified_files"] = [str(p) for p in result.modified_files]
    if result.backup_paths:
        data["backup_paths"] = [str(p) for p in result.backup_paths]
    if result.terminated_pids:
        data["terminated_pids"] = result.terminated_pids
    return data


def fix_report_to_dict(fix: FixReport) -> dict[str, Any]:
    return {
        "exit_code": fix.exit_code,
        "dry_run": fix.dry_run,
        "cancelled": fix.cancelled,
        "selected": fix.selected,
        "declined": fix.declined,
        "previews": [{"id": rid, "preview": text} for rid, text in fix.previews],
        "attempts": [
            {"id": a.remediation_id, "description": a.description, **result_to_dict(a.result)}
            for a in fix.attempts
        ],
        "comparisons": [
            {
                "probe": c.probe_id,
                "before": outcome_to_dict(c.before),
                "after": outcome_to_dict(c.after),
                "improved": c.improved,
                "regressed": c.regressed,
            }
            for c in fix.comparisons
        ],
    }


def catalog_to_dict(remediations: Iterable[Remediation]) -> list[dict[str, Any]]:
    return [
        {
            "id": r.identifier,
            "description": r.description,
            "requires_elevated_privilege": r.requires_elevated_privilege,
            "is_destructive": r.is_destructive,
            "related_probes": sorted(r.related_probe_identifiers),
        }
        for r in remediations
    ]


def probes_to_dict(probes: Iterable[Probe]) -> list[dict[str, Any]]:
    return [{"id": p.identifier, "description": p.description} for p in probes]
