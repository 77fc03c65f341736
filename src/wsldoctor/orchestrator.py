"""Diagnose-and-fix orchestrator.

Drives the two user-facing flows:
1. diagnose: run every probe and return the report
2. fix: resolve the selected remediations, confirm the destructive ones,
   apply them in selection order and re-run the probes they relate to

The orchestrator is a small state machine. Each phase change goes through
_transition(), which rejects moves the flow does not allow.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum

from wsldoctor.core.errors import ErrorKind, InvalidStateTransitionError
from wsldoctor.core.logging import get_logger
from wsldoctor.probes.base import Outcome
from wsldoctor.probes.registry import ProbeRegistry, Report
from wsldoctor.remediations.base import Remediation, RemediationResult
from wsldoctor.remediations.catalog import RemediationCatalog

_logger = get_logger("orchestrator")

ConfirmCallback = Callable[[Remediation], bool]


class OrchestratorState(str, Enum):
    IDLE = "idle"
    DIAGNOSING = "diagnosing"
    REPORTING = "reporting"
    SELECTING_FIX = "selecting_fix"
    CONFIRMING_DESTRUCTIVE = "confirming_destructive"
    APPLYING = "applying"


_TRANSITIONS: dict[OrchestratorState, frozenset[OrchestratorState]] = {
    OrchestratorState.IDLE: frozenset({OrchestratorState.DIAGNOSING}),
    OrchestratorState.DIAGNOSING: frozenset({OrchestratorState.REPORTING}),
    OrchestratorState.REPORTING: frozenset(
        {OrchestratorState.SELECTING_FIX, OrchestratorState.IDLE}
    ),
    OrchestratorState.SELECTING_FIX: frozenset(
        {OrchestratorState.CONFIRMING_DESTRUCTIVE, OrchestratorState.IDLE}
    ),
    OrchestratorState.CONFIRMING_DESTRUCTIVE: frozenset({OrchestratorState.APPLYING}),
    OrchestratorState.APPLYING: frozenset({OrchestratorState.REPORTING}),
}


@dataclass(frozen=True)
class RemediationAttempt:
    remediation_id: str
    description: str
    result: RemediationResult


@dataclass(frozen=True)
class ProbeComparison:
    """Outcome of one probe before and after the fixes ran."""

    probe_id: str
    description: str
    before: Outcome | None
    after: Outcome | None

    @property
    def improved(self) -> bool:
        if self.before is None or self.after is None:
            return False
        return self.after.status.severity < self.before.status.severity

    @property
    def regressed(self) -> bool:
        if self.before is None or self.after is None:
            return False
        return self.after.status.severity > self.before.status.severity


@dataclass
class FixReport:
    """Everything that happened during one fix request."""

    selected: list[str] = field(default_factory=list)
    """Remediation ids in the order they were requested."""

    attempts: list[RemediationAttempt] = field(default_factory=list)
    """Remediations that were applied, in application order."""

    declined: list[str] = field(default_factory=list)
    """Destructive remediations the user did not confirm."""

    previews: list[tuple[str, str]] = field(default_factory=list)
    """(remediation_id, preview) for each remediation skipped by a dry run."""

    comparisons: list[ProbeComparison] = field(default_factory=list)
    """Before/after outcomes of the probes related to attempted remediations."""

    dry_run: bool = False
    cancelled: bool = False

    @property
    def succeeded(self) -> list[RemediationAttempt]:
        return [a for a in self.attempts if a.result.success]

    @property
    def failed(self) -> list[RemediationAttempt]:
        return [a for a in self.attempts if not a.result.success]

    @property
    def exit_code(self) -> int:
        """0 if every attempt succeeded, 3 on missing privilege, 1 on any other failure."""
        failed = self.failed
        if any(a.result.error_kind == ErrorKind.INSUFFICIENT_PRIVILEGE for a in failed):
            return 3
        return 1 if failed else 0


@dataclass
class Session:
    """In-memory state of one orchestrator run. Nothing is persisted."""

    report: Report | None = None
    selection: list[str] = field(default_factory=list)
    declined: list[str] = field(default_factory=list)
    attempts: list[RemediationAttempt] = field(default_factory=list)
    comparisons: list[ProbeComparison] = field(default_factory=list)
    transitions: list[tuple[OrchestratorState, OrchestratorState]] = field(
        default_factory=list
    )


class Orchestrator:
    """Runs diagnostics and applies remediations.

    Example:
        registry = create_default_probe_registry(caps, config)
        catalog = create_default_catalog(registry, caps, config)
        orchestrator = Orchestrator(registry, catalog, confirm=lambda r: True)

        report = orchestrator.diagnose()
        fix_report = orchestrator.fix(["dns.rewrite", "cli.kill"])
    """

    def __init__(
        self,
        registry: ProbeRegistry,
        catalog: RemediationCatalog,
        confirm: ConfirmCallback,
        dry_run: bool = False,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            registry: Probes to run.
            catalog: Remediations to select from; built against ``registry``.
            confirm: Called once per selected destructive remediation; a
                False return skips that remediation.
            dry_run: Preview remediations instead of applying them.
        """
        self.registry = registry
        self.catalog = catalog
        self.confirm = confirm
        self.dry_run = dry_run
        self.session = Session()
        self._state = OrchestratorState.IDLE
        self._cancel = threading.Event()

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Request cancellation.

        Honoured between probe and remediation invocations; a running
        external call is never interrupted.
        """
        if not self._cancel.is_set():
            _logger.info("orchestrator.cancel_requested", state=self._state.value)
        self._cancel.set()

    def _transition(self, target: OrchestratorState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise InvalidStateTransitionError(
                f"Cannot move from {self._state.value} to {target.value}"
            )
        _logger.debug("orchestrator.transition", source=self._state.value, target=target.value)
        self.session.transitions.append((self._state, target))
        self._state = target

    def finish(self) -> None:
        """Return to IDLE once the caller is done with the last report."""
        if self._state == OrchestratorState.REPORTING:
            self._transition(OrchestratorState.IDLE)

    def diagnose(self) -> Report:
        """Run every registered probe and return the report."""
        self.finish()
        self._transition(OrchestratorState.DIAGNOSING)
        report = self.registry.run_all(should_cancel=self._cancel.is_set)
        self.session.report = report
        self._transition(OrchestratorState.REPORTING)
        _logger.info(
            "orchestrator.diagnosed",
            probes=len(report),
            worst=report.worst_status.value,
            cancelled=report.cancelled,
        )
        return report

    def fix_all(self) -> FixReport:
        """Select every catalog entry, in catalog order."""
        return self.fix(self.catalog.identifiers())

    def fix(self, identifiers: Iterable[str]) -> FixReport:
        """Apply the selected remediations in the given order.

        Raises:
            UnknownRemediationError: If any id is not in the catalog.
                Nothing has run when this is raised.
        """
        selection = self._resolve(identifiers)
        fix_report = FixReport(
            selected=[r.identifier for r in selection],
            dry_run=self.dry_run,
        )

        related = _related_probe_ids(selection)
        before = self._capture_before(related)

        self._transition(OrchestratorState.SELECTING_FIX)
        self.session.selection = list(fix_report.selected)

        self._transition(OrchestratorState.CONFIRMING_DESTRUCTIVE)
        if self._cancel.is_set():
            _logger.info("remediations.cancelled", completed=0)
            fix_report.cancelled = True
            confirmed: list[Remediation] = []
        else:
            confirmed = self._confirm_destructive(selection, fix_report)

        self._transition(OrchestratorState.APPLYING)
        attempted = self._apply_all(confirmed, fix_report)

        self._transition(OrchestratorState.REPORTING)
        if attempted and not self.dry_run and not fix_report.cancelled:
            fix_report.comparisons = self._recheck(_related_probe_ids(attempted), before)
        elif attempted:
            # nothing re-checked these changes, so the old report is stale
            self.session.report = None

        self.session.declined = list(fix_report.declined)
        self.session.attempts = list(fix_report.attempts)
        self.session.comparisons = list(fix_report.comparisons)
        _logger.info(
            "orchestrator.fixed",
            attempted=len(fix_report.attempts),
            failed=len(fix_report.failed),
            declined=len(fix_report.declined),
            cancelled=fix_report.cancelled,
        )
        return fix_report

    def _resolve(self, identifiers: Iterable[str]) -> list[Remediation]:
        selection: list[Remediation] = []
        seen: set[str] = set()
        for identifier in identifiers:
            if identifier in seen:
                continue
            seen.add(identifier)
            selection.append(self.catalog.get(identifier))
        return selection

    def _capture_before(self, probe_ids: set[str]) -> dict[str, Outcome]:
        """Outcomes of the related probes before anything is changed.

        Taken from the last report where possible; probes it does not cover
        are run now. Re-checks after a fix are merged into that report, so a
        second fix in the same session starts from the current state.
        """
        before: dict[str, Outcome] = {}
        last = self.session.report if self._state == OrchestratorState.REPORTING else None
        if last is not None:
            for probe_id in probe_ids:
                outcome = last.get(probe_id)
                if outcome is not None:
                    before[probe_id] = outcome

        missing = probe_ids - before.keys()
        if missing or last is None:
            self.finish()
            self._transition(OrchestratorState.DIAGNOSING)
            report = self.registry.run_selected(missing, should_cancel=self._cancel.is_set)
            before.update((e.probe_id, e.outcome) for e in report)
            self._transition(OrchestratorState.REPORTING)
        return before

    def _confirm_destructive(
        self, selection: list[Remediation], fix_report: FixReport
    ) -> list[Remediation]:
        confirmed: list[Remediation] = []
        for remediation in selection:
            if not remediation.is_destructive:
                confirmed.append(remediation)
                continue
            if self.confirm(remediation):
                confirmed.append(remediation)
            else:
                _logger.info("remediation.declined", remediation=remediation.identifier)
                fix_report.declined.append(remediation.identifier)
        return confirmed

    def _apply_all(self, confirmed: list[Remediation], fix_report: FixReport) -> list[Remediation]:
        attempted: list[Remediation] = []
        for remediation in confirmed:
            if self._cancel.is_set():
                _logger.info("remediations.cancelled", completed=len(attempted))
                fix_report.cancelled = True
                break
            if self.dry_run:
                fix_report.previews.append((remediation.identifier, remediation.preview()))
                continue
            result = apply_remediation(remediation)
            fix_report.attempts.append(
                RemediationAttempt(remediation.identifier, remediation.description, result)
            )
            attempted.append(remediation)
        return attempted

    def _recheck(self, probe_ids: set[str], before: dict[str, Outcome]) -> list[ProbeComparison]:
        after = self.registry.run_selected(probe_ids, should_cancel=self._cancel.is_set)
        if self.session.report is not None:
            self.session.report = self.session.report.merged(after)
        comparisons = []
        for probe_id in self.registry.identifiers():
            if probe_id not in probe_ids:
                continue
            probe = self.registry.get(probe_id)
            comparisons.append(
                ProbeComparison(
                    probe_id=probe_id,
                    description=probe.description if probe else "",
                    before=before.get(probe_id),
                    after=after.get(probe_id),
                )
            )
        return comparisons


def apply_remediation(remediation: Remediation) -> RemediationResult:
    """Apply one remediation, converting any fault into a failed result."""
    try:
        result = remediation.apply()
    except Exception as e:
        _logger.warning(
            "remediation.failed",
            remediation=remediation.identifier,
            error_type=type(e).__name__,
            error=str(e),
        )
        return RemediationResult.from_error(e)

    if result.success:
        _logger.info("remediation.applied", remediation=remediation.identifier)
    else:
        _logger.warning(
            "remediation.failed",
            remediation=remediation.identifier,
            message=result.message,
        )
    return result


def _related_probe_ids(remediations: Iterable[Remediation]) -> set[str]:
    ids: set[str] = set()
    for remediation in remediations:
        ids.update(remediation.related_probe_identifiers)
    return ids


__all__ = [
    "ConfirmCallback",
    "FixReport",
    "Orchestrator",
    "OrchestratorState",
    "ProbeComparison",
    "RemediationAttempt",
    "Session",
    "apply_remediation",
]
