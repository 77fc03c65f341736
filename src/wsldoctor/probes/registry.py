"""Registry of environment probes.

Provides a central place to register probes and run them as one
diagnostic pass. create_default_probe_registry() returns a registry
with every built-in probe pre-registered.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from wsldoctor.core.errors import DuplicateIdentifierError
from wsldoctor.core.logging import get_logger
from wsldoctor.probes.base import Outcome, Probe, ProbeStatus

if TYPE_CHECKING:
    from wsldoctor.capabilities import Capabilities
    from wsldoctor.core.config import DoctorConfig

_logger = get_logger("probes.registry")

CancelCheck = Callable[[], bool]


@dataclass(frozen=True)
class ReportEntry:
    probe_id: str
    description: str
    outcome: Outcome


@dataclass
class Report:
    """Ordered probe outcomes from one diagnostic pass."""

    entries: list[ReportEntry] = field(default_factory=list)

    cancelled: bool = False
    """True if the pass stopped early; entries holds what was collected."""

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ReportEntry]:
        return iter(self.entries)

    def probe_ids(self) -> list[str]:
        return [e.probe_id for e in self.entries]

    def get(self, probe_id: str) -> Outcome | None:
        for entry in self.entries:
            if entry.probe_id == probe_id:
                return entry.outcome
        return None

    @property
    def worst_status(self) -> ProbeStatus:
        worst = ProbeStatus.OK
        for entry in self.entries:
            if entry.outcome.status.severity > worst.severity:
                worst = entry.outcome.status
        return worst

    @property
    def exit_code(self) -> int:
        """0 if all OK, 1 if any WARNING, 2 if any FAILED."""
        return self.worst_status.severity

    def merged(self, newer: Report) -> Report:
        """Copy of this report with outcomes replaced by those in ``newer``."""
        latest = {e.probe_id: e for e in newer}
        entries = [latest.pop(e.probe_id, e) for e in self.entries]
        entries.extend(latest.values())
        return Report(entries=entries, cancelled=self.cancelled)

    def counts(self) -> dict[ProbeStatus, int]:
        counts = {status: 0 for status in ProbeStatus}
        for entry in self.entries:
            counts[entry.outcome.status] += 1
        return counts


class ProbeRegistry:
    """Ordered collection of probes.

    Example:
        registry = ProbeRegistry()
        registry.register(DnsProbe(caps, config))

        report = registry.run_all()
        for entry in report:
            print(entry.probe_id, entry.outcome)
    """

    def __init__(self, probes: Iterable[Probe] = ()) -> None:
        self._probes: dict[str, Probe] = {}
        for probe in probes:
            self.register(probe)

    def register(self, probe: Probe) -> None:
        """Register a probe.

        Raises:
            DuplicateIdentifierError: If the identifier is already registered.
                The registry is left unchanged.
        """
        if probe.identifier in self._probes:
            raise DuplicateIdentifierError(probe.identifier, "Probe registry")
        self._probes[probe.identifier] = probe

    def get(self, identifier: str) -> Probe | None:
        return self._probes.get(identifier)

    def identifiers(self) -> list[str]:
        return list(self._probes)

    def all_probes(self) -> list[Probe]:
        return list(self._probes.values())

    def count(self) -> int:
        return len(self._probes)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._probes

    def run_all(self, should_cancel: CancelCheck | None = None) -> Report:
        """Run every probe in registration order.

        A probe that raises is recorded as a FAILED outcome; it never
        aborts the pass and never causes a later probe to be skipped.
        ``should_cancel`` is consulted between probes only.
        """
        return self._run(self.all_probes(), should_cancel)

    def run_selected(
        self,
        identifiers: Iterable[str],
        should_cancel: CancelCheck | None = None,
    ) -> Report:
        """Run the named probes, in registration order. Unknown ids are ignored."""
        wanted = set(identifiers)
        return self._run(
            [p for p in self._probes.values() if p.identifier in wanted],
            should_cancel,
        )

    def _run(self, probes: list[Probe], should_cancel: CancelCheck | None) -> Report:
        report = Report()
        for probe in probes:
            if should_cancel is not None and should_cancel():
                _logger.info("probes.cancelled", completed=len(report.entries))
                report.cancelled = True
                break
            outcome = run_probe(probe)
            report.entries.append(ReportEntry(probe.identifier, probe.description, outcome))
        return report


def run_probe(probe: Probe) -> Outcome:
    """Execute one probe, converting any fault into a FAILED outcome."""
    try:
        outcome = probe.execute()
    except Exception as e:
        _logger.warning(
            "probe.faulted",
            probe=probe.identifier,
            error_type=type(e).__name__,
            error=str(e),
        )
        return Outcome.from_error(e)
    _logger.debug("probe.completed", probe=probe.identifier, status=outcome.status.value)
    return outcome


def create_default_probe_registry(
    capabilities: Capabilities,
    config: DoctorConfig,
) -> ProbeRegistry:
    """Create a registry with all built-in probes.

    Order follows the diagnostic flow of a manual check: WSL itself,
    host resources, filesystem, network, the CLI tool, then services.
    """
    from wsldoctor.probes.cli_tool import (
        CliEnvironmentProbe,
        CliInstalledProbe,
        CliProcessesProbe,
        NodeProcessesProbe,
        NodeVersionProbe,
    )
    from wsldoctor.probes.environment import (
        DiskUsageProbe,
        FilesystemLocationProbe,
        MemoryProbe,
        WslConfigProbe,
        WslKernelProbe,
        WslVersionProbe,
        ZombieProcessProbe,
    )
    from wsldoctor.probes.network import (
        ApiReachabilityProbe,
        ConnectivityProbe,
        DnsProbe,
        ProxyProbe,
    )
    from wsldoctor.probes.services import ServiceActiveProbe

    registry = ProbeRegistry()
    for probe_cls in (
        WslKernelProbe,
        WslVersionProbe,
        WslConfigProbe,
        MemoryProbe,
        ZombieProcessProbe,
        FilesystemLocationProbe,
        DiskUsageProbe,
        DnsProbe,
        ConnectivityProbe,
        ApiReachabilityProbe,
        ProxyProbe,
        CliInstalledProbe,
        NodeVersionProbe,
        CliProcessesProbe,
        NodeProcessesProbe,
        CliEnvironmentProbe,
    ):
        registry.register(probe_cls(capabilities, config))

    for service in config.services.names:
        registry.register(ServiceActiveProbe(capabilities, config, service))

    return registry
