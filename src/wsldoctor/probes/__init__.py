"""Environment probes.

Public exports:
- Probe: Protocol for read-only environment checks
- BaseProbe: Base class holding capabilities and configuration
- ProbeStatus: OK, WARNING or FAILED
- Outcome: Result of running a probe
- ProbeRegistry: Ordered probe collection that runs diagnostic passes
- Report, ReportEntry: Ordered outcomes of one pass
- create_default_probe_registry: Factory for built-in probes
"""

from wsldoctor.probes.base import BaseProbe, Outcome, Probe, ProbeStatus
from wsldoctor.probes.registry import (
    ProbeRegistry,
    Report,
    ReportEntry,
    create_default_probe_registry,
    run_probe,
)

__all__ = [
    "BaseProbe",
    "Outcome",
    "Probe",
    "ProbeRegistry",
    "ProbeStatus",
    "Report",
    "ReportEntry",
    "create_default_probe_registry",
    "run_probe",
]
