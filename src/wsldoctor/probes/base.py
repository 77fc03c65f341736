"""Base classes and protocols for probes.

Defines the Probe protocol and supporting types that all concrete
probe implementations follow.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from wsldoctor.core.errors import ErrorKind, detail_of, kind_of

if TYPE_CHECKING:
    from wsldoctor.capabilities import Capabilities
    from wsldoctor.core.config import DoctorConfig


class ProbeStatus(str, Enum):
    """Status of a single environment check.

    OK: Condition is healthy
    WARNING: Degraded, may cause slowness or hangs
    FAILED: Broken, or the check itself could not run
    """

    OK = "ok"
    WARNING = "warning"
    FAILED = "failed"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {ProbeStatus.OK: 0, ProbeStatus.WARNING: 1, ProbeStatus.FAILED: 2}


@dataclass(frozen=True)
class Outcome:
    """Result of running a probe. Produced fresh on every run."""

    status: ProbeStatus
    """Health of the checked condition."""

    message: str
    """Human-readable summary."""

    metric: float | None = None
    """Optional measured value, e.g. available memory in MB."""

    metric_unit: str | None = None
    """Unit of ``metric`` (MB, %, count, ...)."""

    detail: str | None = None
    """Extra diagnostic text, e.g. the captured fault or a suggested fix."""

    error_kind: ErrorKind | None = None
    """Set when the probe itself faulted."""

    @classmethod
    def ok(cls, message: str, **kw: object) -> Outcome:
        return cls(ProbeStatus.OK, message, **kw)  # type: ignore[arg-type]

    @classmethod
    def warning(cls, message: str, **kw: object) -> Outcome:
        return cls(ProbeStatus.WARNING, message, **kw)  # type: ignore[arg-type]

    @classmethod
    def failed(cls, message: str, **kw: object) -> Outcome:
        return cls(ProbeStatus.FAILED, message, **kw)  # type: ignore[arg-type]

    @classmethod
    def from_error(cls, exc: BaseException, message: str | None = None) -> Outcome:
        """FAILED outcome capturing a fault raised while probing."""
        kind = kind_of(exc)
        return cls(
            status=ProbeStatus.FAILED,
            message=message or f"Probe could not run ({kind.value})",
            detail=detail_of(exc),
            error_kind=kind,
        )

    def format_metric(self) -> str:
        if self.metric is None:
            return ""
        value = f"{self.metric:.1f}".rstrip("0").rstrip(".")
        if not self.metric_unit:
            return value
        sep = "" if self.metric_unit == "%" else " "
        return f"{value}{sep}{self.metric_unit}"

    def __str__(self) -> str:
        return f"[{self.status.value}] {self.message}"


class Probe(Protocol):
    """Protocol for a read-only check of one environment condition.

    Each probe must implement:
    - identifier: Unique string id (e.g. "net.dns")
    - description: Human-readable explanation of what is checked
    - execute(): Inspect the environment and return an Outcome
    """

    @property
    def identifier(self) -> str: ...

    @property
    def description(self) -> str: ...

    def execute(self) -> Outcome:
        """Run the check. May raise; the registry captures faults."""
        ...


class BaseProbe:
    """Base class holding the capabilities and configuration a probe reads.

    Subclasses set ``identifier`` and ``description`` as class attributes
    and implement execute().
    """

    identifier: str = ""
    description: str = ""

    def __init__(self, capabilities: Capabilities, config: DoctorConfig) -> None:
        self.caps = capabilities
        self.config = config

    @property
    def timeout(self) -> float:
        return self.config.timeouts.probe_seconds

    def execute(self) -> Outcome:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier!r})"
