"""Base classes and protocols for remediations.

Defines the Remediation protocol and supporting types that all
concrete remediation implementations follow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from wsldoctor.core.errors import (
    DoctorError,
    ErrorKind,
    InsufficientPrivilegeError,
    detail_of,
    kind_of,
)
from wsldoctor.core.logging import get_logger

if TYPE_CHECKING:
    from wsldoctor.capabilities import Capabilities
    from wsldoctor.core.config import DoctorConfig

_logger = get_logger("remediations")


@dataclass
class RemediationResult:
    """Result of applying a remediation.

    Tracks what was done so the report can point at modified files
    and their backups.
    """

    success: bool
    """Whether the remediation was applied successfully."""

    message: str
    """Human-readable description of what happened."""

    error_detail: str | None = None
    """Captured fault detail when success is False."""

    error_kind: ErrorKind | None = None
    """Classification of the fault when success is False."""

    modified_files: list[Path] = field(default_factory=list)
    """Files that were rewritten or removed."""

    backup_paths: list[Path] = field(default_factory=list)
    """Backups of the previous versions of modified files."""

    terminated_pids: list[int] = field(default_factory=list)
    """Processes that were terminated."""

    @classmethod
    def from_error(cls, exc: BaseException) -> RemediationResult:
        kind = kind_of(exc)
        message = exc.message if isinstance(exc, DoctorError) else f"Failed ({kind.value})"
        return cls(success=False, message=message, error_detail=detail_of(exc), error_kind=kind)

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return f"[{status}] {self.message}"


class Remediation(Protocol):
    """Protocol for a named corrective action.

    Each remediation must implement:
    - identifier: Unique id selectable on the command line
    - description: Human-readable explanation
    - requires_elevated_privilege: Must run as root
    - is_destructive: Needs explicit confirmation before running
    - related_probe_identifiers: Probes re-run to confirm the fix
    - preview(): Describe what would change
    - apply(): Make the change
    """

    @property
    def identifier(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def requires_elevated_privilege(self) -> bool: ...

    @property
    def is_destructive(self) -> bool: ...

    @property
    def related_probe_identifiers(self) -> frozenset[str]: ...

    def preview(self) -> str: ...

    def apply(self) -> RemediationResult:
        """Apply the remediation.

        Raises InsufficientPrivilegeError before any side effect when
        elevation is required and missing. Other faults may propagate;
        the orchestrator records them as failed results.
        """
        ...


class BaseRemediation:
    """Base class providing the privilege guard and common wiring.

    Subclasses set the class attributes and implement run(). apply()
    checks privilege first, so run() is never reached without it.
    """

    identifier: str = ""
    description: str = ""
    requires_elevated_privilege: bool = False
    is_destructive: bool = False
    related_probe_identifiers: frozenset[str] = frozenset()

    def __init__(self, capabilities: Capabilities, config: DoctorConfig) -> None:
        self.caps = capabilities
        self.config = config

    @property
    def timeout(self) -> float:
        return self.config.timeouts.remediation_seconds

    def preview(self) -> str:
        return self.description

    def apply(self) -> RemediationResult:
        if self.requires_elevated_privilege and not self.caps.privilege.is_elevated():
            raise InsufficientPrivilegeError(
                f"'{self.identifier}' requires root",
                detail="Re-run with sudo",
            )
        _logger.info("remediation.applying", remediation=self.identifier)
        return self.run()

    def run(self) -> RemediationResult:
        """Override in subclass."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier!r})"
