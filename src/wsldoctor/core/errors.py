"""Exception hierarchy for wsl-doctor.

All doctor-specific exceptions inherit from DoctorError, enabling callers
to catch broad (DoctorError) or narrow (e.g., InsufficientPrivilegeError).
Each exception carries an ErrorKind so that faults recovered into an
Outcome or RemediationResult keep a machine-readable classification.

Construction errors (DuplicateIdentifierError, DanglingProbeReferenceError)
are fatal at startup. Everything else is raised from inside a single probe
or remediation and is converted into a value at the registry/orchestrator
boundary.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable classification of a fault."""

    DUPLICATE_IDENTIFIER = "duplicate_identifier"
    DANGLING_PROBE_REFERENCE = "dangling_probe_reference"
    UNKNOWN_REMEDIATION = "unknown_remediation"
    INSUFFICIENT_PRIVILEGE = "insufficient_privilege"
    TIMEOUT = "timeout"
    EXTERNAL_CALL_FAILED = "external_call_failed"
    CONFIG_WRITE_FAILED = "config_write_failed"


class DoctorError(Exception):
    """Base exception for all wsl-doctor errors."""

    kind: ErrorKind = ErrorKind.EXTERNAL_CALL_FAILED

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class DuplicateIdentifierError(DoctorError):
    """Raised when a probe or remediation identifier is registered twice."""

    kind = ErrorKind.DUPLICATE_IDENTIFIER

    def __init__(self, identifier: str, registry: str) -> None:
        super().__init__(f"{registry} already contains '{identifier}'")
        self.identifier = identifier


class DanglingProbeReferenceError(DoctorError):
    """Raised when a remediation references a probe that is not registered."""

    kind = ErrorKind.DANGLING_PROBE_REFERENCE

    def __init__(self, remediation_id: str, missing: list[str]) -> None:
        super().__init__(
            f"Remediation '{remediation_id}' references unknown probe(s): "
            + ", ".join(sorted(missing))
        )
        self.remediation_id = remediation_id
        self.missing = sorted(missing)


class UnknownRemediationError(DoctorError):
    """Raised when a remediation identifier is not in the catalog."""

    kind = ErrorKind.UNKNOWN_REMEDIATION

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Unknown remediation '{identifier}'")
        self.identifier = identifier


class InsufficientPrivilegeError(DoctorError):
    """Raised when a remediation needs root and the process is not elevated."""

    kind = ErrorKind.INSUFFICIENT_PRIVILEGE


class OperationTimeoutError(DoctorError):
    """Raised when an external call exceeds its timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Timed out after {timeout_seconds:g}s: {operation}",
            detail=f"timeout={timeout_seconds:g}s",
        )
        self.operation = operation
        self.timeout_seconds = timeout_seconds


class ExternalCallFailedError(DoctorError):
    """Wraps any fault raised by an external collaborator.

    Examples: a command exits non-zero, a binary is missing, psutil
    denies access to a process.
    """

    kind = ErrorKind.EXTERNAL_CALL_FAILED


class PartialTerminationError(ExternalCallFailedError):
    """Raised when some of the requested processes could not be terminated.

    The others were signalled and reaped; they are listed in terminated_pids.
    """

    def __init__(self, terminated_pids: list[int], failed_pids: list[int], detail: str) -> None:
        super().__init__(
            "Could not terminate pid(s) " + ", ".join(str(p) for p in failed_pids),
            detail=detail,
        )
        self.terminated_pids = terminated_pids
        self.failed_pids = failed_pids


class ConfigWriteFailedError(DoctorError):
    """Raised when a configuration file rewrite cannot be completed.

    The previous version has been restored from its backup by the time
    this is raised.
    """

    kind = ErrorKind.CONFIG_WRITE_FAILED


class InvalidStateTransitionError(RuntimeError):
    """Raised when the orchestrator is driven through an illegal transition.

    This is a programming error, not an environment fault, so it does not
    inherit from DoctorError.
    """


def kind_of(exc: BaseException) -> ErrorKind:
    """Classify an arbitrary exception."""
    if isinstance(exc, DoctorError):
        return exc.kind
    if isinstance(exc, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.EXTERNAL_CALL_FAILED


def detail_of(exc: BaseException) -> str:
    """Human-readable detail string for an arbitrary exception."""
    if isinstance(exc, DoctorError) and exc.detail:
        return f"{exc.message} ({exc.detail})"
    text = str(exc)
    return text if text else type(exc).__name__
