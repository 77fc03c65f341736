"""Core domain models: errors, logging and configuration."""

from wsldoctor.core.config import DoctorConfig
from wsldoctor.core.errors import (
    ConfigWriteFailedError,
    DanglingProbeReferenceError,
    DoctorError,
    DuplicateIdentifierError,
    ErrorKind,
    ExternalCallFailedError,
    InsufficientPrivilegeError,
    OperationTimeoutError,
    UnknownRemediationError,
)

__all__ = [
    "ConfigWriteFailedError",
    "DanglingProbeReferenceError",
    "DoctorConfig",
    "DoctorError",
    "DuplicateIdentifierError",
    "ErrorKind",
    "ExternalCallFailedError",
    "InsufficientPrivilegeError",
    "OperationTimeoutError",
    "UnknownRemediationError",
]
