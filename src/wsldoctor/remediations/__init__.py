"""Remediations: named corrective actions.

Public exports:
- Remediation: Protocol for corrective actions
- BaseRemediation: Base class with the privilege guard
- RemediationResult: Result of applying a remediation
- RemediationCatalog: Identifier -> remediation map bound to a probe registry
- create_default_catalog: Factory for built-in remediations
"""

from wsldoctor.remediations.base import BaseRemediation, Remediation, RemediationResult
from wsldoctor.remediations.catalog import (
    CatalogListing,
    RemediationCatalog,
    create_default_catalog,
)

__all__ = [
    "BaseRemediation",
    "CatalogListing",
    "Remediation",
    "RemediationCatalog",
    "RemediationResult",
    "create_default_catalog",
]
