"""Catalog of available remediations.

Maps the identifiers users select on the command line to remediations,
and guarantees at registration time that every remediation only refers
to probes the configured registry knows about.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from typing import TYPE_CHECKING

from wsldoctor.core.errors import (
    DanglingProbeReferenceError,
    DuplicateIdentifierError,
    UnknownRemediationError,
)

if TYPE_CHECKING:
    from wsldoctor.capabilities import Capabilities
    from wsldoctor.core.config import DoctorConfig
    from wsldoctor.probes.registry import ProbeRegistry
    from wsldoctor.remediations.base import Remediation


class CatalogListing:
    """Lazy, restartable view of a catalog in registration order.

    Each iteration walks the catalog afresh, so a listing taken before
    a registration also sees the new entry.
    """

    def __init__(self, source: Sequence[Remediation]) -> None:
        self._source = source

    def __iter__(self) -> Iterator[Remediation]:
        for remediation in self._source:
            yield remediation

    def __len__(self) -> int:
        return len(self._source)


class RemediationCatalog:
    """Registry of remediations bound to a probe registry.

    Example:
        catalog = RemediationCatalog(probe_registry)
        catalog.register(RewriteResolvConfRemediation(caps, config))

        remediation = catalog.get("dns.rewrite")
        for remediation in catalog.list():
            print(remediation.identifier)
    """

    def __init__(self, probes: ProbeRegistry) -> None:
        self._probes = probes
        self._remediations: list[Remediation] = []
        self._by_id: dict[str, Remediation] = {}

    def _validate(self, remediation: Remediation, pending: Iterable[str] = ()) -> None:
        if remediation.identifier in self._by_id or remediation.identifier in pending:
            raise DuplicateIdentifierError(remediation.identifier, "Remediation catalog")
        missing = [
            probe_id
            for probe_id in remediation.related_probe_identifiers
            if probe_id not in self._probes
        ]
        if missing:
            raise DanglingProbeReferenceError(remediation.identifier, missing)

    def register(self, remediation: Remediation) -> None:
        """Register a remediation.

        Raises:
            DuplicateIdentifierError: If the identifier is taken.
            DanglingProbeReferenceError: If a related probe id is unknown.
        """
        self._validate(remediation)
        self._remediations.append(remediation)
        self._by_id[remediation.identifier] = remediation

    def register_all(self, remediations: Iterable[Remediation]) -> None:
        """Register several remediations, all or nothing."""
        batch = list(remediations)
        seen: list[str] = []
        for remediation in batch:
            self._validate(remediation, seen)
            seen.append(remediation.identifier)
        for remediation in batch:
            self._remediations.append(remediation)
            self._by_id[remediation.identifier] = remediation

    def get(self, identifier: str) -> Remediation:
        """Look up a remediation.

        Raises:
            UnknownRemediationError: If no remediation has this identifier.
        """
        try:
            return self._by_id[identifier]
        except KeyError:
            raise UnknownRemediationError(identifier) from None

    def list(self) -> CatalogListing:
        return CatalogListing(self._remediations)

    def identifiers(self) -> list[str]:
        return [r.identifier for r in self._remediations]

    def count(self) -> int:
        return len(self._remediations)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._by_id


def create_default_catalog(
    probes: ProbeRegistry,
    capabilities: Capabilities,
    config: DoctorConfig,
) -> RemediationCatalog:
    """Create a catalog with all built-in remediations.

    Registered all-or-nothing: a dangling probe reference or duplicate id
    raises before anything is registered.
    """
    from wsldoctor.remediations.cache import (
        CleanNpmCacheRemediation,
        ClearCliCacheRemediation,
        CleanStaleTempRemediation,
        DropPageCacheRemediation,
    )
    from wsldoctor.remediations.config_files import (
        AppendShellEnvRemediation,
        ResetCliConfigRemediation,
        WriteWslConfigRemediation,
    )
    from wsldoctor.remediations.install import ReinstallCliRemediation
    from wsldoctor.remediations.network import RewriteResolvConfRemediation
    from wsldoctor.remediations.processes import (
        TerminateCliProcessesRemediation,
        TerminateOrphanNodeRemediation,
    )
    from wsldoctor.remediations.services import RestartServiceRemediation

    remediations: list[Remediation] = [
        cls(capabilities, config)
        for cls in (
            RewriteResolvConfRemediation,
            TerminateCliProcessesRemediation,
            TerminateOrphanNodeRemediation,
            DropPageCacheRemediation,
            CleanNpmCacheRemediation,
            CleanStaleTempRemediation,
            ClearCliCacheRemediation,
            ResetCliConfigRemediation,
            AppendShellEnvRemediation,
            WriteWslConfigRemediation,
            ReinstallCliRemediation,
        )
    ]
    remediations.extend(
        RestartServiceRemediation(capabilities, config, name) for name in config.services.names
    )

    catalog = RemediationCatalog(probes)
    catalog.register_all(remediations)
    return catalog
