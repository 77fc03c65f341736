"""Tests for the remediation catalog."""

import pytest

from wsldoctor.core.errors import (
    DanglingProbeReferenceError,
    DuplicateIdentifierError,
    UnknownRemediationError,
)
from wsldoctor.probes.base import Outcome
from wsldoctor.probes.registry import ProbeRegistry, create_default_probe_registry
from wsldoctor.remediations.base import RemediationResult
from wsldoctor.remediations.catalog import RemediationCatalog, create_default_catalog


class StubProbe:
    def __init__(self, identifier):
        self.identifier = identifier
        self.description = identifier

    def execute(self):
        return Outcome.ok("ok")


class StubRemediation:
    def __init__(self, identifier, related=(), destructive=False, elevated=False):
        self.identifier = identifier
        self.description = f"stub {identifier}"
        self.requires_elevated_privilege = elevated
        self.is_destructive = destructive
        self.related_probe_identifiers = frozenset(related)

    def preview(self):
        return self.description

    def apply(self):
        return RemediationResult(success=True, message="done")


@pytest.fixture
def probes():
    return ProbeRegistry([StubProbe("net.dns"), StubProbe("fs.disk")])


@pytest.fixture
def catalog(probes):
    return RemediationCatalog(probes)


class TestRegister:
    def test_register_and_get(self, catalog):
        remediation = StubRemediation("dns.rewrite", ["net.dns"])
        catalog.register(remediation)

        assert catalog.get("dns.rewrite") is remediation
        assert "dns.rewrite" in catalog
        assert catalog.count() == 1

    def test_remediation_without_related_probes(self, catalog):
        catalog.register(StubRemediation("cache.npm"))
        assert catalog.identifiers() == ["cache.npm"]

    def test_duplicate_rejected(self, catalog):
        catalog.register(StubRemediation("dns.rewrite", ["net.dns"]))
        with pytest.raises(DuplicateIdentifierError):
            catalog.register(StubRemediation("dns.rewrite"))
        assert catalog.count() == 1

    def test_dangling_probe_reference_rejected(self, catalog):
        with pytest.raises(DanglingProbeReferenceError) as exc_info:
            catalog.register(StubRemediation("svc.restart", ["service.docker"]))

        assert exc_info.value.missing == ["service.docker"]
        assert exc_info.value.remediation_id == "svc.restart"
        assert catalog.count() == 0

    def test_get_unknown_raises(self, catalog):
        with pytest.raises(UnknownRemediationError) as exc_info:
            catalog.get("nope")
        assert exc_info.value.identifier == "nope"


class TestRegisterAll:
    def test_registers_in_order(self, catalog):
        catalog.register_all([
            StubRemediation("b", ["fs.disk"]),
            StubRemediation("a", ["net.dns"]),
        ])
        assert catalog.identifiers() == ["b", "a"]

    def test_dangling_reference_leaves_no_partial_catalog(self, catalog):
        with pytest.raises(DanglingProbeReferenceError):
            catalog.register_all([
                StubRemediation("good", ["net.dns"]),
                StubRemediation("bad", ["missing.probe"]),
                StubRemediation("later", ["fs.disk"]),
            ])

        assert catalog.count() == 0
        assert list(catalog.list()) == []

    def test_duplicate_within_batch_rejected(self, catalog):
        with pytest.raises(DuplicateIdentifierError):
            catalog.register_all([StubRemediation("x"), StubRemediation("x")])
        assert catalog.count() == 0


class TestListing:
    def test_list_is_restartable(self, catalog):
        catalog.register_all([StubRemediation("a"), StubRemediation("b")])
        listing = catalog.list()

        assert [r.identifier for r in listing] == ["a", "b"]
        assert [r.identifier for r in listing] == ["a", "b"]
        assert len(listing) == 2

    def test_list_is_lazy(self, catalog):
        catalog.register(StubRemediation("a"))
        listing = catalog.list()
        catalog.register(StubRemediation("b"))

        assert [r.identifier for r in listing] == ["a", "b"]


class TestDefaultCatalog:
    def test_builtin_remediations(self, caps, config):
        registry = create_default_probe_registry(caps, config)
        catalog = create_default_catalog(registry, caps, config)

        assert catalog.identifiers() == [
            "dns.rewrite",
            "cli.kill",
            "node.kill",
            "cache.drop",
            "cache.npm",
            "tmp.clean",
            "cli.cache.clear",
            "cli.config.reset",
            "shell.env",
            "wslconfig.write",
            "cli.reinstall",
        ]

    @pytest.mark.parametrize(
        "identifier,elevated,destructive,related",
        [
            ("dns.rewrite", True, True, {"net.dns"}),
            ("cli.kill", False, True, {"cli.processes"}),
            ("node.kill", False, True, {"node.processes"}),
            ("cache.drop", True, False, {"system.memory"}),
            ("cache.npm", False, False, set()),
            ("tmp.clean", True, True, {"fs.disk"}),
            ("shell.env", False, False, {"cli.env"}),
            ("wslconfig.write", False, True, {"wsl.config"}),
            ("cli.reinstall", False, True, {"cli.installed"}),
        ],
    )
    def test_remediation_flags(self, caps, config, identifier, elevated, destructive, related):
        registry = create_default_probe_registry(caps, config)
        remediation = create_default_catalog(registry, caps, config).get(identifier)

        assert remediation.requires_elevated_privilege is elevated
        assert remediation.is_destructive is destructive
        assert remediation.related_probe_identifiers == related

    def test_service_restart_per_configured_service(self, caps, config):
        config.services.names = ["docker"]
        registry = create_default_probe_registry(caps, config)
        catalog = create_default_catalog(registry, caps, config)

        remediation = catalog.get("service.restart.docker")
        assert remediation.related_probe_identifiers == {"service.docker"}
        assert remediation.requires_elevated_privilege is True

    def test_catalog_against_incomplete_registry_fails(self, caps, config):
        with pytest.raises(DanglingProbeReferenceError):
            create_default_catalog(ProbeRegistry(), caps, config)
