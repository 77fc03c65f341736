"""Capability interfaces and their host implementations.

Public exports:
- Capabilities: bundle injected into probes and remediations
- Protocols: ProcessLister, HostInfo, CommandRunner, ServiceControl,
  NetworkProbe, FileStore, PrivilegeCheck
- Value types: ProcessInfo, MemoryInfo, DiskInfo, CommandResult, SectionedConfig
- host_capabilities: Factory wiring the real implementations
"""

from wsldoctor.capabilities.base import (
    Capabilities,
    CommandResult,
    CommandRunner,
    DiskInfo,
    FileStore,
    HostInfo,
    MemoryInfo,
    NetworkProbe,
    PrivilegeCheck,
    ProcessInfo,
    ProcessLister,
    SectionedConfig,
    ServiceControl,
)


def host_capabilities() -> Capabilities:
    """Create capabilities backed by the real host (psutil, subprocess, httpx)."""
    from wsldoctor.capabilities.commands import SubprocessCommandRunner, SystemctlServiceControl
    from wsldoctor.capabilities.files import LocalFileStore
    from wsldoctor.capabilities.network import HostNetworkProbe
    from wsldoctor.capabilities.system import (
        EuidPrivilegeCheck,
        PsutilHostInfo,
        PsutilProcessLister,
    )

    runner = SubprocessCommandRunner()
    return Capabilities(
        processes=PsutilProcessLister(),
        host=PsutilHostInfo(),
        commands=runner,
        services=SystemctlServiceControl(runner),
        network=HostNetworkProbe(runner),
        files=LocalFileStore(),
        privilege=EuidPrivilegeCheck(),
    )


__all__ = [
    "Capabilities",
    "CommandResult",
    "CommandRunner",
    "DiskInfo",
    "FileStore",
    "HostInfo",
    "MemoryInfo",
    "NetworkProbe",
    "PrivilegeCheck",
    "ProcessInfo",
    "ProcessLister",
    "SectionedConfig",
    "ServiceControl",
    "host_capabilities",
]
