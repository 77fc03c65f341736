"""Probes for system services managed through systemctl."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wsldoctor.probes.base import BaseProbe, Outcome

if TYPE_CHECKING:
    from wsldoctor.capabilities import Capabilities
    from wsldoctor.core.config import DoctorConfig


def service_probe_id(service: str) -> str:
    return f"service.{service}"


class ServiceActiveProbe(BaseProbe):
    """One instance per configured service name."""

    def __init__(self, capabilities: Capabilities, config: DoctorConfig, service: str) -> None:
        super().__init__(capabilities, config)
        self.service = service
        self.identifier = service_probe_id(service)
        self.description = f"Service {service} is active"

    def execute(self) -> Outcome:
        state = self.caps.services.status(self.service, self.timeout)
        if state == "active":
            return Outcome.ok(f"{self.service} is active")
        return Outcome.failed(
            f"{self.service} is {state}",
            detail=f"Run: wsldoctor fix service.restart.{self.service}",
        )
