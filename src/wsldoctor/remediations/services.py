"""Service remediations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from wsldoctor.core.errors import ErrorKind
from wsldoctor.probes.services import service_probe_id
from wsldoctor.remediations.base import BaseRemediation, RemediationResult

if TYPE_CHECKING:
    from wsldoctor.capabilities import Capabilities
    from wsldoctor.core.config import DoctorConfig


class RestartServiceRemediation(BaseRemediation):
    """Restarts one configured service. One instance per service name."""

    requires_elevated_privilege = True

    def __init__(self, capabilities: Capabilities, config: DoctorConfig, service: str) -> None:
        super().__init__(capabilities, config)
        self.service = service
        self.identifier = f"service.restart.{service}"
        self.description = f"Restart service {service}"
        self.related_probe_identifiers = frozenset({service_probe_id(service)})

    def run(self) -> RemediationResult:
        self.caps.services.restart(self.service, self.timeout)
        state = self.caps.services.status(self.service, self.timeout)
        if state != "active":
            return RemediationResult(
                success=False,
                message=f"{self.service} restarted, now {state}",
                error_kind=ErrorKind.EXTERNAL_CALL_FAILED,
                error_detail=f"systemctl reports {self.service} as {state} after restart",
            )
        return RemediationResult(success=True, message=f"{self.service} restarted, now {state}")
