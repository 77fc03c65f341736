"""Process remediations.

Both remediations select their targets by exact process name (plus the
parent pid for node orphans) from a fresh process snapshot, then
terminate exactly those pids. A process whose command line merely
contains the name is never touched.
"""

from __future__ import annotations

import os

from wsldoctor.capabilities import ProcessInfo
from wsldoctor.core.errors import PartialTerminationError, detail_of
from wsldoctor.probes.cli_tool import INIT_PID, NODE_PROCESS_NAME
from wsldoctor.remediations.base import BaseRemediation, RemediationResult


class _TerminateProcessesRemediation(BaseRemediation):
    is_destructive = True
    target_label = "processes"

    def select(self, processes: list[ProcessInfo]) -> list[ProcessInfo]:
        raise NotImplementedError

    def preview(self) -> str:
        targets = self.select(self.caps.processes.list_processes())
        pids = ", ".join(str(p.pid) for p in targets) or "none"
        return f"terminate {self.target_label} (pids: {pids})"

    def run(self) -> RemediationResult:
        own_pid = os.getpid()
        targets = [p for p in self.select(self.caps.processes.list_processes()) if p.pid != own_pid]
        if not targets:
            return RemediationResult(success=True, message=f"No {self.target_label} found")

        try:
            terminated = self.caps.processes.terminate(
                [p.pid for p in targets],
                self.config.timeouts.terminate_grace_seconds,
            )
        except PartialTerminationError as e:
            return RemediationResult(
                success=False,
                message=(
                    f"Terminated {len(e.terminated_pids)} {self.target_label}, "
                    f"could not terminate {len(e.failed_pids)}"
                ),
                error_detail=detail_of(e),
                error_kind=e.kind,
                terminated_pids=e.terminated_pids,
            )
        return RemediationResult(
            success=True,
            message=f"Terminated {len(terminated)} {self.target_label}",
            terminated_pids=terminated,
        )


class TerminateCliProcessesRemediation(_TerminateProcessesRemediation):
    identifier = "cli.kill"
    description = "Terminate hanging CLI processes"
    related_probe_identifiers = frozenset({"cli.processes"})
    target_label = "CLI processes"

    def select(self, processes: list[ProcessInfo]) -> list[ProcessInfo]:
        names = set(self.config.cli.process_names)
        return [p for p in processes if p.name in names]


class TerminateOrphanNodeRemediation(_TerminateProcessesRemediation):
    """Terminates node processes that were reparented to init.

    A node process whose launcher has exited is the leftover of a hung
    CLI session; node processes with a live parent belong to something
    still running and are left alone.
    """

    identifier = "node.kill"
    description = "Terminate orphaned Node.js processes"
    related_probe_identifiers = frozenset({"node.processes"})
    target_label = "orphaned Node.js processes"

    def select(self, processes: list[ProcessInfo]) -> list[ProcessInfo]:
        return [p for p in processes if p.name == NODE_PROCESS_NAME and p.ppid == INIT_PID]
