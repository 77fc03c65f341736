"""Probes for the CLI tool and the Node.js runtime it runs on."""

from __future__ import annotations

import re

from wsldoctor.probes.base import BaseProbe, Outcome

_NODE_VERSION = re.compile(r"v?(\d+)\.(\d+)")

NODE_PROCESS_NAME = "node"
INIT_PID = 1


class CliInstalledProbe(BaseProbe):
    identifier = "cli.installed"
    description = "CLI tool installed and runnable"

    def execute(self) -> Outcome:
        binary = self.config.cli.binary
        path = self.caps.commands.which(binary)
        if path is None:
            return Outcome.failed(
                f"{binary} is not installed",
                detail=f"Install with: npm install -g {self.config.cli.npm_package}",
            )
        result = self.caps.commands.run([binary, "--version"], self.timeout)
        if not result.ok:
            return Outcome.failed(
                f"{binary} --version exited with {result.returncode}",
                detail=result.stderr.strip() or None,
            )
        version = result.stdout.strip() or "unknown"
        return Outcome.ok(f"{binary} {version}", detail=path)


class NodeVersionProbe(BaseProbe):
    identifier = "cli.node"
    description = "Node.js installed and recent enough"

    def execute(self) -> Outcome:
        if self.caps.commands.which("node") is None:
            return Outcome.failed("Node.js is not installed")
        result = self.caps.commands.run(["node", "--version"], self.timeout)
        version = result.stdout.strip()
        match = _NODE_VERSION.match(version)
        if not result.ok or match is None:
            return Outcome.failed(f"Cannot determine Node.js version: {version or result.stderr.strip()}")

        major = int(match.group(1))
        minimum = self.config.thresholds.min_node_major
        if major < minimum:
            return Outcome.warning(
                f"Node.js {version} is older than v{minimum}",
                metric=major,
                detail=f"Node.js v{minimum}+ is recommended",
            )
        return Outcome.ok(f"Node.js {version}", metric=major)


class CliProcessesProbe(BaseProbe):
    """Counts processes whose name is exactly one of the CLI's process names."""

    identifier = "cli.processes"
    description = "No leftover CLI processes"

    def execute(self) -> Outcome:
        names = set(self.config.cli.process_names)
        matches = [p for p in self.caps.processes.list_processes() if p.name in names]
        if not matches:
            return Outcome.ok("No CLI processes running", metric=0, metric_unit="count")
        return Outcome.warning(
            f"Found {len(matches)} CLI process(es) running",
            metric=len(matches),
            metric_unit="count",
            detail=", ".join(str(p.pid) for p in matches[:20]),
        )


class NodeProcessesProbe(BaseProbe):
    """Counts node processes; orphans (reparented to init) are the kill targets."""

    identifier = "node.processes"
    description = "Node.js process count normal"

    def execute(self) -> Outcome:
        nodes = [p for p in self.caps.processes.list_processes() if p.name == NODE_PROCESS_NAME]
        orphans = [p for p in nodes if p.ppid == INIT_PID]
        limit = self.config.thresholds.max_node_processes
        if len(nodes) > limit:
            return Outcome.warning(
                f"Found {len(nodes)} Node.js processes ({len(orphans)} orphaned)",
                metric=len(nodes),
                metric_unit="count",
                detail=f"More than {limit} is unusual; run: wsldoctor fix node.kill",
            )
        return Outcome.ok(
            f"Node.js process count looks normal: {len(nodes)}",
            metric=len(nodes),
            metric_unit="count",
        )


class CliEnvironmentProbe(BaseProbe):
    identifier = "cli.env"
    description = "Recommended CLI environment variables in shell rc"

    def execute(self) -> Outcome:
        rc_file = self.config.cli.shell_rc
        if not self.caps.files.exists(rc_file):
            return Outcome.warning(f"{rc_file} does not exist", detail="Run: wsldoctor fix shell.env")
        content = self.caps.files.read_text(rc_file)
        if self.config.cli.env_marker in content:
            return Outcome.ok(f"Environment block present in {rc_file}")
        return Outcome.warning(
            f"Environment block missing from {rc_file}",
            detail="Run: wsldoctor fix shell.env",
        )
