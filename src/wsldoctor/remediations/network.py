"""Network remediations.

- RewriteResolvConfRemediation: Replaces the generated resolv.conf with
  fixed public nameservers and optionally locks it against regeneration.
"""

from __future__ import annotations

from wsldoctor.capabilities.commands import run_checked
from wsldoctor.core.errors import DoctorError
from wsldoctor.core.logging import get_logger
from wsldoctor.remediations.base import BaseRemediation, RemediationResult

_logger = get_logger("remediations.network")

RESOLV_CONF_HEADER = "# Generated by wsldoctor (dns.rewrite)\n"


def render_resolv_conf(nameservers: list[str]) -> str:
    return RESOLV_CONF_HEADER + "".join(f"nameserver {ns}\n" for ns in nameservers)


class RewriteResolvConfRemediation(BaseRemediation):
    """Rewrites resolv.conf with the configured nameservers.

    The previous file (often a symlink maintained by WSL) is kept as a
    timestamped backup. With lock_resolv_conf the new file is marked
    immutable so WSL does not overwrite it on the next boot.
    """

    identifier = "dns.rewrite"
    description = "Rewrite resolv.conf with public nameservers"
    requires_elevated_privilege = True
    is_destructive = True
    related_probe_identifiers = frozenset({"net.dns"})

    def preview(self) -> str:
        servers = ", ".join(self.config.network.nameservers)
        return f"replace {self.config.network.resolv_conf} with nameservers {servers}"

    def run(self) -> RemediationResult:
        net = self.config.network
        path = net.resolv_conf

        if net.lock_resolv_conf and self.caps.files.exists(path):
            # A previous run may have locked the file; a failure here just
            # means it was not immutable
            try:
                self.caps.commands.run(["chattr", "-i", str(path)], self.timeout)
            except DoctorError as e:
                _logger.debug("dns.unlock_skipped", path=str(path), error=str(e))

        backup = self.caps.files.write_text(path, render_resolv_conf(net.nameservers))
        result = RemediationResult(
            success=True,
            message=f"Wrote {len(net.nameservers)} nameserver(s) to {path}",
            modified_files=[path],
            backup_paths=[backup] if backup else [],
        )

        if net.lock_resolv_conf:
            try:
                run_checked(self.caps.commands, ["chattr", "+i", str(path)], self.timeout)
            except DoctorError as e:
                _logger.warning("dns.lock_failed", path=str(path), error=str(e))
                result.message += " (could not lock it; WSL may regenerate it)"
        return result
