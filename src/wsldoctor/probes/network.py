"""Network probes: DNS, ICMP connectivity, API reachability and proxies."""

from __future__ import annotations

from wsldoctor.probes.base import BaseProbe, Outcome

PROXY_VARIABLES = ("HTTP_PROXY", "HTTPS_PROXY", "http_proxy", "https_proxy")


class DnsProbe(BaseProbe):
    identifier = "net.dns"
    description = "DNS resolution"

    def execute(self) -> Outcome:
        host = self.config.network.dns_host
        try:
            addresses = self.caps.network.resolve(host, self.timeout)
        except Exception as e:
            outcome = Outcome.from_error(e, message=f"Cannot resolve {host}")
            return Outcome.failed(
                outcome.message,
                detail=f"{outcome.detail}. Try: wsldoctor fix dns.rewrite",
                error_kind=outcome.error_kind,
            )
        return Outcome.ok(f"{host} resolves to {', '.join(addresses[:3])}")


class ConnectivityProbe(BaseProbe):
    identifier = "net.connectivity"
    description = "Outbound network connectivity"

    def execute(self) -> Outcome:
        target = self.config.network.ping_target
        if self.caps.network.ping(target, self.timeout):
            return Outcome.ok(f"{target} reachable")
        return Outcome.failed(
            f"Cannot reach {target}",
            detail="Consider networkingMode=mirrored in .wslconfig",
        )


class ApiReachabilityProbe(BaseProbe):
    """Any HTTP response counts as reachable; only transport errors fail."""

    identifier = "net.api"
    description = "CLI backend API reachable over HTTPS"

    def execute(self) -> Outcome:
        url = self.config.network.api_url
        status = self.caps.network.http_status(url, self.timeout)
        return Outcome.ok(f"{url} answered HTTP {status}", metric=status)


class ProxyProbe(BaseProbe):
    identifier = "net.proxy"
    description = "No HTTP proxy configured"

    def execute(self) -> Outcome:
        configured = [name for name in PROXY_VARIABLES if self.caps.host.env(name)]
        if configured:
            return Outcome.warning(
                f"Proxy configured via {', '.join(configured)}",
                detail="Proxies can make the CLI hang on startup",
            )
        return Outcome.ok("No proxy configured")
