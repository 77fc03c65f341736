"""Network reachability capability: DNS, ICMP ping and HTTP."""

from __future__ import annotations

import math
import socket
import threading

import httpx

from wsldoctor.capabilities.base import CommandRunner
from wsldoctor.core.errors import ExternalCallFailedError, OperationTimeoutError
from wsldoctor.core.logging import get_logger

_logger = get_logger("capabilities.network")


class HostNetworkProbe:
    """Reachability checks against the real network.

    getaddrinfo has no timeout parameter, so resolution runs on a daemon
    thread and the caller stops waiting after ``timeout`` seconds.
    """

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def resolve(self, host: str, timeout: float) -> list[str]:
        result: dict[str, object] = {}

        def lookup() -> None:
            try:
                result["infos"] = socket.getaddrinfo(host, None)
            except OSError as e:
                result["error"] = e

        # daemon: a hung lookup must not block interpreter exit
        worker = threading.Thread(target=lookup, name=f"dns-{host}", daemon=True)
        worker.start()
        worker.join(timeout)
        if worker.is_alive():
            _logger.warning("network.resolve_abandoned", host=host, timeout=timeout)
            raise OperationTimeoutError(f"resolve {host}", timeout)

        error = result.get("error")
        if isinstance(error, OSError):
            raise ExternalCallFailedError(f"Cannot resolve {host}", detail=str(error)) from error
        infos = result["infos"]
        return sorted({str(info[4][0]) for info in infos})  # type: ignore[attr-defined]

    def ping(self, host: str, timeout: float) -> bool:
        wait = str(max(1, math.ceil(timeout)))
        # outer timeout leaves ping a second to report before it is killed
        result = self._runner.run(["ping", "-c", "1", "-W", wait, host], timeout + 1)
        return result.ok

    def http_status(self, url: str, timeout: float) -> int:
        try:
            response = httpx.get(url, timeout=timeout, follow_redirects=False)
        except httpx.TimeoutException as e:
            raise OperationTimeoutError(f"GET {url}", timeout) from e
        except httpx.HTTPError as e:
            raise ExternalCallFailedError(f"Cannot reach {url}", detail=str(e)) from e
        _logger.debug("network.http_status", url=url, status=response.status_code)
        return response.status_code


__all__ = ["HostNetworkProbe"]
