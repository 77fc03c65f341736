"""External command execution and service control.

Commands are passed as argument lists, never interpolated into a shell
string. Every call is bounded by a timeout.
"""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence

from wsldoctor.capabilities.base import CommandResult, CommandRunner
from wsldoctor.core.errors import ExternalCallFailedError, OperationTimeoutError
from wsldoctor.core.logging import get_logger

_logger = get_logger("capabilities.commands")


class SubprocessCommandRunner:
    """Runs commands with subprocess.run and a hard timeout."""

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def run(self, argv: Sequence[str], timeout: float) -> CommandResult:
        cmd = list(argv)
        _logger.debug("command.run", argv=cmd, timeout=timeout)
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise OperationTimeoutError(" ".join(cmd), timeout) from e
        except FileNotFoundError as e:
            raise ExternalCallFailedError(
                f"Command not found: {cmd[0]}", detail=str(e)
            ) from e
        except OSError as e:
            raise ExternalCallFailedError(f"Cannot run {cmd[0]}", detail=str(e)) from e

        return CommandResult(
            argv=tuple(cmd),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )


def run_checked(
    runner: CommandRunner,
    argv: Sequence[str],
    timeout: float,
) -> CommandResult:
    """Run a command and raise ExternalCallFailedError on a non-zero exit."""
    result = runner.run(argv, timeout)
    if not result.ok:
        raise ExternalCallFailedError(
            f"'{' '.join(argv)}' exited with status {result.returncode}",
            detail=(result.stderr or result.stdout).strip() or None,
        )
    return result


class SystemctlServiceControl:
    """Service control through systemctl."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def status(self, name: str, timeout: float) -> str:
        # is-active exits non-zero for inactive units; the state is on stdout
        result = self._runner.run(["systemctl", "is-active", name], timeout)
        state = result.stdout.strip()
        if not state:
            raise ExternalCallFailedError(
                f"Cannot query service {name}",
                detail=result.stderr.strip() or None,
            )
        return state

    def start(self, name: str, timeout: float) -> None:
        run_checked(self._runner, ["systemctl", "start", name], timeout)

    def stop(self, name: str, timeout: float) -> None:
        run_checked(self._runner, ["systemctl", "stop", name], timeout)

    def restart(self, name: str, timeout: float) -> None:
        run_checked(self._runner, ["systemctl", "restart", name], timeout)


__all__ = ["SubprocessCommandRunner", "SystemctlServiceControl", "run_checked"]
