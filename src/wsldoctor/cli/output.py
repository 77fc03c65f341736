"""Rich output helpers shared by the wsldoctor commands.

- A shared console instance
- Error output with an optional JSON alternative
- JSON printing that never wraps long lines
"""

from __future__ import annotations

from typing import Any, Literal

from rich.console import Console

from wsldoctor.reporting import ReportRenderer

# Quiet/JSON modes are handled by the commands, not by this Console
console = Console()


def get_renderer() -> ReportRenderer:
    return ReportRenderer(console)


def print_json(data: Any, console_instance: Console | None = None) -> None:
    """Print ``data`` as indented JSON on stdout."""
    out = console_instance or console
    out.print_json(data=data, default=str)


def output_error(
    message: str,
    *,
    error_code: str | None = None,
    hints: list[str] | None = None,
    severity: Literal["error", "warning"] = "error",
    json_output: bool = False,
    console_instance: Console | None = None,
    **json_extras: str | int | float | bool | list[str] | None,
) -> None:
    """Output a formatted error/warning with optional hints and JSON alternative.

    Args:
        message: The error message to display.
        error_code: Optional machine-readable code (an ErrorKind value).
        hints: Optional list of hint strings for the user.
        severity: "error" (red) or "warning" (yellow).
        json_output: If True, output as JSON instead of Rich markup.
        console_instance: Console to print to. Defaults to module console.
        **json_extras: Extra key-value pairs included in JSON output only.
    """
    out = console_instance or console
    color = "red" if severity == "error" else "yellow"
    label = "Error" if severity == "error" else "Warning"

    if json_output:
        result: dict[str, Any] = {"success": False, "message": message}
        if error_code:
            result["error_code"] = error_code
        if hints:
            result["hints"] = hints
        result.update(json_extras)
        print_json(result, out)
        return

    if error_code:
        prefix = f"[{color}]{label} [{error_code}]:[/{color}] "
    else:
        prefix = f"[{color}]{label}:[/{color}] "
    out.print(f"{prefix}{message}")

    if hints:
        out.print()
        out.print("[dim]Hints:[/dim]")
        for hint in hints:
            out.print(f"  - {hint}")
