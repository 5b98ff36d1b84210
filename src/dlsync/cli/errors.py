"""
Standardized error output and exit codes for the dlsync CLI.
"""

from enum import IntEnum

from rich.console import Console

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for dlsync operations."""

    SUCCESS = 0
    """Every attempted dataset kind succeeded."""

    GENERAL_ERROR = 1
    """At least one dataset kind failed, or the run could not start."""

    USER_ERROR = 2
    """Configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_config_error(message: str) -> None:
    """Print error when configuration is missing or invalid."""
    print_error(
        message,
        reason="dlsync reads settings from .dlsync.json, ~/.config/dlsync/config.json and env vars",
        solution="set the missing variables in .env or the scheduler environment",
    )
