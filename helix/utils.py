"""Shared utility functions for the Helix scaffolder.

Provides Rich-based console output and async execution of the external
commands (``go``, ``git``) that run after a project has been generated.
Command failures are reported as :class:`CommandError` values carrying the
command, exit code and stderr rather than as pre-formatted text.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()

# Stderr kept on a CommandError; go toolchain errors can be very long.
STDERR_SNIPPET_LIMIT = 2000


# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(Exception):
    """Raised when an external command exits non-zero, times out or is missing."""

    def __init__(self, command: list[str] | tuple[str, ...], exit_code: int, stderr: str = "") -> None:
        self.command = tuple(command)
        self.exit_code = exit_code
        self.stderr = stderr[-STDERR_SNIPPET_LIMIT:]
        super().__init__(f"command '{' '.join(self.command)}' failed with exit code {exit_code}")

    @classmethod
    def from_result(cls, result: CommandResult) -> "CommandError":
        return cls(result.command, result.returncode, result.stderr)


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 300,
    env: dict[str, str] | None = None,
) -> CommandResult:
    """Run a command asynchronously and capture its output.

    Args:
        cmd: Program and arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A :class:`CommandResult`.  A timeout yields return code ``-1`` and a
        missing executable return code ``127``; neither raises.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except FileNotFoundError:
        return CommandResult(tuple(cmd), 127, "", f"executable not found: {cmd[0]}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandResult(
            tuple(cmd), -1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}"
        )

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return CommandResult(tuple(cmd), process.returncode or 0, stdout_str, stderr_str)


async def run_checked(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 300,
) -> CommandResult:
    """Like :func:`run_command` but raise :class:`CommandError` on failure."""
    result = await run_command(cmd, cwd=cwd, timeout=timeout)
    if not result.ok:
        raise CommandError.from_result(result)
    return result


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def print_debug(message: str) -> None:
    """Print a dimmed diagnostic line."""
    console.print(f"[dim]{escape(message)}[/dim]")
