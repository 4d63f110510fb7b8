"""Rich console setup and driver progress callbacks."""

from __future__ import annotations

import logging
from typing import Protocol

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logger with Rich handler."""
    level = logging.DEBUG if verbose else (logging.ERROR if quiet else logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


logger = logging.getLogger("latex_driver")


# ---------------------------------------------------------------------------
# Driver callbacks protocol
# ---------------------------------------------------------------------------


class DriverCallbacks(Protocol):
    """Protocol for per-job progress reporting."""

    def on_run_start(self, run: int, max_runs: int) -> None: ...
    def on_tool_start(self, tool: str) -> None: ...
    def on_tool_end(self, tool: str, exit_code: int) -> None: ...
    def on_state(self, state: str) -> None: ...
    def on_warning(self, message: str) -> None: ...
    def on_error(self, message: str) -> None: ...


class RichCallbacks:
    """Rich-based implementation of DriverCallbacks."""

    def on_run_start(self, run: int, max_runs: int) -> None:
        console.print(f"  [yellow]Formatter run {run}/{max_runs}[/]")

    def on_tool_start(self, tool: str) -> None:
        console.print(f"  [dim]Running:[/] {tool}")

    def on_tool_end(self, tool: str, exit_code: int) -> None:
        status = "[green]OK[/]" if exit_code == 0 else f"[red]exit {exit_code}[/]"
        console.print(f"  {tool}: {status}")

    def on_state(self, state: str) -> None:
        console.print(f"  [cyan]State:[/] {state}")

    def on_warning(self, message: str) -> None:
        console.print(f"  [yellow]WARNING:[/] {message}")

    def on_error(self, message: str) -> None:
        console.print(f"  [red]ERROR:[/] {message}")
