"""Console rendering for the xlsx-trim CLI."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from rich import filesize
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import DownloadHandle, StatusColor, StepTiming

console = Console()


def render_configuration_summary(config: Dict[str, Any], out: Optional[Console] = None) -> None:
    """Render startup configuration summary."""
    out = out or console
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    out.print(
        Panel(
            table,
            title="[bold green]xlsx-trim[/bold green]",
            subtitle="[dim]row deletion client[/dim]",
            border_style="blue",
        )
    )


def render_result(
    handle: DownloadHandle,
    saved_to: Path,
    timings: Sequence[StepTiming],
    out: Optional[Console] = None,
) -> None:
    """Render the saved archive and per-step durations."""
    out = out or console
    table = Table(title=f"Saved {handle.filename} ({filesize.decimal(handle.size)})")
    table.add_column("Step", style="cyan")
    table.add_column("Duration", justify="right")
    for timing in timings:
        table.add_row(timing.step, f"{timing.duration_ms} ms")
    out.print(table)
    out.print(f"[green]->[/green] {saved_to}")


class ConsoleStatusReporter:
    """
    Status reporter printing to a rich console.

    Implements IStatusReporter protocol. Hidden messages print nothing;
    a terminal cannot take back a line already written.
    """

    def __init__(self, out: Optional[Console] = None):
        self._console = out or console

    def report(self, message: str, visible: bool = True, color: StatusColor = StatusColor.NEUTRAL) -> None:
        if not visible or not message:
            return
        style = "bold red" if color is StatusColor.ERROR else None
        self._console.print(message, style=style, markup=False, highlight=False)
