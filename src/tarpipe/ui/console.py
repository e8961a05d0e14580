"""
Rich-based terminal reporting for pipeline runs.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.spinner import Spinner

from tarpipe.infra.process.cancellation import signal_name
from tarpipe.libs.filesystem import format_size
from tarpipe.schemas import ArchiveResult, StageResult


class ConsoleUI:
    """Writes progress and diagnostics to stderr.

    The meter stage draws its own progress bar on the inherited stderr, so
    this UI only adds the lines around it and the spinner shown while the
    compressor flushes.

    Args:
        console: Target console; defaults to one writing to stderr.
        binary_units: Format sizes with 1024-based units.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        binary_units: bool = False,
    ) -> None:
        self.console = console or Console(stderr=True)
        self._binary = binary_units
        self._live: Live | None = None

    def on_start(self, operation: str, source: Path, destination: Path) -> None:
        self.console.print(
            f"[cyan]{operation.capitalize()}[/cyan] "
            f"{escape(str(source))} [dim]->[/dim] {escape(str(destination))}"
        )

    def on_flush_start(self, name: str) -> None:
        spinner = Spinner("dots", text=f"Waiting for {escape(name)} to finish...")
        self._live = Live(
            spinner,
            console=self.console,
            auto_refresh=False,
            transient=True,
        )
        self._live.start()

    def on_flush_tick(self) -> None:
        if self._live is not None:
            self._live.refresh()

    def on_flush_done(self, name: str) -> None:
        self._stop_live()

    def on_stage_failed(self, result: StageResult) -> None:
        self.console.print(f"[red]{escape(result.describe())}[/red]")

    def on_cancelled(self, signum: int | None) -> None:
        self._stop_live()
        self.console.print(
            f"\n[yellow]Cancelled ({signal_name(signum)}), cleaning up...[/yellow]"
        )

    def on_complete(self, result: ArchiveResult) -> None:
        if not result.ok:
            self.console.print(f"[red]{result.operation.capitalize()} failed[/red]")
            return

        self.console.print(f"[green]Done:[/green] {escape(str(result.destination))}")
        if result.source_size is None or result.output_size is None:
            return

        fmt = self._fmt
        line = f"{fmt(result.source_size)} -> {fmt(result.output_size)}"
        diff, pct = result.size_difference, result.percentage
        if diff and pct is not None:
            word = "smaller" if diff < 0 else "larger"
            line += f" ({fmt(abs(diff))} {word}, {pct:+.1f}%)"
        self.console.print(line, highlight=False)

    def _fmt(self, n: int) -> str:
        return format_size(n, binary=self._binary)

    def _stop_live(self) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None
