"""
Protocol definitions for user-interface callbacks.

The pipeline reports through this event sink; concrete implementations may
draw to a terminal, log, or do nothing at all.
"""

from pathlib import Path
from typing import Protocol

from tarpipe.schemas import ArchiveResult, StageResult


class PipelineUI(Protocol):
    """Protocol for reporting pipeline lifecycle and progress."""

    def on_start(self, operation: str, source: Path, destination: Path) -> None:
        """Called before the first stage is spawned.

        Args:
            operation: ``"archive"``, ``"unarchive"`` or ``"convert"``.
            source: Input path.
            destination: Output archive or directory.
        """
        ...

    def on_flush_start(self, name: str) -> None:
        """Called when the metered phase is done and the final stage is
        still flushing its output.

        Args:
            name: Engine key of the stage being waited on.
        """
        ...

    def on_flush_tick(self) -> None:
        """Called on every liveness poll while the final stage flushes."""
        ...

    def on_flush_done(self, name: str) -> None:
        """Called once the flushing stage has exited."""
        ...

    def on_stage_failed(self, result: StageResult) -> None:
        """Reports one failing stage with its classified diagnosis."""
        ...

    def on_cancelled(self, signum: int | None) -> None:
        """Reports that the run is being torn down."""
        ...

    def on_complete(self, result: ArchiveResult) -> None:
        """Reports the outcome of a high-level operation."""
        ...
