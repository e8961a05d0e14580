from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tarpipe.schemas import ExitReport


class PipelineError(Exception):
    """Generic pipeline failure."""


class SpawnError(PipelineError):
    """A stage's executable could not be launched."""

    def __init__(self, stage: str, argv: Sequence[str], reason: str) -> None:
        self.stage = stage
        self.argv = tuple(argv)
        self.reason = reason
        program = self.argv[0] if self.argv else "?"
        super().__init__(f"Cannot start stage {stage!r} ({program}): {reason}")


class StageExitError(PipelineError):
    """One or more stages ran and exited unsuccessfully."""

    def __init__(self, report: ExitReport) -> None:
        self.report = report
        lines = "; ".join(r.describe() for r in report.failures)
        super().__init__(lines or "Pipeline failed")


class ResourceError(PipelineError):
    """Scratch directory or FIFO could not be created."""


class CancellationError(SystemExit):
    """The run was cancelled; ``code`` is the process exit status."""

    def __init__(self, code: int = 1, signum: int | None = None) -> None:
        super().__init__(code)
        self.signum = signum
