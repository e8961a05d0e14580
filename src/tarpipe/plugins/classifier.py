"""
Interpretation of stage exit statuses.

Each engine plugin carries a fixed table from exit code to diagnosis. The
classifier resolves the table by stage name, handles processes killed by a
signal, and aggregates a run's statuses into an :class:`ExitReport`.
"""

from __future__ import annotations

__all__ = ["ExitStatusClassifier", "classifier"]

import signal
from collections.abc import Iterable

from tarpipe.plugins.registry import EngineHub, hub
from tarpipe.schemas import Diagnosis, ExitReport, Severity, StageResult


class ExitStatusClassifier:
    """Maps (stage name, exit code) pairs to diagnoses."""

    def __init__(self, engines: EngineHub = hub) -> None:
        self._engines = engines

    def classify(self, stage_name: str, exit_code: int) -> Diagnosis:
        """Return the diagnosis for one stage's exit status.

        Negative codes mean the process was killed by that signal. A
        SIGPIPE death means the stage lost its reader mid-write.
        """
        if exit_code < 0:
            return self._classify_signal(-exit_code)

        cls = self._engines.get_engine_class(stage_name)
        if cls is None:
            return Diagnosis(Severity.WARNING, f"Unknown pipe command: {stage_name}")
        return cls.classify(exit_code)

    def success_code(self, stage_name: str) -> int:
        cls = self._engines.get_engine_class(stage_name)
        return cls.success_code if cls is not None else 0

    def result(self, stage_name: str, exit_code: int) -> StageResult:
        return StageResult(
            name=stage_name,
            returncode=exit_code,
            diagnosis=self.classify(stage_name, exit_code),
            success_code=self.success_code(stage_name),
        )

    def report(self, statuses: Iterable[tuple[str, int]]) -> ExitReport:
        """Build an :class:`ExitReport` from ``(name, code)`` pairs, in order."""
        return ExitReport([self.result(name, code) for name, code in statuses])

    @staticmethod
    def aggregate(report: ExitReport) -> bool:
        """True iff every stage exited with its engine's success code.

        Any failing stage fails the whole run, even when later stages
        appear to have succeeded on truncated input.
        """
        return all(r.returncode == r.success_code for r in report)

    @staticmethod
    def _classify_signal(signum: int) -> Diagnosis:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = f"signal {signum}"
        if signum == signal.SIGPIPE:
            return Diagnosis(
                Severity.ERROR,
                "Broken pipe (write failed because the next stage exited early)",
            )
        return Diagnosis(Severity.ERROR, f"Killed by {name}")


classifier = ExitStatusClassifier()
