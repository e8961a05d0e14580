"""
Classified outcomes of pipeline runs.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from tarpipe.libs.filesystem import compare_sizes


class Severity(StrEnum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Diagnosis:
    """Human-readable interpretation of an engine's exit status."""

    severity: Severity
    message: str


@dataclass(frozen=True, slots=True)
class StageResult:
    """Exit status of one stage.

    Attributes:
        name: Engine key of the stage.
        returncode: Exit code, negative when the process died from a signal.
        diagnosis: Classified meaning of ``returncode``.
        success_code: The engine's success code.
    """

    name: str
    returncode: int
    diagnosis: Diagnosis
    success_code: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == self.success_code

    def describe(self) -> str:
        return (
            f"Command {self.name} in pipeline failed with exit code "
            f"{self.returncode}: {self.diagnosis.message}"
        )


@dataclass(frozen=True, slots=True, init=False)
class ExitReport:
    """Per-stage exit statuses of a single pipeline run, in definition order."""

    results: tuple[StageResult, ...]

    def __init__(self, results: Sequence[StageResult]) -> None:
        object.__setattr__(self, "results", tuple(results))

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[StageResult]:
        return iter(self.results)

    def __getitem__(self, key: int | str) -> StageResult:
        """Look up a result by position or by stage name (first match)."""
        if isinstance(key, int):
            return self.results[key]
        for result in self.results:
            if result.name == key:
                return result
        raise KeyError(key)

    def __add__(self, other: ExitReport) -> ExitReport:
        return ExitReport(self.results + other.results)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def names(self) -> list[str]:
        return [r.name for r in self.results]

    @property
    def returncodes(self) -> list[int]:
        return [r.returncode for r in self.results]

    @property
    def failures(self) -> list[StageResult]:
        return [r for r in self.results if not r.ok]

    def raise_for_status(self) -> None:
        """Raise :class:`StageExitError` if any stage failed."""
        if self.ok:
            return
        from tarpipe.infra.process.errors import StageExitError

        raise StageExitError(self)


@dataclass(frozen=True, slots=True)
class ArchiveResult:
    """Outcome of a high-level archive, unarchive or convert operation.

    Attributes:
        operation: ``"archive"``, ``"unarchive"`` or ``"convert"``.
        source: Input path.
        destination: Output archive or directory.
        report: Merged exit report of every pipeline that ran.
        source_size: Measured input size in bytes, if sizes were measured.
        output_size: Measured output size in bytes, if sizes were measured.
    """

    operation: str
    source: Path
    destination: Path
    report: ExitReport
    source_size: int | None = None
    output_size: int | None = None

    @property
    def ok(self) -> bool:
        return self.report.ok

    @property
    def size_difference(self) -> int | None:
        if self.source_size is None or self.output_size is None:
            return None
        return self.output_size - self.source_size

    @property
    def percentage(self) -> float | None:
        """Signed size change relative to the source, in percent."""
        if self.source_size is None or self.output_size is None:
            return None
        return compare_sizes(self.source_size, self.output_size)[1]
