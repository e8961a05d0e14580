"""
Common behavior shared by external engine plugins.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Any, ClassVar

from tarpipe.schemas import Diagnosis, Endpoint, Severity, StageSpec

UNKNOWN = "Unknown"


class BaseEngine(abc.ABC):
    """An external program invoked as a black-box pipeline stage.

    Subclasses declare the engine key (``name``) used for stage names and
    exit classification, and a fixed table mapping exit codes to
    diagnoses.

    Attributes:
        name: Engine key, also the default executable name.
        exit_codes: Known exit codes and their (severity, message).
        success_code: Exit code meaning success.
    """

    name: ClassVar[str]
    exit_codes: ClassVar[dict[int, tuple[Severity, str]]] = {}
    success_code: ClassVar[int] = 0

    def __init__(self, config: Any = None, *, program: str | None = None) -> None:
        self._program = program or self.name

    @property
    def program(self) -> str:
        return self._program

    @classmethod
    def classify(cls, code: int) -> Diagnosis:
        """Map a non-negative exit code to a diagnosis.

        Codes missing from the table are reported as ``Unknown`` with
        warning severity.
        """
        entry = cls.exit_codes.get(code)
        if entry is None:
            return Diagnosis(Severity.WARNING, UNKNOWN)
        severity, message = entry
        return Diagnosis(severity, message)

    def _stage(
        self,
        argv: list[str],
        *,
        stdin: Endpoint | None = None,
        stdout: Endpoint | None = None,
        stderr: Endpoint | None = None,
        cwd: Path | None = None,
    ) -> StageSpec:
        return StageSpec(
            name=self.name,
            argv=tuple(argv),
            stdin=stdin or Endpoint.inherit(),
            stdout=stdout or Endpoint.pipe(),
            stderr=stderr or Endpoint.inherit(),
            cwd=cwd,
        )


class BaseCompressor(BaseEngine):
    """An archive/compression engine with create, extract and test support.

    Attributes:
        suffix: File suffix appended after ``.tar`` for created archives.
        extract_reads_stdin: Whether extraction reads the archive from
            stdin (so the meter can sit in front of it) rather than opening
            the archive path itself.
    """

    suffix: ClassVar[str]
    extract_reads_stdin: ClassVar[bool] = True

    @abc.abstractmethod
    def create_stage(
        self,
        destination: Path,
        *,
        stdin: Endpoint | None = None,
    ) -> StageSpec:
        """Stage that compresses stdin into ``destination``."""
        ...

    @abc.abstractmethod
    def extract_stage(
        self,
        archive: Path,
        *,
        stdin: Endpoint | None = None,
    ) -> StageSpec:
        """Stage that writes the decompressed tar stream to stdout."""
        ...

    @abc.abstractmethod
    def test_argv(self, archive: Path) -> list[str]:
        """Command testing archive integrity."""
        ...

    def list_argv(self, archive: Path) -> list[str]:
        """Command listing archive contents (readability check)."""
        return self.test_argv(archive)

    def test_stage(self, archive: Path) -> StageSpec:
        return self._stage(
            self.test_argv(archive),
            stdout=Endpoint.discard(),
            stderr=Endpoint.discard(),
        )

    def list_stage(self, archive: Path) -> StageSpec:
        return self._stage(
            self.list_argv(archive),
            stdout=Endpoint.discard(),
            stderr=Endpoint.discard(),
        )
