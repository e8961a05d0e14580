from __future__ import annotations

from pathlib import Path
from typing import ClassVar

from tarpipe.plugins.base.engine import BaseCompressor
from tarpipe.plugins.registry import hub
from tarpipe.schemas import CompressConfig, Endpoint, Severity, StageSpec

_DEFAULT_LEVEL = 9


@hub.register_engine()
class SevenZipEngine(BaseCompressor):
    """7-Zip (``7zz``): reads the tar stream from stdin and writes the
    archive file itself; extraction opens the archive path directly.
    """

    name = "7zz"
    suffix = ".7z"
    extract_reads_stdin = False
    exit_codes: ClassVar[dict[int, tuple[Severity, str]]] = {
        0: (Severity.OK, "No error (Success)"),
        1: (Severity.WARNING, "Warning (non-fatal error)"),
        2: (Severity.ERROR, "Fatal error"),
        7: (Severity.ERROR, "Command line error"),
        8: (Severity.ERROR, "Not enough memory"),
        255: (Severity.ERROR, "User stopped the process"),
    }

    def __init__(
        self,
        config: CompressConfig | None = None,
        *,
        program: str | None = None,
    ) -> None:
        super().__init__(config, program=program)
        self._config = config or CompressConfig(engine=self.name)

    @property
    def _threads(self) -> str:
        t = self._config.threads
        return "on" if t is None else str(t)

    def create_argv(self, destination: Path) -> list[str]:
        level = self._config.level if self._config.level is not None else _DEFAULT_LEVEL
        return [
            self.program,
            "a",
            "-t7z",
            "-si",
            f"-mx={level}",
            "-m0=lzma2",
            f"-md={self._config.dictionary_mib}m",
            f"-mmt={self._threads}",
            "-bso0",
            str(destination),
        ]

    def extract_argv(self, archive: Path) -> list[str]:
        return [self.program, "x", "-so", f"-mmt={self._threads}", str(archive)]

    def test_argv(self, archive: Path) -> list[str]:
        return [self.program, "t", str(archive)]

    def list_argv(self, archive: Path) -> list[str]:
        return [self.program, "l", str(archive)]

    def create_stage(
        self,
        destination: Path,
        *,
        stdin: Endpoint | None = None,
    ) -> StageSpec:
        return self._stage(
            self.create_argv(destination),
            stdin=stdin or Endpoint.pipe(),
            stdout=Endpoint.discard(),
        )

    def extract_stage(
        self,
        archive: Path,
        *,
        stdin: Endpoint | None = None,
    ) -> StageSpec:
        return self._stage(
            self.extract_argv(archive),
            stdin=stdin or Endpoint.inherit(),
            stdout=Endpoint.pipe(),
        )
