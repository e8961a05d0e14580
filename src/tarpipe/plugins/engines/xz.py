from __future__ import annotations

from pathlib import Path
from typing import ClassVar

from tarpipe.plugins.base.engine import BaseCompressor
from tarpipe.plugins.registry import hub
from tarpipe.schemas import CompressConfig, Endpoint, Severity, StageSpec


@hub.register_engine()
class XzEngine(BaseCompressor):
    """xz: LZMA2 stream compressor reading stdin and writing stdout."""

    name = "xz"
    suffix = ".xz"
    extract_reads_stdin = True
    exit_codes: ClassVar[dict[int, tuple[Severity, str]]] = {
        0: (Severity.OK, "No error (Success)"),
        1: (Severity.ERROR, "Error"),
        2: (Severity.WARNING, "Warning"),
    }

    def __init__(
        self,
        config: CompressConfig | None = None,
        *,
        program: str | None = None,
    ) -> None:
        super().__init__(config, program=program)
        self._config = config or CompressConfig(engine=self.name)

    def create_argv(self) -> list[str]:
        cfg = self._config
        filters = f"dict={cfg.dictionary_mib}MiB"
        if cfg.level is not None:
            filters = f"preset={cfg.level},{filters}"
        argv = [self.program, f"--lzma2={filters}", "--quiet"]
        if cfg.threads is not None:
            argv.append(f"--threads={cfg.threads}")
        return argv

    def extract_argv(self) -> list[str]:
        argv = [self.program, "-dc"]
        if self._config.threads is not None:
            argv.append(f"-T{self._config.threads}")
        return argv

    def test_argv(self, archive: Path) -> list[str]:
        return [self.program, "-t", "--", str(archive)]

    def list_argv(self, archive: Path) -> list[str]:
        return [self.program, "-l", "--", str(archive)]

    def create_stage(
        self,
        destination: Path,
        *,
        stdin: Endpoint | None = None,
    ) -> StageSpec:
        return self._stage(
            self.create_argv(),
            stdin=stdin or Endpoint.pipe(),
            stdout=Endpoint.file(destination),
        )

    def extract_stage(
        self,
        archive: Path,
        *,
        stdin: Endpoint | None = None,
    ) -> StageSpec:
        return self._stage(
            self.extract_argv(),
            stdin=stdin or Endpoint.file(archive),
            stdout=Endpoint.pipe(),
        )
