"""
Protocols for the external engines a pipeline is built from.

Engines never process data themselves: they only know how to build the
:class:`StageSpec` that runs their program, and how to interpret its exit
status.
"""

from pathlib import Path
from typing import Any, ClassVar, Protocol

from tarpipe.schemas import Diagnosis, Endpoint, StageSpec


class EngineProtocol(Protocol):
    """Minimal interface of every engine plugin."""

    name: ClassVar[str]
    success_code: ClassVar[int]

    def __init__(self, config: Any = None, *, program: str | None = None) -> None:
        ...

    @property
    def program(self) -> str:
        """Executable invoked for this engine."""
        ...

    @classmethod
    def classify(cls, code: int) -> Diagnosis:
        """Maps a non-negative exit code to a diagnosis."""
        ...


class PackerProtocol(EngineProtocol, Protocol):
    """A tar-format packer/unpacker streaming through stdin/stdout."""

    def pack_stage(self, source: Path, *, names: list[str] | None = None) -> StageSpec:
        """Builds the stage that writes a tar stream of ``source`` to stdout.

        Args:
            source: File or directory to pack; it is archived relative to
                its parent directory.
            names: Entries of ``source`` to pack instead of ``source``
                itself. ``source`` is then used as the working directory.
        """
        ...

    def unpack_stage(self, destination: Path) -> StageSpec:
        """Builds the stage that extracts a tar stream from stdin."""
        ...


class MeterProtocol(EngineProtocol, Protocol):
    """A progress meter copying stdin to stdout."""

    def meter_stage(
        self,
        label: str,
        total: int | None = None,
        *,
        stdin: Endpoint | None = None,
        stdout: Endpoint | None = None,
    ) -> StageSpec:
        """Builds the metering stage.

        Args:
            label: Name shown next to the progress bar.
            total: Expected byte count; enables percentage and ETA.
            stdin: Input endpoint, a pipe by default.
            stdout: Output endpoint, a pipe by default.
        """
        ...


class CompressorProtocol(EngineProtocol, Protocol):
    """An archive engine supporting create, extract and test."""

    suffix: ClassVar[str]
    extract_reads_stdin: ClassVar[bool]

    def create_stage(self, destination: Path, *, stdin: Endpoint | None = None) -> StageSpec:
        ...

    def extract_stage(self, archive: Path, *, stdin: Endpoint | None = None) -> StageSpec:
        ...

    def test_stage(self, archive: Path) -> StageSpec:
        ...

    def list_stage(self, archive: Path) -> StageSpec:
        ...
