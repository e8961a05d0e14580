"""
Protocol definitions for the archive client.

The client turns paths into stage pipelines built from the configured
engines, runs them under a cancellation scope and reports the outcome.
"""

from __future__ import annotations

import contextlib
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from tarpipe.schemas import (
    ArchiveResult,
    ExitReport,
    PipelineConfig,
    PipelineSpec,
    StageSpec,
)

from .engine import CompressorProtocol, MeterProtocol, PackerProtocol
from .ui import PipelineUI

if TYPE_CHECKING:
    from tarpipe.infra.process import CancellationController, ScratchSpace


class ClientProtocol(Protocol):
    """High-level archive operations."""

    def archive(
        self,
        source: str | Path,
        destination: str | Path | None = None,
    ) -> ArchiveResult:
        """Packs and compresses a file or directory into one archive.

        Args:
            source: File or directory to archive.
            destination: Archive path, or a directory to place it in.
                Defaults to ``<name>.tar<suffix>`` in the working directory.

        Returns:
            The classified outcome.
        """
        ...

    def unarchive(
        self,
        archive: str | Path,
        destination_dir: str | Path | None = None,
    ) -> ArchiveResult:
        """Extracts an archive into ``destination_dir``.

        Args:
            archive: Archive created by the configured compressor.
            destination_dir: Target directory; defaults to the working
                directory.
        """
        ...

    def verify(self, archive: str | Path) -> ExitReport:
        """Runs the compressor's integrity test on ``archive``."""
        ...

    def convert(
        self,
        source: str | Path,
        destination_dir: str | Path | None = None,
    ) -> ArchiveResult:
        """Re-archives a ``.7z`` archive as ``.xz``.

        Args:
            source: The ``.7z`` archive.
            destination_dir: Where the ``.xz`` archive goes; defaults to the
                source's directory.
        """
        ...


class _ClientContext(ClientProtocol, Protocol):
    """Internal protocol for shared client mixin typing."""

    packer: PackerProtocol
    meter: MeterProtocol
    compressor: CompressorProtocol

    _ui: PipelineUI | None
    _scratch_dir: Path | None
    _measure_sizes: bool
    _integrity_check: bool
    _delete_prior: bool
    _keep_source: bool
    _pipeline_cfg: PipelineConfig

    def _session(
        self, scratch_parent: Path
    ) -> contextlib.AbstractContextManager[tuple[CancellationController, ScratchSpace]]:
        """Cancellation scope plus scratch space for one operation."""
        ...

    def _run(
        self, pipeline: PipelineSpec, controller: CancellationController
    ) -> ExitReport:
        """Runs a linear pipeline and reports its failing stages."""
        ...

    def _run_two_phase(
        self,
        pack: StageSpec,
        meter: StageSpec,
        compress: StageSpec,
        controller: CancellationController,
        scratch: ScratchSpace,
    ) -> ExitReport:
        """Runs archive creation through the FIFO-backed two-phase pipeline."""
        ...

    def _build_compressor(self, name: str) -> CompressorProtocol:
        """Builds another compression engine with the client's settings."""
        ...

    def _pack_into(
        self,
        pack: StageSpec,
        label: str,
        total: int | None,
        part: Path,
        compressor: CompressorProtocol,
        controller: CancellationController,
        scratch: ScratchSpace,
    ) -> ExitReport:
        """Streams ``pack`` through the meter into ``compressor`` writing
        ``part``."""
        ...

    def _measure(self, path: Path) -> int | None:
        """Size of ``path`` if size measurement is enabled."""
        ...

    def _finish(self, result: ArchiveResult) -> ArchiveResult:
        """Reports a completed operation and returns it."""
        ...
