from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from tarpipe.libs.filesystem import ObjectType, object_type
from tarpipe.schemas import ArchiveResult, ExitReport, PipelineSpec, StageSpec

if TYPE_CHECKING:
    from tarpipe.infra.process import CancellationController, ScratchSpace
    from tarpipe.plugins.protocols import CompressorProtocol, _ClientContext

logger = logging.getLogger(__name__)

_ARCHIVABLE = (ObjectType.FILE, ObjectType.DIRECTORY, ObjectType.SYMLINK)


def part_path(destination: Path) -> Path:
    """Temporary output path next to ``destination``, unique per process."""
    return destination.with_name(f"{destination.name}.part.{os.getpid()}")


class ArchiveMixin:
    """Mixin providing archive creation."""

    def archive(
        self: _ClientContext,
        source: str | Path,
        destination: str | Path | None = None,
    ) -> ArchiveResult:
        """Pack and compress ``source`` into a single archive.

        Output is streamed into ``<destination>.part.<pid>`` and renamed over
        the destination only when every stage succeeded; on failure or
        cancellation the partial file is removed.

        Raises:
            FileNotFoundError: If ``source`` does not exist.
            FileExistsError: If the destination exists and is not a file.
            SpawnError: If a stage cannot be launched.
        """
        src = Path(source).expanduser().absolute()
        kind = object_type(src)
        if kind is ObjectType.NONEXISTENT:
            raise FileNotFoundError(f"Source not found: {src}")
        if kind not in _ARCHIVABLE:
            raise ValueError(f"Cannot archive {src}: unsupported type ({kind})")

        dest = _resolve_destination(src, destination, self.compressor.suffix)
        dest_kind = object_type(dest)
        if dest_kind not in (ObjectType.NONEXISTENT, ObjectType.FILE):
            raise FileExistsError(f"{dest} exists and is not a file ({dest_kind})")
        if dest_kind is ObjectType.FILE:
            logger.warning("%s exists and will be overwritten", dest)

        source_size = self._measure(src)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if self._ui is not None:
            self._ui.on_start("archive", src, dest)

        with self._session(self._scratch_dir or dest.parent) as (controller, scratch):
            if self._delete_prior and dest_kind is ObjectType.FILE:
                logger.info("Deleting pre-existing %s", dest)
                dest.unlink(missing_ok=True)

            part = scratch.track(part_path(dest))
            report = self._pack_into(
                self.packer.pack_stage(src),
                src.name,
                source_size,
                part,
                self.compressor,
                controller,
                scratch,
            )
            if report.ok:
                os.replace(part, dest)
                logger.debug("Renamed %s -> %s", part, dest)
                if self._integrity_check:
                    report = report + self._run(
                        PipelineSpec([self.compressor.test_stage(dest)]), controller
                    )

        output_size = self._measure(dest) if report.ok else None
        return self._finish(
            ArchiveResult("archive", src, dest, report, source_size, output_size)
        )

    def _pack_into(
        self: _ClientContext,
        pack: StageSpec,
        label: str,
        total: int | None,
        part: Path,
        compressor: CompressorProtocol,
        controller: CancellationController,
        scratch: ScratchSpace,
    ) -> ExitReport:
        meter = self.meter.meter_stage(label, total)
        compress = compressor.create_stage(part)
        if self._pipeline_cfg.two_phase:
            return self._run_two_phase(pack, meter, compress, controller, scratch)
        return self._run(PipelineSpec([pack, meter, compress]), controller)


def _resolve_destination(
    source: Path,
    destination: str | Path | None,
    suffix: str,
) -> Path:
    """Default to ``<name>.tar<suffix>`` in the working directory, or inside
    ``destination`` when it is a directory.
    """
    name = f"{source.name}.tar{suffix}"
    if destination is None:
        return Path.cwd() / name
    dest = Path(destination).expanduser().absolute()
    if dest.is_dir():
        return dest / name
    return dest
