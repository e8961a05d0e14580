from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from tarpipe.libs.filesystem import ObjectType, object_type
from tarpipe.schemas import ArchiveResult, Endpoint, PipelineSpec

if TYPE_CHECKING:
    from tarpipe.plugins.protocols import CompressorProtocol, _ClientContext

logger = logging.getLogger(__name__)


def archive_stem(name: str, suffix: str) -> str:
    """Strip ``.tar<suffix>`` (or just ``<suffix>``) from an archive name.

    >>> archive_stem("photos.tar.xz", ".xz")
    'photos'
    """
    for ending in (f".tar{suffix}", suffix):
        if name.endswith(ending) and len(name) > len(ending):
            return name[: -len(ending)]
    return name


class ExtractMixin:
    """Mixin providing archive extraction."""

    def unarchive(
        self: _ClientContext,
        archive: str | Path,
        destination_dir: str | Path | None = None,
    ) -> ArchiveResult:
        """Extract ``archive`` into ``destination_dir``.

        The archive is first checked for readability; if that fails, nothing
        is extracted and the returned report holds the check's status.

        Raises:
            FileNotFoundError: If ``archive`` is not a file.
            NotADirectoryError: If ``destination_dir`` exists and is not a
                directory.
        """
        src = Path(archive).expanduser().absolute()
        if not src.is_file():
            raise FileNotFoundError(f"Archive not found: {src}")

        dest_dir = (
            Path(destination_dir).expanduser().absolute()
            if destination_dir is not None
            else Path.cwd()
        )
        kind = object_type(dest_dir)
        if kind not in (ObjectType.NONEXISTENT, ObjectType.DIRECTORY):
            raise NotADirectoryError(f"{dest_dir} exists and is not a folder ({kind})")

        source_size = self._measure(src)
        if self._ui is not None:
            self._ui.on_start("unarchive", src, dest_dir)

        compressor = self.compressor
        with self._session(self._scratch_dir or dest_dir) as (controller, _):
            report = self._run(PipelineSpec([compressor.list_stage(src)]), controller)
            if not report.ok:
                logger.error("Archive %s could not be read", src)
            else:
                dest_dir.mkdir(parents=True, exist_ok=True)
                report = self._run(
                    _extract_pipeline(self, compressor, src, dest_dir, source_size),
                    controller,
                )

        extracted = dest_dir / archive_stem(src.name, compressor.suffix)
        output_size = (
            self._measure(extracted) if report.ok and extracted.exists() else None
        )
        return self._finish(
            ArchiveResult("unarchive", src, dest_dir, report, source_size, output_size)
        )


def _extract_pipeline(
    client: _ClientContext,
    compressor: CompressorProtocol,
    archive: Path,
    dest_dir: Path,
    archive_size: int | None,
) -> PipelineSpec:
    """``meter < archive | decompress | unpack`` when the compressor reads
    stdin, ``decompress archive | meter | unpack`` otherwise.

    Only the first form knows the size of the metered stream.
    """
    unpack = client.packer.unpack_stage(dest_dir)
    if compressor.extract_reads_stdin:
        meter = client.meter.meter_stage(
            archive.name, archive_size, stdin=Endpoint.file(archive)
        )
        return PipelineSpec(
            [meter, compressor.extract_stage(archive, stdin=Endpoint.pipe()), unpack]
        )
    meter = client.meter.meter_stage(archive.name)
    return PipelineSpec([compressor.extract_stage(archive), meter, unpack])
