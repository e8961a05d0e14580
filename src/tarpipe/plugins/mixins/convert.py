from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from tarpipe.libs.filesystem import ObjectType, object_type
from tarpipe.schemas import ArchiveResult, PipelineSpec

from .archive import part_path
from .extract import archive_stem

if TYPE_CHECKING:
    from tarpipe.plugins.protocols import _ClientContext

logger = logging.getLogger(__name__)

SOURCE_ENGINE = "7zz"
TARGET_ENGINE = "xz"


class ConvertMixin:
    """Mixin re-archiving 7z archives as xz."""

    def convert(
        self: _ClientContext,
        source: str | Path,
        destination_dir: str | Path | None = None,
    ) -> ArchiveResult:
        """Convert a ``.7z`` archive into ``<stem>.xz``.

        The archive is extracted into a scratch directory (under
        ``scratch_dir``, or the destination directory), whose content is
        then re-archived with xz. The scratch directory is always removed.
        The source is deleted afterwards unless ``keep_source`` is set or a
        stage failed.

        Sizes in the result compare the extracted content with the new
        archive.

        Raises:
            FileNotFoundError: If ``source`` is not a file.
            FileExistsError: If the destination exists and is not a file.
        """
        src = Path(source).expanduser().absolute()
        if not src.is_file():
            raise FileNotFoundError(f"Archive not found: {src}")

        dest_dir = (
            Path(destination_dir).expanduser().absolute()
            if destination_dir is not None
            else src.parent
        )
        dest = dest_dir / f"{src.stem}.xz"
        dest_kind = object_type(dest)
        if dest_kind not in (ObjectType.NONEXISTENT, ObjectType.FILE):
            raise FileExistsError(f"{dest} exists and is not a file ({dest_kind})")

        extractor = self._build_compressor(SOURCE_ENGINE)
        creator = self._build_compressor(TARGET_ENGINE)
        if self._ui is not None:
            self._ui.on_start("convert", src, dest)

        unpacked_size: int | None = None
        dest_dir.mkdir(parents=True, exist_ok=True)
        with self._session(self._scratch_dir or dest_dir) as (controller, scratch):
            report = self._run(PipelineSpec([extractor.list_stage(src)]), controller)
            if not report.ok:
                logger.error("Archive %s could not be read", src)
            else:
                work = scratch.make_dir("extract")
                report = self._run(
                    PipelineSpec(
                        [
                            extractor.extract_stage(src),
                            self.meter.meter_stage(src.name),
                            self.packer.unpack_stage(work),
                        ]
                    ),
                    controller,
                )
                if report.ok:
                    unpacked_size = self._measure(work)
                    item = work / archive_stem(src.name, extractor.suffix)
                    if item.exists():
                        pack = self.packer.pack_stage(item)
                        label = item.name
                    else:
                        names = sorted(os.listdir(work)) or ["."]
                        pack = self.packer.pack_stage(work, names=names)
                        label = src.stem

                    part = scratch.track(part_path(dest))
                    report = report + self._pack_into(
                        pack, label, unpacked_size, part, creator, controller, scratch
                    )
                    if report.ok:
                        os.replace(part, dest)

        if report.ok and not self._keep_source:
            logger.info("Deleting source archive %s", src)
            src.unlink()

        output_size = self._measure(dest) if report.ok else None
        return self._finish(
            ArchiveResult("convert", src, dest, report, unpacked_size, output_size)
        )
