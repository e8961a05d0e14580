from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from tarpipe.schemas import ExitReport, PipelineSpec

if TYPE_CHECKING:
    from tarpipe.plugins.protocols import _ClientContext

logger = logging.getLogger(__name__)


class VerifyMixin:
    """Mixin providing archive integrity checks."""

    def verify(self: _ClientContext, archive: str | Path) -> ExitReport:
        """Test ``archive`` with the configured compressor.

        Raises:
            FileNotFoundError: If ``archive`` is not a file.
        """
        path = Path(archive).expanduser().absolute()
        if not path.is_file():
            raise FileNotFoundError(f"Archive not found: {path}")

        with self._session(self._scratch_dir or path.parent) as (controller, _):
            report = self._run(
                PipelineSpec([self.compressor.test_stage(path)]), controller
            )

        if report.ok:
            logger.info("Archive %s passed the integrity check", path)
        else:
            logger.debug("Archive %s failed the integrity check", path)
        return report
