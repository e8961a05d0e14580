from __future__ import annotations

import contextlib
import dataclasses
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from tarpipe.infra.process import (
    CancellationController,
    PipelineSupervisor,
    ScratchSpace,
    TwoPhaseProgressPipeline,
)
from tarpipe.libs.filesystem import measure_size
from tarpipe.plugins.mixins import (
    ArchiveMixin,
    ConvertMixin,
    ExtractMixin,
    VerifyMixin,
)
from tarpipe.plugins.registry import EngineHub, hub
from tarpipe.schemas import (
    ArchiveResult,
    ClientConfig,
    ExitReport,
    PipelineSpec,
    StageSpec,
)

if TYPE_CHECKING:
    from tarpipe.plugins.protocols import CompressorProtocol, PipelineUI

logger = logging.getLogger(__name__)


class ArchiveClient(
    ArchiveMixin,
    ExtractMixin,
    VerifyMixin,
    ConvertMixin,
):
    """Archives, extracts and converts paths through external engines.

    Every operation runs inside its own cancellation scope: while a pipeline
    is running, SIGINT, SIGTERM and SIGHUP terminate all of its stages,
    remove temporary output and exit the program.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        ui: PipelineUI | None = None,
        engines: EngineHub = hub,
    ) -> None:
        """Build the engines named by the configuration.

        Args:
            config: Client configuration; defaults to ``ClientConfig()``.
            ui: Optional event sink for progress and diagnostics. Without
                one, failing stages are logged at ERROR level.
            engines: Registry to build engines from.
        """
        cfg = config or ClientConfig()

        self._measure_sizes = cfg.measure_sizes
        self._integrity_check = cfg.integrity_check
        self._delete_prior = cfg.delete_prior
        self._keep_source = cfg.keep_source
        self._scratch_dir = Path(cfg.scratch_dir).expanduser() if cfg.scratch_dir else None
        self._compress_cfg = cfg.compress_cfg
        self._pipeline_cfg = cfg.pipeline_cfg

        self._engines = engines
        self.packer = engines.build_packer(cfg.pack_cfg)
        self.meter = engines.build_meter(cfg.meter_cfg)
        self.compressor = engines.build_compressor(cfg.compress_cfg.engine, cfg.compress_cfg)

        self._ui = ui

    @contextlib.contextmanager
    def _session(
        self, scratch_parent: Path
    ) -> Iterator[tuple[CancellationController, ScratchSpace]]:
        pcfg = self._pipeline_cfg
        controller = CancellationController(
            grace_period=pcfg.grace_period,
            exit_code=pcfg.cancel_exit_code,
            on_cancel=self._on_cancel,
        )
        with controller, ScratchSpace(scratch_parent, registry=controller) as scratch:
            yield controller, scratch

    def _supervisor(self, controller: CancellationController) -> PipelineSupervisor:
        return PipelineSupervisor(
            controller=controller,
            grace_period=self._pipeline_cfg.grace_period,
        )

    def _run(
        self, pipeline: PipelineSpec, controller: CancellationController
    ) -> ExitReport:
        report = self._supervisor(controller).run(pipeline)
        self._report_failures(report)
        return report

    def _run_two_phase(
        self,
        pack: StageSpec,
        meter: StageSpec,
        compress: StageSpec,
        controller: CancellationController,
        scratch: ScratchSpace,
    ) -> ExitReport:
        pipeline = TwoPhaseProgressPipeline(
            self._supervisor(controller),
            scratch,
            ui=self._ui,
            poll_interval=self._pipeline_cfg.poll_interval,
            grace_period=self._pipeline_cfg.grace_period,
        )
        report = pipeline.run(pack, meter, compress)
        self._report_failures(report)
        return report

    def _build_compressor(self, name: str) -> CompressorProtocol:
        cfg = dataclasses.replace(self._compress_cfg, engine=name)
        return self._engines.build_compressor(name, cfg)

    def _report_failures(self, report: ExitReport) -> None:
        for failure in report.failures:
            if self._ui is not None:
                self._ui.on_stage_failed(failure)
            else:
                logger.error("%s", failure.describe())

    def _on_cancel(self, signum: int | None) -> None:
        if self._ui is not None:
            self._ui.on_cancelled(signum)

    def _measure(self, path: Path) -> int | None:
        if not self._measure_sizes:
            return None
        try:
            return measure_size(path)
        except (OSError, ValueError) as e:
            logger.warning("Could not measure %s: %s", path, e)
            return None

    def _finish(self, result: ArchiveResult) -> ArchiveResult:
        if result.ok:
            logger.info(
                "%s finished: %s -> %s", result.operation, result.source, result.destination
            )
        else:
            logger.info("%s failed: %s", result.operation, result.source)
        if self._ui is not None:
            self._ui.on_complete(result)
        return result
