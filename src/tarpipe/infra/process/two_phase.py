"""
Archive creation split around a named pipe.

Phase 1 runs ``pack | meter`` in the foreground with the meter writing into
a FIFO that a compressor, started first and left running in the background,
reads from. Phase 2 polls the compressor until it has flushed its output,
so the user sees a liveness indicator for the work that happens after the
metered stream has ended.
"""

from __future__ import annotations

__all__ = ["TwoPhaseProgressPipeline"]

import dataclasses
import logging
import os
import time
from pathlib import Path
from typing import TYPE_CHECKING

from tarpipe.infra.process.errors import ResourceError
from tarpipe.infra.process.runner import ProcessHandle, close_fd, terminate_all
from tarpipe.infra.process.scratch import ScratchSpace
from tarpipe.infra.process.supervisor import PipelineSupervisor
from tarpipe.schemas import Endpoint, ExitReport, PipelineSpec, StageSpec

if TYPE_CHECKING:
    from tarpipe.plugins.protocols import PipelineUI

logger = logging.getLogger(__name__)


class TwoPhaseProgressPipeline:
    """Runs ``pack | meter > fifo`` alongside a background ``compress < fifo``.

    Args:
        supervisor: Spawns and reaps the stages; its controller (if any)
            sees all three processes.
        scratch: Where the FIFO is created.
        ui: Receives the phase 2 spinner callbacks.
        poll_interval: Seconds between liveness polls in phase 2.
        grace_period: Seconds between SIGTERM and SIGKILL when the
            compressor has to be torn down after a phase 1 error.
    """

    def __init__(
        self,
        supervisor: PipelineSupervisor,
        scratch: ScratchSpace,
        *,
        ui: PipelineUI | None = None,
        poll_interval: float = 0.12,
        grace_period: float = 0.2,
    ) -> None:
        self._supervisor = supervisor
        self._scratch = scratch
        self._ui = ui
        self._poll_interval = poll_interval
        self._grace_period = grace_period

    def run(
        self,
        pack: StageSpec,
        meter: StageSpec,
        compress: StageSpec,
    ) -> ExitReport:
        """Run both phases and merge their statuses.

        The stdout of ``meter`` and the stdin of ``compress`` are rewired to
        a fresh FIFO in the scratch space; whatever they were set to is
        ignored.

        If the compressor dies while phase 1 is still streaming, the meter
        is killed by SIGPIPE on its next write, which the classifier
        reports as a broken pipe.

        Returns:
            A report with entries for pack, meter and compress, in that
            order.

        Raises:
            ResourceError: If the FIFO cannot be created or opened.
            SpawnError: If any of the three stages cannot be launched. Stages
                already running are terminated and reaped first.
        """
        fifo = self._scratch.make_fifo()
        meter = dataclasses.replace(meter, stdout=Endpoint.fifo(fifo))
        compress = dataclasses.replace(compress, stdin=Endpoint.fifo(fifo))

        foreground, background = self._start(fifo, pack, meter, compress)
        try:
            first = self._supervisor.wait(foreground)
        except BaseException:
            terminate_all(background, self._grace_period)
            raise
        if not first.ok:
            logger.debug("Phase 1 finished with %s", first.returncodes)

        second = self._flush(compress.name, background)
        return first + second

    def _start(
        self,
        fifo: Path,
        pack: StageSpec,
        meter: StageSpec,
        compress: StageSpec,
    ) -> tuple[list[ProcessHandle], list[ProcessHandle]]:
        """Start the compressor, then phase 1, while holding both FIFO ends.

        The guard reader lets the meter open the write end without
        blocking. The guard writer keeps the compressor from seeing EOF
        before the meter is attached. Both are closed once every stage is
        running, leaving the meter as the only writer and the compressor as
        the only reader.
        """
        try:
            guard_r = os.open(fifo, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as e:
            raise ResourceError(f"Cannot open FIFO {fifo}: {e}") from e

        guard_w: int | None = None
        background: list[ProcessHandle] = []
        try:
            try:
                guard_w = os.open(fifo, os.O_WRONLY)
            except OSError as e:
                raise ResourceError(f"Cannot open FIFO {fifo}: {e}") from e
            background = self._supervisor.start(PipelineSpec([compress]))
            foreground = self._supervisor.start(PipelineSpec([pack, meter]))
        except BaseException:
            terminate_all(background, self._grace_period)
            raise
        finally:
            close_fd(guard_w)
            close_fd(guard_r)
        return foreground, background

    def _flush(self, name: str, background: list[ProcessHandle]) -> ExitReport:
        ui = self._ui
        if ui is not None:
            ui.on_flush_start(name)
        started = time.monotonic()
        while any(h.is_alive() for h in background):
            if ui is not None:
                ui.on_flush_tick()
            time.sleep(self._poll_interval)
        report = self._supervisor.wait(background)
        logger.debug("Phase 2 finished after %.2fs", time.monotonic() - started)
        if ui is not None:
            ui.on_flush_done(name)
        return report
