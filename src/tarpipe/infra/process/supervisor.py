"""
Composition of stage processes into a single streaming pipeline.
"""

from __future__ import annotations

__all__ = ["PipelineSupervisor"]

import contextlib
import logging
import os
from collections.abc import Sequence

from tarpipe.infra.process.cancellation import CancellationController
from tarpipe.infra.process.runner import (
    ProcessHandle,
    ProcessStageRunner,
    close_fd,
    open_input,
    open_output,
    terminate_all,
)
from tarpipe.plugins.classifier import ExitStatusClassifier, classifier
from tarpipe.schemas import ExitReport, PipelineSpec

logger = logging.getLogger(__name__)


class PipelineSupervisor:
    """Runs a :class:`PipelineSpec` as concurrently executing processes.

    Stage *i*'s stdout is connected to stage *i+1*'s stdin through an
    anonymous pipe. All stages are started before any is waited on, and the
    supervisor closes its own copy of every descriptor as soon as the child
    owning it has been spawned, so every reader sees EOF once its writer
    exits.

    Args:
        runner: Stage launcher.
        classifier: Exit status classifier used to build reports.
        controller: Active cancellation controller; spawned stages are
            registered with it.
        grace_period: Seconds between SIGTERM and SIGKILL when stages have
            to be torn down after a setup failure.
    """

    def __init__(
        self,
        *,
        runner: ProcessStageRunner | None = None,
        classifier: ExitStatusClassifier = classifier,
        controller: CancellationController | None = None,
        grace_period: float = 0.2,
    ) -> None:
        self._runner = runner or ProcessStageRunner()
        self._classifier = classifier
        self._controller = controller
        self._grace_period = grace_period

    def run(self, pipeline: PipelineSpec) -> ExitReport:
        """Start every stage, wait for all of them and classify the result.

        Raises:
            SpawnError: If a stage cannot be launched. Stages that were
                already running are terminated and reaped first.
            ResourceError: If a file or FIFO endpoint cannot be opened.
        """
        handles = self.start(pipeline)
        return self.wait(handles)

    def start(self, pipeline: PipelineSpec) -> list[ProcessHandle]:
        """Spawn every stage without waiting.

        Returns:
            One handle per stage, in definition order.
        """
        handles: list[ProcessHandle] = []
        prev_read: int | None = None
        try:
            for stage in pipeline:
                stdin = prev_read if stage.stdin.is_pipe else open_input(stage.stdin)
                prev_read = None
                try:
                    if stage.stdout.is_pipe:
                        prev_read, stdout = os.pipe()
                    else:
                        stdout = open_output(stage.stdout)
                    try:
                        with self._deferred_cancel():
                            handle = self._runner.start(stage, stdin, stdout)
                            handles.append(handle)
                            if self._controller is not None:
                                self._controller.register_process(handle)
                    finally:
                        close_fd(stdout)
                finally:
                    close_fd(stdin)
        except BaseException as e:
            close_fd(prev_read)
            if handles:
                logger.error("Aborting pipeline %s: %s", pipeline.names, e)
                terminate_all(handles, self._grace_period)
            raise

        logger.debug(
            "Started pipeline %s (pids %s)",
            " | ".join(pipeline.names),
            [h.pid for h in handles],
        )
        return handles

    def _deferred_cancel(self) -> contextlib.AbstractContextManager[None]:
        """Keep a signal from landing between a spawn and its registration."""
        if self._controller is None:
            return contextlib.nullcontext()
        return self._controller.deferred()

    def wait(self, handles: Sequence[ProcessHandle]) -> ExitReport:
        """Reap every handle and return their statuses in definition order.

        If waiting is interrupted by an exception, the remaining stages are
        terminated and reaped before it propagates.
        """
        statuses: list[tuple[str, int]] = []
        try:
            for handle in handles:
                code = handle.wait()
                logger.debug(
                    "Stage %s (pid %d) exited with %d", handle.name, handle.pid, code
                )
                statuses.append((handle.name, code))
        except BaseException:
            terminate_all(handles, self._grace_period)
            raise
        return self._classifier.report(statuses)
