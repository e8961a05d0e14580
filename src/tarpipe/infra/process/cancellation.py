"""
Signal-driven cancellation of a running pipeline.

A :class:`CancellationController` owns the registry of live stage processes
and scratch artifacts for one run. While it is active, SIGINT, SIGTERM and
SIGHUP tear the run down: every live stage process group is terminated, the
artifacts are removed and :class:`CancellationError` is raised, which exits
the program with a fixed status.
"""

from __future__ import annotations

__all__ = ["CancelState", "CancellationController", "signal_name"]

import contextlib
import logging
import signal
import threading
import types
from collections.abc import Callable, Iterable, Iterator
from enum import StrEnum
from pathlib import Path
from typing import Any, Self

from tarpipe.infra.process.errors import CancellationError
from tarpipe.infra.process.runner import ProcessHandle, terminate_all
from tarpipe.infra.process.scratch import remove_artifact

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS: tuple[signal.Signals, ...] = (
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGHUP,
)


class CancelState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    CANCEL_REQUESTED = "cancel_requested"
    TEARING_DOWN = "tearing_down"
    DONE = "done"


_TRANSITIONS: dict[CancelState, frozenset[CancelState]] = {
    CancelState.IDLE: frozenset({CancelState.RUNNING}),
    CancelState.RUNNING: frozenset({CancelState.CANCEL_REQUESTED, CancelState.DONE}),
    CancelState.CANCEL_REQUESTED: frozenset({CancelState.TEARING_DOWN}),
    CancelState.TEARING_DOWN: frozenset({CancelState.DONE}),
    CancelState.DONE: frozenset(),
}


class CancellationController:
    """Scoped signal handling plus teardown for a single pipeline run.

    Use as a context manager: entering installs the handlers and moves the
    controller to ``RUNNING``; leaving restores the previous handlers.

    Args:
        grace_period: Seconds between SIGTERM and SIGKILL during teardown.
        exit_code: Status carried by the raised :class:`CancellationError`.
        signals: Signals that trigger cancellation.
        on_cancel: Optional callback invoked with the signal number once
            cancellation starts, before any process is terminated.
    """

    def __init__(
        self,
        *,
        grace_period: float = 0.2,
        exit_code: int = 1,
        signals: Iterable[int] = DEFAULT_SIGNALS,
        on_cancel: Callable[[int | None], None] | None = None,
    ) -> None:
        self._grace_period = grace_period
        self._exit_code = exit_code
        self._signals = tuple(signals)
        self._on_cancel = on_cancel
        self._state = CancelState.IDLE
        self._previous: dict[int, Any] = {}
        self._processes: list[ProcessHandle] = []
        self._artifacts: list[Path] = []
        self._defer_depth = 0
        self._pending: int | None = None

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        self.finish()

    @property
    def state(self) -> CancelState:
        return self._state

    @property
    def processes(self) -> list[ProcessHandle]:
        return list(self._processes)

    @property
    def artifacts(self) -> list[Path]:
        return list(self._artifacts)

    def start(self) -> None:
        """Enter ``RUNNING`` and install the signal handlers."""
        self._transition(CancelState.RUNNING)
        self._install_handlers()

    def finish(self) -> None:
        """Leave the active scope after a normal (or failed) run."""
        self._restore_handlers()
        if self._state is CancelState.RUNNING:
            self._transition(CancelState.DONE)

    def register_process(self, handle: ProcessHandle) -> None:
        self._processes.append(handle)

    def register_artifact(self, path: Path) -> None:
        self._artifacts.append(Path(path))

    def cancel(self, signum: int | None = None) -> None:
        """Tear the run down and raise :class:`CancellationError`.

        Only the first call while ``RUNNING`` does anything; later calls
        (a second signal, or a call after the run finished) return quietly.
        The controlled signals are ignored until teardown has finished, then
        the previous handlers are restored.

        Raises:
            CancellationError: Always, on the first call while running.
        """
        if self._state is not CancelState.RUNNING:
            logger.debug("Ignoring cancellation in state %s", self._state)
            return

        self._transition(CancelState.CANCEL_REQUESTED)
        self._ignore_signals()
        logger.warning("Cancelling pipeline (%s)", signal_name(signum))
        if self._on_cancel is not None:
            try:
                self._on_cancel(signum)
            except Exception as e:
                logger.error("Cancellation callback failed: %s", e)

        self._transition(CancelState.TEARING_DOWN)
        try:
            terminate_all(self._processes, self._grace_period)
        finally:
            while self._artifacts:
                remove_artifact(self._artifacts.pop())
            self._restore_handlers()
            self._transition(CancelState.DONE)
        raise CancellationError(self._exit_code, signum)

    @contextlib.contextmanager
    def deferred(self) -> Iterator[None]:
        """Hold back signal-driven cancellation while the block runs.

        A signal received inside the block is acted on when the outermost
        deferred block exits, so a process spawned inside it is always
        registered before teardown starts.
        """
        self._defer_depth += 1
        try:
            yield
        finally:
            self._defer_depth -= 1
            if not self._defer_depth and self._pending is not None:
                signum, self._pending = self._pending, None
                self.cancel(signum)

    def _handle_signal(self, signum: int, frame: types.FrameType | None) -> None:
        if self._defer_depth:
            logger.debug("Deferring %s", signal_name(signum))
            if self._pending is None:
                self._pending = signum
            return
        self.cancel(signum)

    def _install_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread; signal handlers not installed")
            return
        for sig in self._signals:
            self._previous[sig] = signal.signal(sig, self._handle_signal)

    def _ignore_signals(self) -> None:
        for sig in self._previous:
            signal.signal(sig, signal.SIG_IGN)

    def _restore_handlers(self) -> None:
        while self._previous:
            sig, handler = self._previous.popitem()
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    def _transition(self, new: CancelState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Illegal transition {self._state} -> {new}")
        self._state = new


def signal_name(signum: int | None) -> str:
    if signum is None:
        return "requested"
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"signal {signum}"
