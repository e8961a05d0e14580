"""
Launching single pipeline stages and resolving their stdio endpoints.

Every stage runs in its own session so a whole process group can be
signalled at once, and so a terminal interrupt reaches only the supervising
process, which then decides how to tear the stages down.
"""

from __future__ import annotations

__all__ = [
    "ProcessHandle",
    "ProcessStageRunner",
    "close_fd",
    "open_input",
    "open_output",
    "open_stderr",
    "terminate_all",
]

import logging
import os
import shlex
import signal
import subprocess
import time
from collections.abc import Iterable

from tarpipe.infra.process.errors import ResourceError, SpawnError
from tarpipe.schemas import Endpoint, EndpointKind, StageSpec

logger = logging.getLogger(__name__)

# seconds to wait for a SIGKILLed process to be reaped
_REAP_TIMEOUT = 1.0

StdioTarget = int | None


def open_input(endpoint: Endpoint) -> StdioTarget:
    """Resolve a stdin endpoint to something ``Popen`` accepts.

    Pipe endpoints are resolved by the caller, which owns the pipe.

    Returns:
        A file descriptor the caller must close after spawning, or ``None``
        to inherit the parent's stdin.

    Raises:
        ResourceError: If the file or FIFO cannot be opened.
    """
    kind = endpoint.kind
    if kind is EndpointKind.INHERIT:
        return None
    try:
        if kind is EndpointKind.FILE:
            return os.open(endpoint.path, os.O_RDONLY)
        if kind is EndpointKind.FIFO:
            # a blocking open would wait for a writer
            fd = os.open(endpoint.path, os.O_RDONLY | os.O_NONBLOCK)
            os.set_blocking(fd, True)
            return fd
    except OSError as e:
        raise ResourceError(f"Cannot open {endpoint.path} for reading: {e}") from e
    raise ValueError(f"Cannot resolve stdin endpoint {kind}")


def open_output(endpoint: Endpoint) -> StdioTarget:
    """Resolve a stdout endpoint to something ``Popen`` accepts.

    Opening a FIFO for writing blocks until the FIFO has a reader.

    Returns:
        A file descriptor the caller must close after spawning, or
        ``subprocess.DEVNULL`` for discarded output.

    Raises:
        ResourceError: If the file or FIFO cannot be opened.
    """
    kind = endpoint.kind
    if kind is EndpointKind.DISCARD:
        return subprocess.DEVNULL
    try:
        if kind is EndpointKind.FILE:
            return os.open(endpoint.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o666)
        if kind is EndpointKind.FIFO:
            return os.open(endpoint.path, os.O_WRONLY)
    except OSError as e:
        raise ResourceError(f"Cannot open {endpoint.path} for writing: {e}") from e
    raise ValueError(f"Cannot resolve stdout endpoint {kind}")


def open_stderr(endpoint: Endpoint) -> StdioTarget:
    """Resolve a stderr endpoint; files are appended to."""
    kind = endpoint.kind
    if kind is EndpointKind.INHERIT:
        return None
    if kind is EndpointKind.DISCARD:
        return subprocess.DEVNULL
    try:
        return os.open(endpoint.path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o666)
    except OSError as e:
        raise ResourceError(f"Cannot open {endpoint.path} for writing: {e}") from e


def close_fd(fd: StdioTarget) -> None:
    """Close a descriptor returned by the ``open_*`` helpers, if it is one."""
    if fd is None or fd < 0:
        return
    try:
        os.close(fd)
    except OSError as e:
        logger.debug("Closing fd %d failed: %s", fd, e)


class ProcessHandle:
    """A running (or finished) stage process."""

    __slots__ = ("spec", "_process")

    def __init__(self, spec: StageSpec, process: subprocess.Popen[bytes]) -> None:
        self.spec = spec
        self._process = process

    def __repr__(self) -> str:
        state = "alive" if self._process.returncode is None else self._process.returncode
        return f"<ProcessHandle {self.name} pid={self.pid} {state}>"

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        """Exit code once the process has been reaped, else ``None``."""
        return self._process.returncode

    def is_alive(self) -> bool:
        """Non-blocking liveness check; reaps the process if it has exited."""
        return self._process.poll() is None

    def wait(self, timeout: float | None = None) -> int:
        """Block until the process exits and return its exit code.

        Raises:
            subprocess.TimeoutExpired: If ``timeout`` elapses first.
        """
        return self._process.wait(timeout)

    def terminate(self, sig: int = signal.SIGTERM) -> None:
        """Send ``sig`` to the stage's process group (best effort)."""
        if self._process.poll() is not None:
            return
        try:
            os.killpg(self._process.pid, sig)
        except ProcessLookupError:
            pass
        except PermissionError:
            self._process.send_signal(sig)


class ProcessStageRunner:
    """Spawns one :class:`StageSpec` with already-resolved stdin/stdout."""

    def start(
        self,
        spec: StageSpec,
        stdin: StdioTarget,
        stdout: StdioTarget,
    ) -> ProcessHandle:
        """Launch ``spec`` without waiting for it.

        The caller keeps ownership of ``stdin`` and ``stdout`` and should
        close its copies once this returns.

        Raises:
            SpawnError: If the executable is missing or cannot be executed.
            ResourceError: If the stage's stderr file cannot be opened.
        """
        stderr = open_stderr(spec.stderr)
        try:
            process = subprocess.Popen(
                list(spec.argv),
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                cwd=spec.cwd,
                close_fds=True,
                start_new_session=True,
            )
        except OSError as e:
            raise SpawnError(spec.name, spec.argv, e.strerror or str(e)) from e
        finally:
            close_fd(stderr)

        logger.debug(
            "Started stage %s (pid %d): %s",
            spec.name,
            process.pid,
            shlex.join(spec.argv),
        )
        return ProcessHandle(spec, process)


def terminate_all(handles: Iterable[ProcessHandle], grace_period: float) -> None:
    """Terminate every live handle and reap it.

    Sends SIGTERM to each live stage's process group, sleeps ``grace_period``
    unconditionally, SIGKILLs whatever is still alive and reaps everything.
    Never waits longer than the grace period plus a short reap timeout.
    """
    live = [h for h in handles if h.is_alive()]
    if not live:
        return

    for handle in live:
        handle.terminate(signal.SIGTERM)

    time.sleep(grace_period)

    for handle in live:
        if handle.is_alive():
            logger.debug("Stage %s (pid %d) ignored SIGTERM", handle.name, handle.pid)
            handle.terminate(signal.SIGKILL)

    for handle in live:
        try:
            handle.wait(timeout=_REAP_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.error(
                "Stage %s (pid %d) did not exit after SIGKILL",
                handle.name,
                handle.pid,
            )
