import os
import signal
import subprocess
import time

import pytest

from tarpipe.infra.process.errors import ResourceError, SpawnError
from tarpipe.infra.process.runner import (
    ProcessStageRunner,
    close_fd,
    open_input,
    open_output,
    terminate_all,
)
from tarpipe.schemas import Endpoint, StageSpec


def _spec(*argv: str, name: str = "tar", **kwargs) -> StageSpec:
    return StageSpec(name=name, argv=argv, **kwargs)


# ================================================================
# Endpoint resolution
# ================================================================


def test_open_input_inherit_is_none():
    assert open_input(Endpoint.inherit()) is None


def test_open_input_missing_file(tmp_path):
    with pytest.raises(ResourceError):
        open_input(Endpoint.file(tmp_path / "missing"))


def test_open_input_fifo_does_not_block(tmp_path):
    fifo = tmp_path / "stream"
    os.mkfifo(fifo)
    fd = open_input(Endpoint.fifo(fifo))
    try:
        assert fd is not None
        assert os.get_blocking(fd)
    finally:
        close_fd(fd)


def test_open_output_discard_and_file(tmp_path):
    assert open_output(Endpoint.discard()) == subprocess.DEVNULL

    target = tmp_path / "out"
    target.write_text("old content")
    fd = open_output(Endpoint.file(target))
    close_fd(fd)
    assert target.read_text() == ""


def test_close_fd_ignores_sentinels():
    close_fd(None)
    close_fd(subprocess.DEVNULL)


# ================================================================
# ProcessStageRunner
# ================================================================


def test_start_and_wait_exit_code():
    handle = ProcessStageRunner().start(_spec("sh", "-c", "exit 3"), None, None)
    assert handle.name == "tar"
    assert handle.wait() == 3
    assert handle.returncode == 3
    assert not handle.is_alive()


def test_start_writes_to_file(tmp_path):
    out = tmp_path / "out.txt"
    fd = open_output(Endpoint.file(out))
    try:
        handle = ProcessStageRunner().start(_spec("sh", "-c", "printf hello"), None, fd)
    finally:
        close_fd(fd)
    assert handle.wait() == 0
    assert out.read_text() == "hello"


def test_missing_executable_raises_spawn_error():
    with pytest.raises(SpawnError) as exc:
        ProcessStageRunner().start(_spec("/nonexistent/bin/tar"), None, None)
    assert exc.value.stage == "tar"
    assert "/nonexistent/bin/tar" in str(exc.value)


def test_stage_stderr_to_file(tmp_path):
    log = tmp_path / "stderr.log"
    spec = _spec("sh", "-c", "echo oops >&2", stderr=Endpoint.file(log))
    assert ProcessStageRunner().start(spec, None, subprocess.DEVNULL).wait() == 0
    assert log.read_text().strip() == "oops"


def test_terminate_signals_process_group():
    handle = ProcessStageRunner().start(_spec("sleep", "30"), None, None)
    assert handle.is_alive()
    handle.terminate(signal.SIGTERM)
    assert handle.wait(timeout=5) == -signal.SIGTERM


def test_terminate_after_exit_is_noop():
    handle = ProcessStageRunner().start(_spec("true"), None, None)
    handle.wait()
    handle.terminate()
    assert handle.returncode == 0


# ================================================================
# terminate_all
# ================================================================


def test_terminate_all_kills_stragglers():
    runner = ProcessStageRunner()
    polite = runner.start(_spec("sleep", "30"), None, None)
    stubborn = runner.start(
        _spec("sh", "-c", "trap '' TERM; while :; do sleep 0.05; done"), None, None
    )
    time.sleep(0.2)  # let the trap be installed

    started = time.monotonic()
    terminate_all([polite, stubborn], grace_period=0.2)
    elapsed = time.monotonic() - started

    assert polite.returncode == -signal.SIGTERM
    assert stubborn.returncode == -signal.SIGKILL
    assert elapsed < 3


def test_terminate_all_with_nothing_alive():
    handle = ProcessStageRunner().start(_spec("true"), None, None)
    handle.wait()
    started = time.monotonic()
    terminate_all([handle], grace_period=5)
    assert time.monotonic() - started < 1
