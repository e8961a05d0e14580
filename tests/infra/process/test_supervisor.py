import os
import time

import pytest

from tarpipe.infra.process.cancellation import CancellationController
from tarpipe.infra.process.errors import SpawnError
from tarpipe.infra.process.supervisor import PipelineSupervisor
from tarpipe.schemas import Endpoint, PipelineSpec, Severity, StageSpec


def _sh(name: str, script: str, **kwargs) -> StageSpec:
    return StageSpec(name=name, argv=("sh", "-c", script), **kwargs)


def _assert_reaped(pids):
    for pid in pids:
        with pytest.raises(ChildProcessError):
            os.waitpid(pid, os.WNOHANG)


# ================================================================
# Data flow
# ================================================================


def test_three_stage_pipeline_streams_data(tmp_path):
    out = tmp_path / "out.txt"
    pipeline = PipelineSpec(
        [
            _sh("tar", "printf 'hello world\\n'"),
            StageSpec("pv", ("tr", "a-z", "A-Z"), stdin=Endpoint.pipe()),
            StageSpec("xz", ("cat",), stdin=Endpoint.pipe(), stdout=Endpoint.file(out)),
        ]
    )

    report = PipelineSupervisor().run(pipeline)

    assert report.ok
    assert report.names == ["tar", "pv", "xz"]
    assert out.read_text() == "HELLO WORLD\n"


def test_reader_sees_eof_when_writer_exits(tmp_path):
    """A consumer that reads to EOF must terminate once its producer does."""
    out = tmp_path / "count"
    pipeline = PipelineSpec(
        [
            _sh("tar", "seq 1 1000"),
            StageSpec("xz", ("wc", "-l"), stdin=Endpoint.pipe(), stdout=Endpoint.file(out)),
        ]
    )
    started = time.monotonic()
    report = PipelineSupervisor().run(pipeline)
    assert report.ok
    assert out.read_text().strip() == "1000"
    assert time.monotonic() - started < 5


def test_large_stream_does_not_deadlock(tmp_path):
    out = tmp_path / "blob"
    pipeline = PipelineSpec(
        [
            StageSpec("tar", ("head", "-c", "2000000", "/dev/zero")),
            StageSpec("pv", ("cat",), stdin=Endpoint.pipe()),
            StageSpec("xz", ("cat",), stdin=Endpoint.pipe(), stdout=Endpoint.file(out)),
        ]
    )
    assert PipelineSupervisor().run(pipeline).ok
    assert out.stat().st_size == 2_000_000


# ================================================================
# Exit status collection
# ================================================================


@pytest.mark.parametrize("n", [2, 3, 5])
def test_all_zero_is_success_with_n_entries(n):
    stages = [_sh("tar", "true")]
    stages += [_sh("pv", "cat", stdin=Endpoint.pipe()) for _ in range(n - 2)]
    stages.append(_sh("xz", "cat", stdin=Endpoint.pipe(), stdout=Endpoint.discard()))

    report = PipelineSupervisor().run(PipelineSpec(stages))

    assert report.ok
    assert len(report) == n
    assert report.returncodes == [0] * n


def test_statuses_follow_definition_order_not_completion_order():
    pipeline = PipelineSpec(
        [
            _sh("tar", "sleep 0.3; exit 0"),
            _sh("pv", "exit 4", stdin=Endpoint.pipe()),
            _sh("xz", "cat >/dev/null; exit 0", stdin=Endpoint.pipe(), stdout=Endpoint.discard()),
        ]
    )
    report = PipelineSupervisor().run(pipeline)
    assert report.names == ["tar", "pv", "xz"]
    assert report.returncodes[1] == 4


def test_single_failure_uses_engine_table():
    pipeline = PipelineSpec(
        [
            _sh("tar", "exit 1"),
            _sh("pv", "cat", stdin=Endpoint.pipe()),
            _sh("7zz", "cat >/dev/null; exit 8", stdin=Endpoint.pipe(), stdout=Endpoint.discard()),
        ]
    )
    report = PipelineSupervisor().run(pipeline)

    assert not report.ok
    assert report["tar"].diagnosis.message.startswith("Warning (some files differ")
    assert report["tar"].diagnosis.severity is Severity.WARNING
    assert report["7zz"].diagnosis.message == "Not enough memory"
    assert [r.name for r in report.failures] == ["tar", "7zz"]


def test_downstream_success_does_not_hide_upstream_failure():
    pipeline = PipelineSpec(
        [
            _sh("tar", "exit 2"),
            _sh("xz", "cat >/dev/null", stdin=Endpoint.pipe(), stdout=Endpoint.discard()),
        ]
    )
    report = PipelineSupervisor().run(pipeline)
    assert report["xz"].ok
    assert not report.ok


# ================================================================
# Reaping
# ================================================================


def test_no_zombies_after_success_and_failure():
    controller = CancellationController()
    supervisor = PipelineSupervisor(controller=controller)
    supervisor.run(
        PipelineSpec(
            [_sh("tar", "true"), _sh("xz", "cat", stdin=Endpoint.pipe(), stdout=Endpoint.discard())]
        )
    )
    supervisor.run(
        PipelineSpec(
            [_sh("tar", "exit 2"), _sh("xz", "exit 1", stdin=Endpoint.pipe(), stdout=Endpoint.discard())]
        )
    )
    handles = controller.processes
    assert len(handles) == 4
    assert all(h.returncode is not None for h in handles)
    _assert_reaped(h.pid for h in handles)


def test_spawn_failure_terminates_started_stages():
    controller = CancellationController()
    pipeline = PipelineSpec(
        [
            StageSpec("tar", ("sleep", "30")),
            StageSpec("pv", ("/nonexistent/pv",), stdin=Endpoint.pipe()),
            StageSpec("xz", ("cat",), stdin=Endpoint.pipe(), stdout=Endpoint.discard()),
        ]
    )

    started = time.monotonic()
    with pytest.raises(SpawnError) as exc:
        PipelineSupervisor(controller=controller, grace_period=0.1).run(pipeline)

    assert exc.value.stage == "pv"
    assert time.monotonic() - started < 5
    handles = controller.processes
    assert [h.name for h in handles] == ["tar"]
    assert handles[0].returncode is not None
    _assert_reaped([handles[0].pid])


def test_start_then_wait():
    supervisor = PipelineSupervisor()
    handles = supervisor.start(
        PipelineSpec([_sh("tar", "exit 0"), _sh("pv", "exit 0", stdin=Endpoint.pipe(), stdout=Endpoint.discard())])
    )
    assert [h.name for h in handles] == ["tar", "pv"]
    assert supervisor.wait(handles).ok
