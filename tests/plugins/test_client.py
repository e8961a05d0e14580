import os
import shutil
import stat

import pytest

from tarpipe.plugins.base.client import ArchiveClient
from tarpipe.plugins.engines.xz import XzEngine
from tarpipe.schemas import (
    ClientConfig,
    CompressConfig,
    MeterConfig,
    PackConfig,
    PipelineConfig,
)

needs_tools = pytest.mark.skipif(
    not all(shutil.which(tool) for tool in ("tar", "xz", "pv")),
    reason="tar, xz and pv are required",
)


class _RecordingUI:
    def __init__(self):
        self.events = []

    def on_start(self, operation, source, destination):
        self.events.append(("start", operation))

    def on_flush_start(self, name):
        self.events.append(("flush_start", name))

    def on_flush_tick(self):
        pass

    def on_flush_done(self, name):
        self.events.append(("flush_done", name))

    def on_stage_failed(self, result):
        self.events.append(("failed", result.name))

    def on_cancelled(self, signum):
        self.events.append(("cancelled", signum))

    def on_complete(self, result):
        self.events.append(("complete", result.ok))


def _config(**kwargs) -> ClientConfig:
    return ClientConfig(
        pack_cfg=PackConfig(preserve_acls=False, preserve_xattrs=False),
        meter_cfg=MeterConfig(binary_units=True, quiet=True),
        **kwargs,
    )


@pytest.fixture
def tree(tmp_path):
    old_umask = os.umask(0o022)
    src = tmp_path / "photos"
    (src / "sub").mkdir(parents=True)
    (src / "a.txt").write_text("alpha\n" * 100)
    (src / "sub" / "b.bin").write_bytes(os.urandom(4096))
    (src / "sub" / "b.bin").chmod(0o640)
    (src / "run.sh").write_text("#!/bin/sh\n")
    (src / "run.sh").chmod(0o755)
    yield src
    os.umask(old_umask)


def _snapshot(root):
    return {
        str(p.relative_to(root)): (p.stat().st_size, stat.S_IMODE(p.stat().st_mode))
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


# ================================================================
# Argument validation
# ================================================================


def test_archive_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        ArchiveClient(_config()).archive(tmp_path / "missing")


def test_archive_destination_not_a_file(tmp_path, tree):
    dest = tmp_path / "odd.tar.xz"
    os.mkfifo(dest)
    with pytest.raises(FileExistsError):
        ArchiveClient(_config()).archive(tree, dest)


def test_unarchive_destination_not_a_directory(tmp_path):
    archive = tmp_path / "a.tar.xz"
    archive.write_bytes(b"")
    target = tmp_path / "file"
    target.write_text("x")
    with pytest.raises(NotADirectoryError):
        ArchiveClient(_config()).unarchive(archive, target)


def test_verify_missing_archive(tmp_path):
    with pytest.raises(FileNotFoundError):
        ArchiveClient(_config()).verify(tmp_path / "nope.tar.xz")


def test_compressor_from_config():
    client = ArchiveClient(ClientConfig(compress_cfg=CompressConfig(engine="7z")))
    assert client.compressor.suffix == ".7z"


# ================================================================
# Round trips
# ================================================================


@needs_tools
@pytest.mark.parametrize("two_phase", [False, True])
def test_archive_unarchive_round_trip(tmp_path, tree, two_phase):
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    ui = _RecordingUI()
    client = ArchiveClient(
        _config(pipeline_cfg=PipelineConfig(two_phase=two_phase, poll_interval=0.01)),
        ui=ui,
    )

    result = client.archive(tree, out_dir)

    assert result.ok
    assert result.destination == out_dir / "photos.tar.xz"
    assert result.report.names == ["tar", "pv", "xz"]
    assert result.source_size == 600 + 4096 + len("#!/bin/sh\n")
    assert result.output_size == result.destination.stat().st_size
    assert [p.name for p in out_dir.iterdir()] == ["photos.tar.xz"]
    assert ui.events[0] == ("start", "archive")
    assert ui.events[-1] == ("complete", True)
    if two_phase:
        assert ("flush_start", "xz") in ui.events

    restore = tmp_path / "restore"
    extracted = client.unarchive(result.destination, restore)

    assert extracted.ok
    assert extracted.report.names == ["pv", "xz", "tar"]
    assert _snapshot(restore / "photos") == _snapshot(tree)
    assert (restore / "photos" / "a.txt").read_text() == (tree / "a.txt").read_text()


@needs_tools
def test_archive_default_destination_is_cwd(tmp_path, tree, monkeypatch):
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    result = ArchiveClient(_config(measure_sizes=False)).archive(tree)
    assert result.ok
    assert result.destination == work / "photos.tar.xz"
    assert result.source_size is None
    assert result.percentage is None


@needs_tools
def test_archive_single_file_and_verify(tmp_path):
    src = tmp_path / "notes.txt"
    src.write_text("some notes\n")
    client = ArchiveClient(_config(integrity_check=True))

    result = client.archive(src, tmp_path / "notes.tar.xz")

    assert result.ok
    assert result.report.names == ["tar", "pv", "xz", "xz"]
    assert client.verify(result.destination).ok


@needs_tools
def test_archive_overwrites_existing_file(tmp_path, tree):
    dest = tmp_path / "photos.tar.xz"
    dest.write_bytes(b"stale")
    result = ArchiveClient(_config(delete_prior=True)).archive(tree, dest)
    assert result.ok
    assert dest.read_bytes()[:6] == b"\xfd7zXZ\x00"


# ================================================================
# Failure handling
# ================================================================


@needs_tools
def test_failed_stage_leaves_no_partial_output(tmp_path, tree):
    ui = _RecordingUI()
    client = ArchiveClient(_config(), ui=ui)
    client.compressor = XzEngine(program="false")
    dest = tmp_path / "photos.tar.xz"

    result = client.archive(tree, dest)

    assert not result.ok
    assert result.output_size is None
    assert not dest.exists()
    assert [p.name for p in tmp_path.iterdir()] == ["photos"]
    assert ("failed", "xz") in ui.events
    assert ui.events[-1] == ("complete", False)


@needs_tools
def test_unarchive_unreadable_archive(tmp_path):
    archive = tmp_path / "junk.tar.xz"
    archive.write_bytes(b"this is not an xz stream")
    restore = tmp_path / "restore"

    result = ArchiveClient(_config()).unarchive(archive, restore)

    assert not result.ok
    assert result.report.names == ["xz"]
    assert not restore.exists()


@needs_tools
def test_verify_detects_corruption(tmp_path, tree):
    client = ArchiveClient(_config())
    dest = client.archive(tree, tmp_path / "photos.tar.xz").destination
    data = bytearray(dest.read_bytes())
    data[len(data) // 2] ^= 0xFF
    dest.write_bytes(bytes(data))

    report = client.verify(dest)
    assert not report.ok
    assert report["xz"].returncode == 1


# ================================================================
# Conversion
# ================================================================


@pytest.mark.skipif(
    not all(shutil.which(tool) for tool in ("tar", "xz", "pv", "7zz")),
    reason="tar, xz, pv and 7zz are required",
)
@pytest.mark.parametrize("keep_source", [True, False])
def test_convert_7z_to_xz(tmp_path, tree, keep_source):
    out = tmp_path / "out"
    out.mkdir()
    sevenzip = ArchiveClient(
        _config(compress_cfg=CompressConfig(engine="7zz"))
    )
    source = sevenzip.archive(tree, out).destination
    assert source.name == "photos.tar.7z"

    client = ArchiveClient(_config(keep_source=keep_source))
    result = client.convert(source)

    assert result.ok
    assert result.destination == out / "photos.tar.xz"
    assert source.exists() is keep_source
    assert sorted(p.name for p in out.iterdir() if not p.name.endswith(".7z")) == [
        "photos.tar.xz"
    ]

    restore = tmp_path / "restore"
    assert client.unarchive(result.destination, restore).ok
    assert _snapshot(restore / "photos") == _snapshot(tree)
