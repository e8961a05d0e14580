import pytest

from tarpipe.plugins import registry
from tarpipe.plugins.engines.pv import PvEngine
from tarpipe.plugins.engines.sevenzip import SevenZipEngine
from tarpipe.plugins.engines.tar import TarEngine
from tarpipe.plugins.engines.xz import XzEngine


def test_builtin_engines_are_discoverable():
    names = registry.hub.list_engines(load_all=True)
    assert {"tar", "pv", "xz", "7zz"} <= set(names)


@pytest.mark.parametrize(
    "key, cls",
    [
        ("tar", TarEngine),
        ("PV", PvEngine),
        (" xz ", XzEngine),
        ("7zz", SevenZipEngine),
        ("7z", SevenZipEngine),
        ("sevenzip", SevenZipEngine),
    ],
)
def test_get_engine_class(key, cls):
    assert registry.hub.get_engine_class(key) is cls


def test_unknown_engine_returns_none():
    assert registry.hub.get_engine_class("zstd") is None
    with pytest.raises(ValueError):
        registry.hub.build_engine("zstd")


def test_empty_key_rejected():
    with pytest.raises(ValueError):
        registry.hub.get_engine_class("  ")


def test_build_compressor_requires_compressor():
    assert isinstance(registry.hub.build_compressor("xz"), XzEngine)
    with pytest.raises(ValueError):
        registry.hub.build_compressor("tar")


def test_program_override():
    engine = registry.hub.build_packer(program="gtar")
    assert engine.program == "gtar"
    assert registry.hub.build_meter().program == "pv"


def test_register_engine_on_private_hub():
    hub = registry.EngineHub()

    @hub.register_engine("Custom")
    class CustomEngine(TarEngine):
        name = "custom"

    assert hub.get_engine_class("custom") is CustomEngine
    assert hub.list_engines() == ["custom"]
