"""
This module provides dynamic registration and discovery of engine plugins:
the packer, meter and compressor programs pipelines are built from.
"""

from __future__ import annotations

from collections.abc import Callable
from importlib import import_module
from typing import TYPE_CHECKING, Any, TypeVar, cast

if TYPE_CHECKING:
    from tarpipe.plugins.protocols import (
        CompressorProtocol,
        EngineProtocol,
        MeterProtocol,
        PackerProtocol,
    )

    E = TypeVar("E", bound=EngineProtocol)

_ENGINES_PKG = "tarpipe.plugins.engines"


class EngineHub:
    """Central registry for engine plugins.

    Engines register themselves with :meth:`register_engine` when their
    module is imported. Lookups import the module on demand:

        tarpipe.plugins.engines.<module>

    where ``module`` is the engine key, or the entry in ``_MODULES`` for keys
    that are not valid module names (``7zz``).
    """

    _ALIASES: dict[str, str] = {"7z": "7zz", "sevenzip": "7zz"}
    _MODULES: dict[str, str] = {"7zz": "sevenzip"}
    _BUILTIN: tuple[str, ...] = ("tar", "pv", "xz", "7zz")

    def __init__(self) -> None:
        self._engines: dict[str, type[EngineProtocol]] = {}

    def register_engine(
        self,
        name: str | None = None,
    ) -> Callable[[type[E]], type[E]]:
        """Decorator for registering an engine class."""

        def deco(cls: type[E]) -> type[E]:
            key = (name or cls.name).lower()
            self._engines[key] = cls
            return cls

        return deco

    def get_engine_class(self, name: str) -> type[EngineProtocol] | None:
        """Return the engine class for ``name``, importing it if needed."""
        key = self._normalize_key(name)
        cls = self._engines.get(key)
        if cls is None:
            self._try_import_engine(key)
            cls = self._engines.get(key)
        return cls

    def build_engine(
        self,
        name: str,
        config: Any = None,
        **kwargs: Any,
    ) -> EngineProtocol:
        """Instantiate an engine by key."""
        cls = self.get_engine_class(name)
        if cls is None:
            raise ValueError(f"Unsupported engine: {name!r}")
        return cls(config, **kwargs)

    def build_packer(self, config: Any = None, **kwargs: Any) -> PackerProtocol:
        return cast("PackerProtocol", self.build_engine("tar", config, **kwargs))

    def build_meter(self, config: Any = None, **kwargs: Any) -> MeterProtocol:
        return cast("MeterProtocol", self.build_engine("pv", config, **kwargs))

    def build_compressor(
        self,
        name: str,
        config: Any = None,
        **kwargs: Any,
    ) -> CompressorProtocol:
        engine = self.build_engine(name, config, **kwargs)
        if not hasattr(engine, "create_stage"):
            raise ValueError(f"Engine {name!r} is not a compressor")
        return cast("CompressorProtocol", engine)

    def list_engines(self, *, load_all: bool = False) -> list[str]:
        """Return the keys of registered engines."""
        if load_all:
            for key in self._BUILTIN:
                self._try_import_engine(key)
        return sorted(self._engines)

    @classmethod
    def _normalize_key(cls, name: str) -> str:
        """Normalize an engine key for registry lookup."""
        key = name.strip().lower()
        if not key:
            raise ValueError("Engine name cannot be empty")
        return cls._ALIASES.get(key, key)

    def _try_import_engine(self, key: str) -> None:
        """Attempt to import an engine plugin module."""
        modname = f"{_ENGINES_PKG}.{self._MODULES.get(key, key)}"
        try:
            import_module(modname)
        except ModuleNotFoundError as e:
            if e.name and modname.startswith(e.name):
                return
            raise


hub = EngineHub()
