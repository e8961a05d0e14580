from __future__ import annotations

from pathlib import Path
from typing import ClassVar

from tarpipe.plugins.base.engine import BaseEngine
from tarpipe.plugins.registry import hub
from tarpipe.schemas import Endpoint, PackConfig, Severity, StageSpec


@hub.register_engine()
class TarEngine(BaseEngine):
    """Tar-format packer/unpacker streaming through stdin/stdout."""

    name = "tar"
    exit_codes: ClassVar[dict[int, tuple[Severity, str]]] = {
        0: (Severity.OK, "No error (Success)"),
        1: (
            Severity.WARNING,
            "Warning (some files differ, were busy, or couldn't be read, "
            "but the archive was still created)",
        ),
        2: (Severity.ERROR, "Fatal Error (e.g., directory not found, disk full)"),
    }

    def __init__(
        self,
        config: PackConfig | None = None,
        *,
        program: str | None = None,
    ) -> None:
        super().__init__(config, program=program)
        self._config = config or PackConfig()

    def _options(self) -> list[str]:
        opts: list[str] = []
        if self._config.preserve_acls:
            opts.append("--acls")
        if self._config.preserve_xattrs:
            opts.append("--xattrs")
        return opts

    def pack_argv(self, source: Path, *, names: list[str] | None = None) -> list[str]:
        if names is None:
            root, entries = source.parent, [source.name]
        else:
            root, entries = source, list(names)
        return [self.program, *self._options(), "-C", str(root), "-cf", "-", *entries]

    def unpack_argv(self, destination: Path) -> list[str]:
        return [self.program, *self._options(), "-C", str(destination), "-xf", "-"]

    def pack_stage(self, source: Path, *, names: list[str] | None = None) -> StageSpec:
        stderr = Endpoint.discard() if self._config.quiet else Endpoint.inherit()
        return self._stage(self.pack_argv(source, names=names), stderr=stderr)

    def unpack_stage(self, destination: Path) -> StageSpec:
        return self._stage(
            self.unpack_argv(destination),
            stdin=Endpoint.pipe(),
            stdout=Endpoint.discard(),
        )
