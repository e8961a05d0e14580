"""
Immutable descriptions of pipeline stages and how their stdio is wired.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class EndpointKind(StrEnum):
    INHERIT = "inherit"
    PIPE = "pipe"
    FILE = "file"
    FIFO = "fifo"
    DISCARD = "discard"


_STDIN_KINDS = frozenset(
    {EndpointKind.INHERIT, EndpointKind.PIPE, EndpointKind.FILE, EndpointKind.FIFO}
)
_STDOUT_KINDS = frozenset(
    {EndpointKind.PIPE, EndpointKind.FILE, EndpointKind.FIFO, EndpointKind.DISCARD}
)
_STDERR_KINDS = frozenset(
    {EndpointKind.INHERIT, EndpointKind.FILE, EndpointKind.DISCARD}
)


@dataclass(frozen=True, slots=True)
class Endpoint:
    """One end of a stage's standard stream.

    Attributes:
        kind: How the stream is connected.
        path: Filesystem path for ``file`` and ``fifo`` endpoints.
    """

    kind: EndpointKind
    path: Path | None = None

    def __post_init__(self) -> None:
        needs_path = self.kind in (EndpointKind.FILE, EndpointKind.FIFO)
        if needs_path and self.path is None:
            raise ValueError(f"{self.kind} endpoint requires a path")
        if not needs_path and self.path is not None:
            raise ValueError(f"{self.kind} endpoint does not take a path")

    @classmethod
    def inherit(cls) -> Endpoint:
        return cls(EndpointKind.INHERIT)

    @classmethod
    def pipe(cls) -> Endpoint:
        return cls(EndpointKind.PIPE)

    @classmethod
    def discard(cls) -> Endpoint:
        return cls(EndpointKind.DISCARD)

    @classmethod
    def file(cls, path: str | Path) -> Endpoint:
        return cls(EndpointKind.FILE, Path(path))

    @classmethod
    def fifo(cls, path: str | Path) -> Endpoint:
        return cls(EndpointKind.FIFO, Path(path))

    @property
    def is_pipe(self) -> bool:
        return self.kind is EndpointKind.PIPE


@dataclass(frozen=True, slots=True)
class StageSpec:
    """A single external program participating in a pipeline.

    Attributes:
        name: Engine key used for exit classification (``tar``, ``pv``, ...).
        argv: Program and arguments.
        stdin: Where the stage reads from.
        stdout: Where the stage writes to.
        stderr: Where the stage's diagnostics go. Inherited by default so
            the operator sees the tool's own messages.
        cwd: Optional working directory for the process.
    """

    name: str
    argv: tuple[str, ...]
    stdin: Endpoint = field(default_factory=Endpoint.inherit)
    stdout: Endpoint = field(default_factory=Endpoint.pipe)
    stderr: Endpoint = field(default_factory=Endpoint.inherit)
    cwd: Path | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Stage name cannot be empty")
        # accept any sequence but store a tuple
        object.__setattr__(self, "argv", tuple(str(a) for a in self.argv))
        if not self.argv:
            raise ValueError(f"Stage {self.name!r} has an empty argv")
        if self.stdin.kind not in _STDIN_KINDS:
            raise ValueError(f"Stage {self.name!r}: invalid stdin {self.stdin.kind}")
        if self.stdout.kind not in _STDOUT_KINDS:
            raise ValueError(f"Stage {self.name!r}: invalid stdout {self.stdout.kind}")
        if self.stderr.kind not in _STDERR_KINDS:
            raise ValueError(f"Stage {self.name!r}: invalid stderr {self.stderr.kind}")

    @property
    def program(self) -> str:
        return self.argv[0]


@dataclass(frozen=True, slots=True, init=False)
class PipelineSpec:
    """Ordered stages where each stage's stdout feeds the next stage's stdin.

    Interior connections must be anonymous pipes on both sides; the outer
    ends must not be.
    """

    stages: tuple[StageSpec, ...]

    def __init__(self, stages: Sequence[StageSpec]) -> None:
        object.__setattr__(self, "stages", tuple(stages))
        self._validate()

    def _validate(self) -> None:
        if not self.stages:
            raise ValueError("Pipeline must contain at least one stage")

        first, last = self.stages[0], self.stages[-1]
        if first.stdin.is_pipe:
            raise ValueError(f"First stage {first.name!r} cannot read from a pipe")
        if last.stdout.is_pipe:
            raise ValueError(f"Last stage {last.name!r} cannot write to a pipe")

        for upstream, downstream in zip(self.stages, self.stages[1:]):
            if not (upstream.stdout.is_pipe and downstream.stdin.is_pipe):
                raise ValueError(
                    f"Stages {upstream.name!r} -> {downstream.name!r} "
                    "must be connected by a pipe"
                )

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[StageSpec]:
        return iter(self.stages)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.stages]
