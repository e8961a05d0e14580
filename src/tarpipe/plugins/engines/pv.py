from __future__ import annotations

from typing import ClassVar

from tarpipe.plugins.base.engine import BaseEngine
from tarpipe.plugins.registry import hub
from tarpipe.schemas import Endpoint, MeterConfig, Severity, StageSpec

# progress, timer, ETA, bytes, average rate, current rate
_FLAGS_WITH_SIZE = "-ptebar"
_FLAGS_WITHOUT_SIZE = "-trab"


@hub.register_engine()
class PvEngine(BaseEngine):
    """Pipe viewer: copies stdin to stdout while drawing progress on stderr."""

    name = "pv"
    exit_codes: ClassVar[dict[int, tuple[Severity, str]]] = {
        0: (Severity.OK, "No error (Success)"),
        2: (
            Severity.ERROR,
            "One or more files could not be accessed, stat(2)ed, or opened",
        ),
        4: (Severity.ERROR, "An input file was the same as the output file"),
        8: (
            Severity.ERROR,
            "Internal error with closing a file or moving to the next file",
        ),
        16: (
            Severity.ERROR,
            "There was an error while transferring data from one or more input files",
        ),
        32: (Severity.ERROR, "A signal was caught that caused an early exit"),
        64: (Severity.ERROR, "Memory allocation failed"),
    }

    def __init__(
        self,
        config: MeterConfig | None = None,
        *,
        program: str | None = None,
    ) -> None:
        super().__init__(config, program=program)
        self._config = config or MeterConfig()

    def meter_argv(self, label: str, total: int | None = None) -> list[str]:
        argv = [self.program]
        if not self._config.binary_units:
            # must precede the other options
            argv.append("-k")
        argv += ["-N", label]
        if total is not None:
            argv += ["-s", str(total), _FLAGS_WITH_SIZE]
        else:
            argv.append(_FLAGS_WITHOUT_SIZE)
        if self._config.quiet:
            argv.append("-q")
        return argv

    def meter_stage(
        self,
        label: str,
        total: int | None = None,
        *,
        stdin: Endpoint | None = None,
        stdout: Endpoint | None = None,
    ) -> StageSpec:
        return self._stage(
            self.meter_argv(label, total),
            stdin=stdin or Endpoint.pipe(),
            stdout=stdout or Endpoint.pipe(),
        )
