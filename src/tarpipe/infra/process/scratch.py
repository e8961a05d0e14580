"""
Temporary filesystem objects whose lifetime is bounded by one pipeline run.
"""

from __future__ import annotations

__all__ = ["ScratchSpace", "remove_artifact"]

import logging
import os
import shutil
import tempfile
import types
from pathlib import Path
from typing import Protocol, Self

from tarpipe.infra.process.errors import ResourceError

logger = logging.getLogger(__name__)


class ArtifactRegistry(Protocol):
    def register_artifact(self, path: Path) -> None: ...


def remove_artifact(path: Path) -> None:
    """Remove a file, FIFO or directory tree; missing paths are ignored."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove scratch artifact %s: %s", path, e)


class ScratchSpace:
    """Owns the scratch artifacts of one run and removes them on exit.

    The private directory is created lazily, the first time a FIFO or
    subdirectory is requested. Paths outside it (such as a ``.part`` file
    next to the destination) can be tracked with :meth:`track`.

    Every artifact is also reported to ``registry`` (usually the active
    :class:`CancellationController`) so that cancellation removes it too.
    """

    def __init__(
        self,
        parent: str | Path | None = None,
        *,
        prefix: str = "tarpipe-",
        registry: ArtifactRegistry | None = None,
    ) -> None:
        self._parent = Path(parent) if parent is not None else None
        self._prefix = prefix
        self._registry = registry
        self._root: Path | None = None
        self._artifacts: list[Path] = []

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        self.cleanup()

    @property
    def root(self) -> Path:
        """The private scratch directory, created on first access.

        Raises:
            ResourceError: If the directory cannot be created.
        """
        if self._root is None:
            try:
                if self._parent is not None:
                    self._parent.mkdir(parents=True, exist_ok=True)
                self._root = Path(tempfile.mkdtemp(prefix=self._prefix, dir=self._parent))
            except OSError as e:
                raise ResourceError(f"Cannot create scratch directory: {e}") from e
            self.track(self._root)
        return self._root

    @property
    def artifacts(self) -> list[Path]:
        return list(self._artifacts)

    def track(self, path: str | Path) -> Path:
        """Register an externally created path for removal."""
        p = Path(path)
        self._artifacts.append(p)
        if self._registry is not None:
            self._registry.register_artifact(p)
        return p

    def make_fifo(self, name: str = "stream") -> Path:
        """Create a named pipe inside the scratch directory.

        Raises:
            ResourceError: If the FIFO cannot be created.
        """
        path = self.root / name
        try:
            os.mkfifo(path, 0o600)
        except OSError as e:
            raise ResourceError(f"Cannot create FIFO {path}: {e}") from e
        logger.debug("Created FIFO %s", path)
        return self.track(path)

    def make_dir(self, name: str) -> Path:
        """Create a subdirectory inside the scratch directory."""
        path = self.root / name
        try:
            path.mkdir()
        except OSError as e:
            raise ResourceError(f"Cannot create directory {path}: {e}") from e
        return self.track(path)

    def cleanup(self) -> None:
        """Remove every tracked artifact, newest first. Safe to call twice."""
        while self._artifacts:
            remove_artifact(self._artifacts.pop())
        self._root = None
