import stat
from enum import StrEnum
from pathlib import Path


class ObjectType(StrEnum):
    NONEXISTENT = "nonexistent"
    SYMLINK = "symlink"
    DIRECTORY = "directory"
    FILE = "file"
    SOCKET = "socket"
    PIPE = "pipe"
    BLOCK = "block"
    CHARACTER = "character"
    UNKNOWN = "unknown"


_MODE_CHECKS = (
    (stat.S_ISDIR, ObjectType.DIRECTORY),
    (stat.S_ISREG, ObjectType.FILE),
    (stat.S_ISSOCK, ObjectType.SOCKET),
    (stat.S_ISFIFO, ObjectType.PIPE),
    (stat.S_ISBLK, ObjectType.BLOCK),
    (stat.S_ISCHR, ObjectType.CHARACTER),
)


def object_type(path: str | Path) -> ObjectType:
    """Classify a filesystem object without following a final symlink.

    A dangling symlink is reported as :attr:`ObjectType.SYMLINK`, not as
    nonexistent.
    """
    try:
        mode = Path(path).lstat().st_mode
    except FileNotFoundError:
        return ObjectType.NONEXISTENT

    if stat.S_ISLNK(mode):
        return ObjectType.SYMLINK
    for check, kind in _MODE_CHECKS:
        if check(mode):
            return kind
    return ObjectType.UNKNOWN
