import os
from pathlib import Path

_DECIMAL_UNITS = ("B", "KB", "MB", "GB", "TB")
_BINARY_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")


def measure_size(path: str | Path) -> int:
    """Return the size of a file, or the total size of the regular files
    under a directory.

    Directory metadata and symlinks are not counted, and symlinked
    directories are not descended into.

    Args:
        path: File or directory to measure.

    Returns:
        Size in bytes.

    Raises:
        ValueError: If ``path`` is neither a regular file nor a directory.
    """
    p = Path(path)
    if p.is_file():
        return p.stat().st_size
    if not p.is_dir():
        raise ValueError(f"{p} is not a valid file or directory")

    total = 0
    for root, _dirs, files in os.walk(p):
        for name in files:
            entry = Path(root, name)
            if entry.is_file() and not entry.is_symlink():
                total += entry.stat().st_size
    return total


def format_size(n: int, *, binary: bool = False) -> str:
    """Render a byte count in human-readable form.

    Byte values are printed as integers, larger ones with one decimal:
    ``999 B``, ``1.5 KB``, ``-2.0 MiB``.

    Args:
        n: Number of bytes; negative values keep their sign.
        binary: Scale by 1024 with IEC units instead of 1000.
    """
    sign = "-" if n < 0 else ""
    value = float(abs(n))
    base = 1024 if binary else 1000
    units = _BINARY_UNITS if binary else _DECIMAL_UNITS

    i = 0
    while value >= base and i < len(units) - 1:
        value /= base
        i += 1

    if i == 0:
        return f"{sign}{abs(n)} {units[0]}"
    return f"{sign}{value:.1f} {units[i]}"


def compare_sizes(before: int, after: int) -> tuple[int, float | None]:
    """Compare two sizes.

    Returns:
        ``(after - before, percent)`` where ``percent`` is the signed change
        relative to ``before``, or ``None`` when ``before`` is zero.
    """
    difference = after - before
    if before == 0:
        return difference, None
    return difference, difference * 100.0 / before
