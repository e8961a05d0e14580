"""
Filesystem utilities: size measurement, object kinds and size formatting.
"""

__all__ = [
    "ObjectType",
    "compare_sizes",
    "format_size",
    "measure_size",
    "object_type",
]

from .objects import ObjectType, object_type
from .size import compare_sizes, format_size, measure_size
