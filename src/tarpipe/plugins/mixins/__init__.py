__all__ = [
    "ArchiveMixin",
    "ConvertMixin",
    "ExtractMixin",
    "VerifyMixin",
]

from .archive import ArchiveMixin
from .convert import ConvertMixin
from .extract import ExtractMixin
from .verify import VerifyMixin
