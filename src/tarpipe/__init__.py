from .version import __version__ as __version__

__title__ = "tarpipe"
__description__ = "Streaming tar/compressor/meter pipelines with classified exits."
__author__ = "tarpipe contributors"
__license__ = "Apache-2.0"
