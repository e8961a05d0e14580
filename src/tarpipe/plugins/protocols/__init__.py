"""
Protocol exports for plugin components.

This module aggregates the protocol interfaces used by engine plugins, the
archive client and UI callbacks.
"""

__all__ = [
    "ClientProtocol",
    "CompressorProtocol",
    "EngineProtocol",
    "MeterProtocol",
    "PackerProtocol",
    "PipelineUI",
    "_ClientContext",
]

from .client import ClientProtocol, _ClientContext
from .engine import (
    CompressorProtocol,
    EngineProtocol,
    MeterProtocol,
    PackerProtocol,
)
from .ui import PipelineUI
