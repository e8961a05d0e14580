"""
Data contracts and type definitions.
"""

__all__ = [
    "ClientConfig",
    "CompressConfig",
    "MeterConfig",
    "PackConfig",
    "PipelineConfig",
    "Endpoint",
    "EndpointKind",
    "PipelineSpec",
    "StageSpec",
    "ArchiveResult",
    "Diagnosis",
    "ExitReport",
    "Severity",
    "StageResult",
]

from .config import (
    ClientConfig,
    CompressConfig,
    MeterConfig,
    PackConfig,
    PipelineConfig,
)
from .pipeline import Endpoint, EndpointKind, PipelineSpec, StageSpec
from .report import ArchiveResult, Diagnosis, ExitReport, Severity, StageResult
