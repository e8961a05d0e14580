"""
Process-level pipeline machinery: stage launching, composition, exit
collection, cancellation and scratch lifecycle.
"""

__all__ = [
    "CancelState",
    "CancellationController",
    "CancellationError",
    "PipelineError",
    "PipelineSupervisor",
    "ProcessHandle",
    "ProcessStageRunner",
    "ResourceError",
    "ScratchSpace",
    "SpawnError",
    "StageExitError",
    "TwoPhaseProgressPipeline",
    "terminate_all",
]

from .cancellation import CancellationController, CancelState
from .errors import (
    CancellationError,
    PipelineError,
    ResourceError,
    SpawnError,
    StageExitError,
)
from .runner import ProcessHandle, ProcessStageRunner, terminate_all
from .scratch import ScratchSpace
from .supervisor import PipelineSupervisor
from .two_phase import TwoPhaseProgressPipeline
