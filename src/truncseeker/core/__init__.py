"""Core pipeline functionality (TruncSeeker)."""

from truncseeker.core.checkpoint import CheckpointStore
from truncseeker.core.pipeline import PipelineExecutor
from truncseeker.core.pipeline_types import (
    PipelineReport,
    PipelineStatus,
    StepDescriptor,
    StepResult,
)

__all__ = [
    "CheckpointStore",
    "PipelineExecutor",
    "PipelineReport",
    "PipelineStatus",
    "StepDescriptor",
    "StepResult",
]
