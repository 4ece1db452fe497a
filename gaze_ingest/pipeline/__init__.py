"""Accumulation, refinement and session orchestration."""
from .pipeline import EyePipeline, ObservablePipeline, PipelineResult, PipelineState
from .pupil_cloud import PUPIL_CLOUD_SETTINGS, PupilCloudPipeline
from .refiner import EyeRefiner
from .writer import EyeWriter

__all__ = [
    "EyePipeline",
    "EyeRefiner",
    "EyeWriter",
    "ObservablePipeline",
    "PipelineResult",
    "PipelineState",
    "PUPIL_CLOUD_SETTINGS",
    "PupilCloudPipeline",
]
