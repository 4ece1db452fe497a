# gaze_ingest/__init__.py
"""
Eye-tracking export ingestion.

Contains:
- File type classification from a leading text sample
- Streaming per-format deserializers (Tobii, BeGaze, GazePoint, OGAMA,
  Varjo, generic CSV variants)
- Accumulation and refinement into one normalized dataset
- Pupil Cloud ZIP ingestion
- A message-driven background worker
- AOI visibility files and workspace JSON persistence
"""

from .classification import EyeClassifier
from .config import PipelineConfig
from .domain import EyeFileType, EyeSettings, ParsedData, SegmentRecord
from .errors import (
    ClassificationError,
    ColumnNotFoundError,
    EyeParsingError,
    MixedFileTypesError,
    PipelineStateError,
)
from .io import FileStatsCollector, LoggingReporter, PipelineObserver, load_workspace, dump_workspace
from .pipeline import EyePipeline, EyeRefiner, EyeWriter, PipelineResult, PupilCloudPipeline
from .visibility import apply_visibility, parse_visibility_file
from .worker import EyePipelineWorker

__version__ = "0.1.0"

__all__ = [
    "EyeClassifier",
    "PipelineConfig",
    "EyeFileType",
    "EyeSettings",
    "ParsedData",
    "SegmentRecord",
    "ClassificationError",
    "ColumnNotFoundError",
    "EyeParsingError",
    "MixedFileTypesError",
    "PipelineStateError",
    "FileStatsCollector",
    "LoggingReporter",
    "PipelineObserver",
    "load_workspace",
    "dump_workspace",
    "EyePipeline",
    "EyeRefiner",
    "EyeWriter",
    "PipelineResult",
    "PupilCloudPipeline",
    "apply_visibility",
    "parse_visibility_file",
    "EyePipelineWorker",
]
