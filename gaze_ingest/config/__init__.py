"""Configuration and constants."""

from .config import PipelineConfig
from .constants import CategoryNames, TobiiConstants, ValidationMessages

__all__ = [
    "PipelineConfig",
    "CategoryNames",
    "TobiiConstants",
    "ValidationMessages",
]
