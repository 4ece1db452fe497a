"""Configuration for the ingestion pipeline.

Example:
    >>> from gaze_ingest.config import PipelineConfig
    >>> cfg = PipelineConfig(chunk_size_bytes=64 * 1024)
    >>> cfg.validate()
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import ValidationMessages


@dataclass
class PipelineConfig:
    """
    Settings shared by EyePipeline, PupilCloudPipeline and the worker.
    """

    # Size of the byte chunks a whole-file buffer is cut into
    chunk_size_bytes: int = 1024 * 1024

    # Decoding of raw bytes; utf-8-sig swallows a leading BOM
    text_encoding: str = "utf-8-sig"

    # Minimum amount of leading text used to classify a file
    classification_sample_chars: int = 64 * 1024

    # Used for Tobii event files when no decision is supplied
    default_user_input: str = ""

    # Seconds to wait for the user decision (None: wait forever)
    user_input_timeout_s: Optional[float] = None

    # Refiner switches
    merge_duplicated_fixations: bool = True
    order_participants_alphabetically: bool = True
    order_aois_alphabetically: bool = True

    def validate(self) -> None:
        if self.chunk_size_bytes <= 0:
            raise ValueError(ValidationMessages.INVALID_CHUNK_SIZE)
        if self.classification_sample_chars <= 0:
            raise ValueError(ValidationMessages.INVALID_SAMPLE_SIZE)
        if self.user_input_timeout_s is not None and self.user_input_timeout_s < 0:
            raise ValueError(ValidationMessages.INVALID_TIMEOUT)
