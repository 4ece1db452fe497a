"""
Observers for ingestion sessions.

Decouples the pipeline from reporting: the pipeline notifies registered
observers about session and file milestones.

Example:
    >>> from gaze_ingest.io.observers import LoggingReporter, FileStatsCollector
    >>> pipeline = EyePipeline(["a.tsv", "b.tsv"], request_user_input)
    >>> stats = FileStatsCollector()
    >>> pipeline.register_observer(LoggingReporter())
    >>> pipeline.register_observer(stats)
    >>> ...
    >>> stats.to_frame()
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import List, Sequence

import pandas as pd

from ..domain.dataset import ParsedData
from ..domain.settings import EyeSettings

logger = logging.getLogger(__name__)


@dataclass
class FileStats:
    """Counters for one ingested file."""

    file_name: str
    file_type: str
    rows: int = 0
    segments: int = 0
    skipped_rows: int = 0


class PipelineObserver(ABC):
    """
    Abstract base class for ingestion observers.

    Observer failures are logged by the pipeline and never abort ingestion.
    """

    @abstractmethod
    def on_session_start(self, file_names: Sequence[str]) -> None:
        """
        Called once the expected input files are declared.

        Args:
            file_names: Declared file names, in declaration order
        """
        raise NotImplementedError

    def on_file_classified(self, file_name: str, settings: EyeSettings) -> None:
        """Called after a file's first chunk was classified."""

    def on_file_complete(self, stats: FileStats) -> None:
        """Called after a file was fully consumed."""

    @abstractmethod
    def on_session_complete(self, data: ParsedData, settings: EyeSettings) -> None:
        """
        Called when the refined dataset is emitted.

        Args:
            data: Final dataset
            settings: Settings of the last classified file
        """
        raise NotImplementedError

    @abstractmethod
    def on_session_error(self, error: Exception) -> None:
        """
        Called when the session aborts.

        Args:
            error: Exception that terminated the session
        """
        raise NotImplementedError


class LoggingReporter(PipelineObserver):
    """Reports session progress through ``logging``."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def on_session_start(self, file_names: Sequence[str]) -> None:
        logger.log(self.level, "Ingestion session started: %s file(s)", len(file_names))

    def on_file_classified(self, file_name: str, settings: EyeSettings) -> None:
        logger.log(
            self.level,
            "%s classified as %s (column delimiter %r, header row %s)",
            file_name,
            settings.type,
            settings.column_delimiter,
            settings.header_row_id,
        )

    def on_file_complete(self, stats: FileStats) -> None:
        logger.log(
            self.level,
            "%s done: %s rows, %s segments, %s skipped",
            stats.file_name,
            stats.rows,
            stats.segments,
            stats.skipped_rows,
        )

    def on_session_complete(self, data: ParsedData, settings: EyeSettings) -> None:
        logger.log(
            self.level,
            "Dataset ready: %s stimuli, %s participants, %s categories",
            len(data.stimuli.data),
            len(data.participants.data),
            len(data.categories.data),
        )

    def on_session_error(self, error: Exception) -> None:
        logger.error("Ingestion session failed: %s", error)


class FileStatsCollector(PipelineObserver):
    """Collects per-file counters for later inspection."""

    def __init__(self) -> None:
        self.files: List[FileStats] = []
        self.errors: List[Exception] = []
        self.completed = False

    def on_session_start(self, file_names: Sequence[str]) -> None:
        self.files = []
        self.errors = []
        self.completed = False

    def on_file_complete(self, stats: FileStats) -> None:
        self.files.append(stats)

    def on_session_complete(self, data: ParsedData, settings: EyeSettings) -> None:
        self.completed = True

    def on_session_error(self, error: Exception) -> None:
        self.errors.append(error)

    def to_frame(self) -> pd.DataFrame:
        columns = ["file_name", "file_type", "rows", "segments", "skipped_rows"]
        return pd.DataFrame([asdict(s) for s in self.files], columns=columns)
