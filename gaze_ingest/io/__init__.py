"""Byte/text input handling, observers and workspace persistence."""

from .observers import FileStats, FileStatsCollector, LoggingReporter, PipelineObserver
from .reader import ChunkReader, buffer_to_chunks
from .splitter import RowSplitter
from .workspace import Workspace, dump_workspace, load_workspace, read_workspace, save_workspace

__all__ = [
    "FileStats",
    "FileStatsCollector",
    "LoggingReporter",
    "PipelineObserver",
    "ChunkReader",
    "buffer_to_chunks",
    "RowSplitter",
    "Workspace",
    "dump_workspace",
    "load_workspace",
    "read_workspace",
    "save_workspace",
]
