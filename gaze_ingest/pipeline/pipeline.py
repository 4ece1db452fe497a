"""Ingestion pipeline orchestration.

One :class:`EyePipeline` owns one session: a fixed list of declared file
names, one accumulator and one classifier. Inputs are consumed strictly one
after another, chunk by chunk. The refined dataset is returned exactly once,
by the call that consumes the last declared file.

Example:
    >>> pipeline = EyePipeline(["p1.tsv", "p2.tsv"], request_user_input=lambda: "")
    >>> pipeline.register_observer(LoggingReporter())
    >>> pipeline.add_new_buffer(open("p1.tsv", "rb").read())   # -> None
    >>> result = pipeline.add_new_buffer(open("p2.tsv", "rb").read())
    >>> result.data.participants.data
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from ..classification import EyeClassifier
from ..config import PipelineConfig
from ..deserializers import EyeDeserializer, create_deserializer
from ..deserializers.base import as_list
from ..domain.dataset import ParsedData
from ..domain.settings import EyeSettings
from ..errors import ClassificationError, MixedFileTypesError, PipelineStateError
from ..io.observers import FileStats
from ..io.reader import ChunkReader, buffer_to_chunks
from ..io.splitter import RowSplitter
from .refiner import EyeRefiner
from .writer import EyeWriter

logger = logging.getLogger(__name__)

UserInputCallback = Callable[[], Optional[str]]


class PipelineState(Enum):
    AWAITING_SETTINGS = "awaiting-settings"
    ACCUMULATING = "accumulating"
    AWAITING_USER_INPUT = "awaiting-user-input"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Terminal output of a session."""

    data: ParsedData
    settings: EyeSettings


@dataclass
class _FileContext:
    name: str
    settings: EyeSettings
    user_input: str
    splitter: RowSplitter
    stats: FileStats
    deserializer: Optional[EyeDeserializer] = None
    header_length: int = 0
    row_index: int = 0
    header: List[str] = field(default_factory=list)


class ObservablePipeline:
    """Observer registry shared by the ingestion pipelines."""

    def __init__(self) -> None:
        self._observers: List[Any] = []

    def register_observer(self, observer: Any) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unregister_observer(self, observer: Any) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, event: str, *args) -> None:
        for observer in self._observers:
            try:
                getattr(observer, event)(*args)
            except Exception as e:
                logger.warning("Observer %s failed on %s: %s", type(observer).__name__, event, e)


class EyePipeline(ObservablePipeline):
    """Orchestrates classification, deserialization and refinement.

    Responsibilities:
        - match each input to a declared file name
        - classify each file from its leading text and reject mixed batches
        - ask for the Tobii stimulus strategy once per session
        - feed rows to the per-file deserializer and the shared writer
        - refine and return the dataset once every file was consumed
        - notify observers
    """

    def __init__(
        self,
        file_names: Sequence[str],
        request_user_input: Optional[UserInputCallback] = None,
        config: Optional[PipelineConfig] = None,
        classifier: Optional[EyeClassifier] = None,
    ):
        if isinstance(file_names, str) or not file_names:
            raise ValueError("file_names must be a non-empty sequence of names")
        if not all(isinstance(name, str) for name in file_names):
            raise ValueError("file_names must contain only strings")
        super().__init__()
        self.config = config or PipelineConfig()
        self.config.validate()
        self.file_names: List[str] = list(file_names)
        self.request_user_input = request_user_input
        self.classifier = classifier or EyeClassifier()
        self.writer: Optional[EyeWriter] = EyeWriter()
        self.state = PipelineState.AWAITING_SETTINGS
        self.complete_settings: Optional[EyeSettings] = None
        self._processed: List[str] = []
        self._session_type: Optional[str] = None
        self._user_input: Optional[str] = None
        self._started = False

    # ------------------------------------------------------------------ #
    # session state
    # ------------------------------------------------------------------ #
    @property
    def file_count(self) -> int:
        return len(self._processed)

    @property
    def is_all_processed(self) -> bool:
        return len(self._processed) == len(self.file_names)

    @property
    def pending_file_names(self) -> List[str]:
        pending = list(self.file_names)
        for name in self._processed:
            pending.remove(name)
        return pending

    def _resolve_file_name(self, file_name: Optional[str]) -> str:
        pending = self.pending_file_names
        if not pending:
            raise PipelineStateError("All declared files were already processed")
        if file_name is None:
            return pending[0]
        if file_name not in pending:
            raise PipelineStateError(f"File {file_name!r} was not declared or was already processed")
        return file_name

    def _check_accepts_input(self) -> None:
        if self.state == PipelineState.COMPLETE:
            raise PipelineStateError("Session is complete and rejects further input")
        if self.state == PipelineState.FAILED:
            raise PipelineStateError("Session failed and rejects further input")

    # ------------------------------------------------------------------ #
    # public API
    # ------------------------------------------------------------------ #
    def add_new_buffer(self, buffer: bytes, file_name: Optional[str] = None) -> Optional[PipelineResult]:
        """Consume a whole-file buffer (cut into ``chunk_size_bytes`` chunks)."""
        return self.add_new_stream(buffer_to_chunks(buffer, self.config.chunk_size_bytes), file_name)

    def add_new_stream(self, source, file_name: Optional[str] = None) -> Optional[PipelineResult]:
        """Consume one input file.

        Args:
            source: bytes, a binary file object or an iterable of byte chunks
            file_name: declared name of the input; defaults to the next
                pending name in declaration order

        Returns:
            The refined result when this input completes the session, else None.
        """
        self._check_accepts_input()
        if not self._started:
            self._started = True
            self._notify("on_session_start", list(self.file_names))
        try:
            name = self._resolve_file_name(file_name)
            return self._consume(source, name)
        except Exception as exc:
            self._fail(exc)
            raise

    def abort(self) -> None:
        """Drop all accumulated state; the session accepts no more input."""
        if self.state not in (PipelineState.COMPLETE, PipelineState.FAILED):
            logger.info("Ingestion session aborted")
            self.state = PipelineState.FAILED
            self.writer = None

    # ------------------------------------------------------------------ #
    # processing
    # ------------------------------------------------------------------ #
    def _consume(self, source, name: str) -> Optional[PipelineResult]:
        # Step 1: read enough leading text to classify
        reader = ChunkReader(source, self.config.text_encoding, self.config.chunk_size_bytes)
        first_text = self._read_sample(reader)
        if not first_text.strip():
            raise ClassificationError(f"Unknown file type: {name} is empty")
        settings = self.classifier.classify(first_text)
        self._check_session_type(settings)
        self.state = PipelineState.ACCUMULATING
        self._notify("on_file_classified", name, settings)
        logger.info("%s classified as %s", name, settings.type)

        # Step 2: ask for the Tobii strategy once per session
        user_input = self._get_user_input() if settings.requires_user_input else ""
        settings = replace(settings, user_input_setting=user_input)
        self.complete_settings = settings

        # Step 3: stream rows through the deserializer
        ctx = _FileContext(
            name=name,
            settings=settings,
            user_input=user_input,
            splitter=RowSplitter(settings.row_delimiter),
            stats=FileStats(file_name=name, file_type=settings.type),
        )
        self._process_rows(ctx, ctx.splitter.split_chunk(first_text))
        for chunk in reader:
            self._process_rows(ctx, ctx.splitter.split_chunk(chunk))

        # Step 4: flush the trailing row and the pending segment
        self._process_rows(ctx, ctx.splitter.release())
        self._release_after_file(ctx)

        # Step 5: refine once everything was consumed
        if not self.is_all_processed:
            return None
        return self._complete()

    def _read_sample(self, reader: ChunkReader) -> str:
        """Leading text holding at least one complete line."""
        parts: List[str] = []
        size = 0
        has_line_break = False
        while not reader.is_done and (size < self.config.classification_sample_chars or not has_line_break):
            text = reader.get_text_chunk()
            parts.append(text)
            size += len(text)
            has_line_break = has_line_break or "\n" in text
        return "".join(parts)

    def _check_session_type(self, settings: EyeSettings) -> None:
        if self._session_type is None:
            self._session_type = settings.type
        elif self._session_type != settings.type:
            raise MixedFileTypesError([self._session_type, settings.type])

    def _get_user_input(self) -> str:
        if self._user_input is not None:
            return self._user_input
        value = None
        if self.request_user_input is not None:
            self.state = PipelineState.AWAITING_USER_INPUT
            logger.info("Waiting for Tobii stimulus strategy decision")
            value = self.request_user_input()
            self.state = PipelineState.ACCUMULATING
        self._user_input = self.config.default_user_input if value is None else str(value)
        return self._user_input

    def _process_rows(self, ctx: _FileContext, rows: List[str]) -> None:
        delimiter = ctx.settings.column_delimiter
        for row in rows:
            self._process_row(ctx, row.split(delimiter))

    def _process_row(self, ctx: _FileContext, cells: List[str]) -> None:
        header_row_id = ctx.settings.header_row_id
        if ctx.row_index < header_row_id:
            ctx.row_index += 1
            return
        if ctx.row_index == header_row_id:
            ctx.header = cells
            ctx.header_length = len(cells)
            ctx.deserializer = create_deserializer(cells, ctx.name, ctx.settings, ctx.user_input)
            ctx.row_index += 1
            return
        ctx.row_index += 1
        if len(cells) == 1 and not cells[0].strip():
            return
        if len(cells) < ctx.header_length:
            cells = cells + [""] * (ctx.header_length - len(cells))
        ctx.stats.rows += 1
        self._write(ctx, ctx.deserializer.deserialize(cells))

    def _write(self, ctx: _FileContext, output) -> None:
        for record in as_list(output):
            if self.writer.add(record):
                ctx.stats.segments += 1

    def _release_after_file(self, ctx: _FileContext) -> None:
        if ctx.deserializer is None:
            raise ClassificationError(f"{ctx.name} has no header row")
        self._write(ctx, ctx.deserializer.finalize())
        ctx.stats.skipped_rows = ctx.deserializer.skipped_rows
        self._processed.append(ctx.name)
        logger.info(
            "%s consumed (%s/%s): %s rows, %s segments",
            ctx.name,
            len(self._processed),
            len(self.file_names),
            ctx.stats.rows,
            ctx.stats.segments,
        )
        self._notify("on_file_complete", ctx.stats)

    def _complete(self) -> PipelineResult:
        data = EyeRefiner(self.config).process(self.writer.data)
        result = PipelineResult(data=data, settings=self.complete_settings)
        self.state = PipelineState.COMPLETE
        self.writer = None
        self._notify("on_session_complete", result.data, result.settings)
        return result

    def _fail(self, exc: Exception) -> None:
        if self.state == PipelineState.FAILED:
            return
        self.state = PipelineState.FAILED
        self.writer = None
        logger.info("Ingestion session failed: %s", exc)
        self._notify("on_session_error", exc)
