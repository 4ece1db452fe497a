"""Message boundary around the ingestion pipelines.

The worker runs ingestion on a background thread and talks to its host only
through plain dict messages, so a UI (or any other caller) never blocks on
parsing.

Host -> worker (``worker.post``)::

    {"type": "file-names", "data": ["a.tsv", "b.tsv"]}
    {"type": "buffer", "data": b"..."}            # one per declared file
    {"type": "stream", "data": <file object or iterable of bytes>}
    {"type": "zip-buffer", "data": {"buffer": b"...", "zipName": "Map.zip"}}
    {"type": "user-input", "data": "IntervalStart;IntervalEnd"}

Worker -> host (``post_message`` callback)::

    {"type": "request-user-input"}
    {"type": "done", "data": {"data": ParsedData, "classified": EyeSettings}}
    {"type": "fail", "data": <exception>}

Example:
    >>> worker = EyePipelineWorker(messages.append)
    >>> worker.post({"type": "file-names", "data": ["rec.tsv"]})
    >>> worker.post({"type": "buffer", "data": Path("rec.tsv").read_bytes()})
    >>> worker.wait_idle()
    >>> worker.close()
"""
from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .config import PipelineConfig
from .errors import PipelineStateError
from .pipeline import EyePipeline, PipelineResult, PupilCloudPipeline

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
PostMessage = Callable[[Message], None]

_STOP = object()


@dataclass
class _Session:
    file_names: List[str]
    # (kind, payload) in arrival order; kind is "buffer" or "stream"
    inputs: List[Tuple[str, Any]] = field(default_factory=list)
    pupil_cloud: Optional[PupilCloudPipeline] = None


def _is_string_list(data: Any) -> bool:
    return isinstance(data, (list, tuple)) and len(data) > 0 and all(isinstance(d, str) for d in data)


class EyePipelineWorker:
    """
    Background thread owning at most one ingestion session.

    Inputs are collected until one arrives for every declared file name and
    are then processed sequentially. A session ends with exactly one ``done``
    or ``fail`` message; after that input is rejected until the next
    ``file-names`` message starts a new session.
    """

    def __init__(self, post_message: PostMessage, config: Optional[PipelineConfig] = None):
        self.post_message = post_message
        self.config = config or PipelineConfig()
        self.config.validate()
        self._session: Optional[_Session] = None
        self._inbox: "queue.Queue[Any]" = queue.Queue()
        self._user_inputs: "queue.Queue[Optional[str]]" = queue.Queue()
        self._awaiting_input = threading.Event()
        self._idle = threading.Condition()
        self._pending = 0
        self._closed = False
        self._thread = threading.Thread(target=self._run, name="eye-pipeline-worker", daemon=True)
        self._thread.start()

    # ------------------------------------------------------------------ #
    # host side
    # ------------------------------------------------------------------ #
    def post(self, message: Message) -> None:
        """Deliver one message from the host."""
        if self._closed:
            raise PipelineStateError("Worker is closed")
        if isinstance(message, dict) and message.get("type") == "user-input":
            self._resolve_user_input(message.get("data"))
            return
        with self._idle:
            self._pending += 1
        self._inbox.put(message)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every posted message was handled. False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        if self._closed:
            return
        self._closed = True
        # unblock a pending user input request
        self._user_inputs.put(None)
        self._inbox.put(_STOP)
        self._thread.join(timeout)

    def __enter__(self) -> "EyePipelineWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _resolve_user_input(self, value: Any) -> None:
        if not self._awaiting_input.is_set():
            self._send({"type": "fail", "data": PipelineStateError("No user input was requested")})
            return
        self._user_inputs.put(None if value is None else str(value))

    # ------------------------------------------------------------------ #
    # worker thread
    # ------------------------------------------------------------------ #
    def _run(self) -> None:
        while True:
            message = self._inbox.get()
            if message is _STOP:
                return
            try:
                self._handle(message)
            except Exception as exc:
                logger.error("Ingestion failed: %s", exc)
                self._session = None
                self._send({"type": "fail", "data": exc})
            finally:
                with self._idle:
                    self._pending -= 1
                    self._idle.notify_all()

    def _send(self, message: Message) -> None:
        try:
            self.post_message(message)
        except Exception as e:
            logger.error("post_message failed for %s message: %s", message.get("type"), e)

    def _handle(self, message: Message) -> None:
        if not isinstance(message, dict):
            raise PipelineStateError(f"Message must be a dict, got {type(message).__name__}")
        kind = message.get("type")
        data = message.get("data")
        if kind == "file-names":
            if not _is_string_list(data):
                raise ValueError("File names are not a list of strings")
            if self._session is not None:
                logger.info("New file names replace an unfinished session")
            self._session = _Session(file_names=list(data))
            logger.info("Session started for %s file(s)", len(data))
        elif kind in ("buffer", "stream"):
            self._add_input(kind, data)
        elif kind == "zip-buffer":
            self._add_zip(data)
        else:
            raise PipelineStateError(f"Unknown message type: {kind!r}")

    def _require_session(self) -> _Session:
        if self._session is None:
            raise PipelineStateError("Pipeline is not initialized")
        return self._session

    def _add_input(self, kind: str, data: Any) -> None:
        session = self._require_session()
        if data is None:
            raise ValueError(f"{kind} message carries no data")
        session.inputs.append((kind, data))
        if len(session.inputs) < len(session.file_names):
            return

        pipeline = EyePipeline(session.file_names, self._request_user_input, self.config)
        result = None
        for input_kind, payload in session.inputs:
            if input_kind == "buffer":
                result = pipeline.add_new_buffer(payload)
            else:
                result = pipeline.add_new_stream(payload)
        self._finish(result)

    def _add_zip(self, data: Any) -> None:
        session = self._require_session()
        if not isinstance(data, dict) or "buffer" not in data or "zipName" not in data:
            raise ValueError("zip-buffer data must hold 'buffer' and 'zipName'")
        if session.pupil_cloud is None:
            session.pupil_cloud = PupilCloudPipeline(session.file_names, self.config)
        result = session.pupil_cloud.add_new_zip(data["buffer"], data["zipName"])
        if result is not None:
            self._finish(result)

    def _finish(self, result: Optional[PipelineResult]) -> None:
        self._session = None
        if result is None:
            raise PipelineStateError("Pipeline finished without producing data")
        logger.info("Session complete")
        self._send({"type": "done", "data": {"data": result.data, "classified": result.settings}})

    def _request_user_input(self) -> Optional[str]:
        while not self._user_inputs.empty():
            self._user_inputs.get_nowait()
        self._awaiting_input.set()
        self._send({"type": "request-user-input"})
        try:
            return self._user_inputs.get(timeout=self.config.user_input_timeout_s)
        except queue.Empty:
            logger.warning("No user input within %ss, using the default", self.config.user_input_timeout_s)
            return None
        finally:
            self._awaiting_input.clear()
