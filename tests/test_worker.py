import pytest

from gaze_ingest.config import PipelineConfig
from gaze_ingest.domain.dataset import ParsedData
from gaze_ingest.domain.settings import EyeSettings
from gaze_ingest.errors import MixedFileTypesError, PipelineStateError
from gaze_ingest.worker import EyePipelineWorker

from conftest import TOBII_EVENT_HEADER, join_rows, make_stream, tobii_event_row, tobii_tsv


@pytest.fixture
def messages():
    return []


@pytest.fixture
def worker(messages):
    w = EyePipelineWorker(messages.append)
    yield w
    w.close(timeout=5)


def types(messages):
    return [m["type"] for m in messages]


def test_done_after_all_buffers(worker, messages):
    worker.post({"type": "file-names", "data": ["p1.tsv", "p2.tsv"]})
    worker.post({"type": "buffer", "data": tobii_tsv("P1", "Rec1").encode("utf-8")})
    assert worker.wait_idle(timeout=5)
    assert messages == []

    worker.post({"type": "buffer", "data": tobii_tsv("P2", "Rec2").encode("utf-8")})
    assert worker.wait_idle(timeout=5)
    assert types(messages) == ["done"]
    payload = messages[0]["data"]
    assert isinstance(payload["data"], ParsedData)
    assert isinstance(payload["classified"], EyeSettings)
    assert payload["data"].participants.names() == ["Rec1 P1", "Rec2 P2"]


def test_stream_message(worker, messages):
    worker.post({"type": "file-names", "data": ["p1.tsv"]})
    worker.post({"type": "stream", "data": make_stream(tobii_tsv().encode("utf-8"), 11)})
    assert worker.wait_idle(timeout=5)
    assert types(messages) == ["done"]


def test_input_before_file_names_fails(worker, messages):
    worker.post({"type": "buffer", "data": b"abc"})
    assert worker.wait_idle(timeout=5)
    assert types(messages) == ["fail"]
    assert isinstance(messages[0]["data"], PipelineStateError)


def test_invalid_file_names_fail(worker, messages):
    worker.post({"type": "file-names", "data": "p1.tsv"})
    assert worker.wait_idle(timeout=5)
    assert types(messages) == ["fail"]
    assert isinstance(messages[0]["data"], ValueError)


def test_unknown_message_type_fails(worker, messages):
    worker.post({"type": "bogus"})
    assert worker.wait_idle(timeout=5)
    assert types(messages) == ["fail"]


def test_session_dropped_after_failure(worker, messages):
    csv = b"Time,Participant,Stimulus,AOI\n0,P1,Map,R1\n"
    worker.post({"type": "file-names", "data": ["a.tsv", "b.csv"]})
    worker.post({"type": "buffer", "data": tobii_tsv().encode("utf-8")})
    worker.post({"type": "buffer", "data": csv})
    worker.post({"type": "buffer", "data": csv})
    assert worker.wait_idle(timeout=5)
    assert types(messages) == ["fail", "fail"]
    assert isinstance(messages[0]["data"], MixedFileTypesError)
    assert isinstance(messages[1]["data"], PipelineStateError)


def test_new_file_names_start_a_new_session(worker, messages):
    worker.post({"type": "file-names", "data": ["a.tsv", "b.tsv"]})
    worker.post({"type": "buffer", "data": tobii_tsv().encode("utf-8")})
    worker.post({"type": "file-names", "data": ["c.tsv"]})
    worker.post({"type": "buffer", "data": tobii_tsv("P3", "Rec3").encode("utf-8")})
    assert worker.wait_idle(timeout=5)
    assert types(messages) == ["done"]
    assert messages[0]["data"]["data"].participants.names() == ["Rec3 P3"]


def test_user_input_round_trip(messages):
    rows = [
        TOBII_EVENT_HEADER,
        tobii_event_row(0, "Trial1 IntervalStart"),
        tobii_event_row(0),
        tobii_event_row(10),
        tobii_event_row(20),
    ]

    def on_message(message):
        messages.append(message)
        if message["type"] == "request-user-input":
            worker.post({"type": "user-input", "data": "IntervalStart;IntervalEnd"})

    worker = EyePipelineWorker(on_message)
    try:
        worker.post({"type": "file-names", "data": ["events.tsv"]})
        worker.post({"type": "buffer", "data": join_rows(rows).encode("utf-8")})
        assert worker.wait_idle(timeout=5)
    finally:
        worker.close(timeout=5)

    assert types(messages) == ["request-user-input", "done"]
    classified = messages[1]["data"]["classified"]
    assert classified.user_input_setting == "IntervalStart;IntervalEnd"
    assert messages[1]["data"]["data"].stimuli.names() == ["Trial1"]


def test_user_input_timeout_falls_back_to_default(messages):
    header = TOBII_EVENT_HEADER + ["Presented Stimulus name"]
    text = join_rows([header, ["0", "Eye Tracker", "P1", "", "Fixation", "1", "Map"],
                      ["10", "Eye Tracker", "P1", "", "Fixation", "1", "Map"]])
    worker = EyePipelineWorker(messages.append, PipelineConfig(user_input_timeout_s=0.05))
    try:
        worker.post({"type": "file-names", "data": ["a.tsv"]})
        worker.post({"type": "buffer", "data": text.encode("utf-8")})
        assert worker.wait_idle(timeout=5)
    finally:
        worker.close(timeout=5)
    assert types(messages) == ["request-user-input", "done"]
    assert messages[1]["data"]["classified"].user_input_setting == ""


def test_unrequested_user_input_fails(worker, messages):
    worker.post({"type": "user-input", "data": "x"})
    assert types(messages) == ["fail"]


def test_closed_worker_rejects_messages(messages):
    worker = EyePipelineWorker(messages.append)
    worker.close(timeout=5)
    with pytest.raises(PipelineStateError):
        worker.post({"type": "file-names", "data": ["a.tsv"]})
