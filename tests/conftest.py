from typing import Iterable, List, Sequence

import pytest

from gaze_ingest.classification import EyeClassifier
from gaze_ingest.domain.segments import SegmentRecord


TOBII_HEADER = [
    "Recording timestamp [ms]",
    "Sensor",
    "Participant name",
    "Recording name",
    "Presented Stimulus name",
    "Eye movement type",
    "Eye movement type index",
    "AOI hit [Map - Region_1]",
    "AOI hit [Map - Region_2]",
]

TOBII_EVENT_HEADER = [
    "Recording timestamp [ms]",
    "Sensor",
    "Participant name",
    "Event",
    "Eye movement type",
    "Eye movement type index",
]


def tobii_row(ts, category="Fixation", index="1", stimulus="Map", hits=("0", "0"),
              participant="P1", recording="Rec1", sensor="Eye Tracker") -> List[str]:
    """Row matching TOBII_HEADER."""
    return [str(ts), sensor, participant, recording, stimulus, category, str(index), *hits]


def tobii_event_row(ts, event="", category="Fixation", index="1", participant="P1",
                    sensor="Eye Tracker") -> List[str]:
    """Row matching TOBII_EVENT_HEADER. Event rows carry no sensor and no category."""
    if event:
        return [str(ts), "", participant, event, "", ""]
    return [str(ts), sensor, participant, "", category, str(index)]


def join_rows(rows: Iterable[Sequence[str]], column_delimiter: str = "\t", row_delimiter: str = "\r\n") -> str:
    return row_delimiter.join(column_delimiter.join(row) for row in rows) + row_delimiter


def make_stream(data: bytes, chunk_size: int = 7) -> List[bytes]:
    """Split bytes into tiny chunks so rows and characters cross chunk boundaries."""
    return [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]


def collect(deserializer, rows: Iterable[Sequence[str]], finalize: bool = True) -> List[SegmentRecord]:
    """Feed rows and flatten every emitted record (including finalize)."""
    out: List[SegmentRecord] = []
    for row in rows:
        result = deserializer.deserialize(list(row))
        if isinstance(result, list):
            out.extend(result)
        elif result is not None:
            out.append(result)
    if finalize:
        result = deserializer.finalize()
        if isinstance(result, list):
            out.extend(result)
        elif result is not None:
            out.append(result)
    return out


@pytest.fixture
def classifier() -> EyeClassifier:
    return EyeClassifier()


def tobii_tsv(participant: str = "P1", recording: str = "Rec1") -> str:
    """One participant, one stimulus, 10 ms sampling: Fixation, Saccade, Fixation."""
    rows = [
        TOBII_HEADER,
        tobii_row(0, "Fixation", 1, hits=("1", "0"), participant=participant, recording=recording),
        tobii_row(10, "Fixation", 1, participant=participant, recording=recording),
        tobii_row(20, "Fixation", 1, hits=("0", "1"), participant=participant, recording=recording),
        tobii_row(30, "Saccade", 1, participant=participant, recording=recording),
        tobii_row(40, "Saccade", 1, participant=participant, recording=recording),
        tobii_row(50, "Fixation", 2, hits=("0", "1"), participant=participant, recording=recording),
        tobii_row(60, "Fixation", 2, hits=("0", "1"), participant=participant, recording=recording),
    ]
    return join_rows(rows)
