import pytest

from gaze_ingest.deserializers import GazePointDeserializer
from gaze_ingest.errors import ColumnNotFoundError


HEADER = "MEDIA_ID,MEDIA_NAME,TIME(2021/07/13 09:21:09.801),FPOGS,FPOGD,FPOGID,BKID,BKDUR,AOI,".split(",")


def row(text):
    return text.split(",")


@pytest.fixture
def deserializer():
    return GazePointDeserializer(HEADER, "P1")


def test_fixation_flushed_when_next_fixation_starts(deserializer):
    assert deserializer.deserialize(row("0,Slide0,0.06689,0.00000,0.06689,1,0,0.00000,,")) is None

    record = deserializer.deserialize(row("0,Slide0,0.13378,0.06689,0.06689,2,0,0.00000,,"))
    assert record.participant == "P1"
    assert record.stimulus == "Slide0"
    assert record.category == "Fixation"
    assert (record.start, record.end) == ("0", "0.06689")
    assert record.aoi is None

    last = deserializer.finalize()
    assert (last.start, last.end) == ("0.06689", "0.13378")


def test_fixation_blink_fixation_sequence(deserializer):
    rows = [
        "2,Slide01,1.52063,1.38635,0.13428,6,0,0.00000,Right-AOI 4,",
        "2,Slide01,1.54968,1.38635,0.16333,6,0,0.00000,Right-AOI 4,",
        "2,Slide01,1.57410,1.38635,0.16333,6,157,0.00000,,",
        "2,Slide01,1.71008,1.38635,0.16333,6,0,0.13605,,",
        "2,Slide01,1.74805,1.72827,0.01978,7,0,0.00000,Right-AOI 4,",
        "2,Slide01,1.91528,1.72827,0.18701,7,0,0.00000,Right-AOI 4,",
        "2,Slide01,1.92200,1.72827,0.18701,7,0,0.00000,,",
        "2,Slide01,1.93200,1.72827,0.18701,7,0,0.00000,,",
        "2,Slide01,1.94200,1.93200,0.10000,8,0,0.00000,,",
    ]
    out = [deserializer.deserialize(row(r)) for r in rows]

    assert out[0] is None and out[1] is None
    fixation = out[2]
    assert fixation.category == "Fixation"
    assert (fixation.start, fixation.end) == ("1.38635", "1.54968")
    assert fixation.aoi == ["Right-AOI 4"]

    assert out[3] is None
    blink = out[4]
    assert blink.category == "Blink"
    assert (blink.start, blink.end) == ("1.5741", "1.71008")
    assert blink.aoi is None

    assert out[5] is None
    second = out[6]
    assert (second.start, second.end) == ("1.72827", "1.91528")
    assert second.aoi == ["Right-AOI 4"]

    # repeated fixation 7 is not reopened
    assert out[7] is None
    assert out[8] is None


def test_participant_from_file_stem():
    d = GazePointDeserializer(HEADER, "data/User 3_all_gaze.csv")
    assert d.participant == "User 3"


def test_optional_columns():
    header = ["MEDIA_NAME", "TIME", "FPOGS", "FPOGD", "FPOGID"]
    d = GazePointDeserializer(header, "P2.csv")
    assert d.c_blink_id == -1
    assert d.c_aoi == -1
    assert d.deserialize(["Slide0", "0.1", "0.0", "0.1", "1"]) is None
    record = d.finalize()
    assert (record.start, record.end) == ("0", "0.1")


def test_required_column_missing():
    with pytest.raises(ColumnNotFoundError):
        GazePointDeserializer(["MEDIA_NAME", "TIME", "FPOGS", "FPOGD"], "P1")


def test_unterminated_blink_is_dropped(deserializer):
    deserializer.deserialize(row("0,Slide0,0.5,0.0,0.0,1,3,0.00000,,"))
    assert deserializer.finalize() is None
