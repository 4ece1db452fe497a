import pytest

from gaze_ingest.deserializers import TobiiDeserializer
from gaze_ingest.deserializers.tobii import build_aoi_columns, parse_interval_markers
from gaze_ingest.errors import ColumnNotFoundError

from conftest import TOBII_EVENT_HEADER, TOBII_HEADER, collect, tobii_event_row, tobii_row


def spans(records):
    return [(r.stimulus, r.category, r.start, r.end) for r in records]


class TestHeader:
    def test_aoi_columns_grouped_by_stimulus(self):
        header = ["AOI hit [Map - Region_1]", "x", "AOI hit [Map - Big - Area]", "AOI hit [Other - R]"]
        assert build_aoi_columns(header) == {
            "Map": [(0, "Region_1"), (2, "Big - Area")],
            "Other": [(3, "R")],
        }

    def test_missing_participant_column(self):
        header = [h for h in TOBII_HEADER if h != "Participant name"]
        with pytest.raises(ColumnNotFoundError, match="Participant name"):
            TobiiDeserializer(header)

    def test_media_strategy_needs_stimulus_column(self):
        header = [h for h in TOBII_HEADER if h != "Presented Stimulus name"]
        with pytest.raises(ColumnNotFoundError, match="Presented Stimulus name"):
            TobiiDeserializer(header)

    def test_recording_media_name_fallback(self):
        header = ["Recording media name" if h == "Presented Stimulus name" else h for h in TOBII_HEADER]
        d = TobiiDeserializer(header)
        assert d.c_stimulus == 4

    def test_interval_strategy_needs_event_column(self):
        with pytest.raises(ColumnNotFoundError, match="Event"):
            TobiiDeserializer(TOBII_HEADER, "IntervalStart;IntervalEnd")

    @pytest.mark.parametrize(
        "user_input,expected",
        [
            ("IntervalStart;IntervalEnd", (" IntervalStart", " IntervalEnd")),
            ("_start;_end", ("_start", "_end")),
            ("Begin", (" Begin", " IntervalEnd")),
        ],
    )
    def test_interval_markers(self, user_input, expected):
        assert parse_interval_markers(user_input) == expected


class TestMediaStrategy:
    def rows(self):
        return [
            tobii_row(0, "Fixation", 1, hits=("1", "0")),
            tobii_row(10, "Fixation", 1),
            tobii_row(20, "Fixation", 1, hits=("0", "1")),
            tobii_row(30, "Saccade", 1),
            tobii_row(40, "Saccade", 1),
            tobii_row(50, "Fixation", 2, hits=("0", "1")),
            tobii_row(60, "Fixation", 2, hits=("0", "1")),
        ]

    def test_segments_with_midpoint_edges(self):
        records = collect(TobiiDeserializer(TOBII_HEADER), self.rows())
        assert spans(records) == [
            ("Map", "Fixation", "0", "25"),
            ("Map", "Saccade", "25", "45"),
            ("Map", "Fixation", "45", "65"),
        ]
        assert records[0].participant == "Rec1 P1"

    def test_aoi_hits_are_unioned_over_the_segment(self):
        records = collect(TobiiDeserializer(TOBII_HEADER), self.rows())
        assert records[0].aoi == ["Region_1", "Region_2"]
        assert records[1].aoi is None
        assert records[2].aoi == ["Region_2"]

    def test_segment_is_returned_when_the_next_starts(self):
        d = TobiiDeserializer(TOBII_HEADER)
        out = [d.deserialize(r) for r in self.rows()]
        assert out[:3] == [None, None, None]
        assert out[3].category == "Fixation"
        assert out[5].category == "Saccade"

    def test_non_eye_tracker_rows_are_ignored(self):
        rows = self.rows()
        rows.insert(2, tobii_row(15, "Fixation", 1, hits=("0", "0"), sensor="Mouse"))
        rows.insert(5, tobii_row(35, "", "", sensor="Mouse"))
        records = collect(TobiiDeserializer(TOBII_HEADER), rows)
        assert spans(records)[0] == ("Map", "Fixation", "0", "25")

    def test_empty_movement_type_rows_are_skipped(self):
        rows = self.rows()
        rows.insert(1, tobii_row(5, "", ""))
        records = collect(TobiiDeserializer(TOBII_HEADER), rows)
        assert len(records) == 3

    def test_revisited_stimulus_gets_suffix(self):
        rows = [
            tobii_row(0, "Fixation", 1, stimulus="A"),
            tobii_row(10, "Fixation", 1, stimulus="A"),
            tobii_row(20, "Fixation", 2, stimulus="B"),
            tobii_row(30, "Fixation", 2, stimulus="B"),
            tobii_row(40, "Fixation", 3, stimulus="A"),
            tobii_row(50, "Fixation", 3, stimulus="A"),
        ]
        records = collect(TobiiDeserializer(TOBII_HEADER), rows)
        assert [r.stimulus for r in records] == ["A", "B", "A (1)"]
        # every stimulus visit has its own time base
        assert records[1].start == "0"
        assert records[2].start == "0"

    def test_microsecond_timestamps(self):
        header = ["Recording timestamp [μs]" if h.startswith("Recording timestamp") else h for h in TOBII_HEADER]
        rows = [
            tobii_row(0, "Fixation", 1),
            tobii_row(10000, "Fixation", 1),
            tobii_row(20000, "Saccade", 1),
            tobii_row(30000, "Saccade", 1),
        ]
        records = collect(TobiiDeserializer(header), rows)
        assert spans(records) == [
            ("Map", "Fixation", "0", "15"),
            ("Map", "Saccade", "15", "35"),
        ]

    def test_large_gap_keeps_sample_edges(self):
        rows = [
            tobii_row(0, "Fixation", 1),
            tobii_row(10, "Fixation", 1),
            tobii_row(100, "Saccade", 1),
            tobii_row(110, "Saccade", 1),
        ]
        records = collect(TobiiDeserializer(TOBII_HEADER), rows)
        assert spans(records) == [
            ("Map", "Fixation", "0", "10"),
            ("Map", "Saccade", "100", "115"),
        ]


class TestIntervalStrategy:
    def test_event_markers_delimit_stimuli(self):
        rows = [
            tobii_event_row(0, "Trial1 IntervalStart"),
            tobii_event_row(0),
            tobii_event_row(10),
            tobii_event_row(20),
            tobii_event_row(25, "Trial1 IntervalEnd"),
            tobii_event_row(30),
            tobii_event_row(40),
        ]
        d = TobiiDeserializer(TOBII_EVENT_HEADER, "IntervalStart;IntervalEnd")
        records = collect(d, rows)
        assert spans(records) == [("Trial1", "Fixation", "0", "25")]
        assert records[0].participant == "P1"

    def test_overlapping_intervals_emit_one_segment_each(self):
        rows = [
            tobii_event_row(0, "A IntervalStart"),
            tobii_event_row(0),
            tobii_event_row(5, "B IntervalStart"),
            tobii_event_row(10),
            tobii_event_row(20),
            tobii_event_row(25, "B IntervalEnd"),
            tobii_event_row(30),
        ]
        d = TobiiDeserializer(TOBII_EVENT_HEADER, "IntervalStart;IntervalEnd")
        out = [d.deserialize(r) for r in rows]
        overlapping = out[6]
        assert isinstance(overlapping, list)
        assert spans(overlapping) == [
            ("A", "Fixation", "5", "25"),
            ("B", "Fixation", "0", "20"),
        ]
        assert spans([d.finalize()]) == [("A", "Fixation", "25", "35")]

    def test_closed_interval_ends_running_segment(self):
        rows = [
            tobii_event_row(0, "A IntervalStart"),
            tobii_event_row(0),
            tobii_event_row(5, "B IntervalStart"),
            tobii_event_row(10),
            tobii_event_row(20),
            tobii_event_row(25, "A IntervalEnd"),
            tobii_event_row(30),
            tobii_event_row(40),
            tobii_event_row(50, index="2"),
            tobii_event_row(60, index="2"),
        ]
        d = TobiiDeserializer(TOBII_EVENT_HEADER, "IntervalStart;IntervalEnd")
        records = collect(d, rows)
        assert spans(records) == [
            ("A", "Fixation", "5", "25"),
            ("B", "Fixation", "0", "20"),
            ("B", "Fixation", "20", "40"),
            ("B", "Fixation", "40", "60"),
        ]
        assert all(float(r.end) <= 25 for r in records if r.stimulus == "A")

    def test_web_navigation_markers(self):
        rows = [
            tobii_event_row(0, "home_start"),
            tobii_event_row(0),
            tobii_event_row(10),
            tobii_event_row(20),
        ]
        records = collect(TobiiDeserializer(TOBII_EVENT_HEADER, "_start;_end"), rows)
        assert spans(records) == [("home", "Fixation", "0", "25")]
