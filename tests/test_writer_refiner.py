import pytest

from gaze_ingest.config import PipelineConfig
from gaze_ingest.domain.segments import SegmentRecord
from gaze_ingest.errors import InvalidVisibilityIntervalError
from gaze_ingest.pipeline import EyeRefiner, EyeWriter


def rec(stimulus="Map", participant="P1", category="Fixation", start="0", end="10", aoi=None):
    return SegmentRecord(stimulus, participant, category, start, end, aoi)


class TestEyeWriter:
    def test_dictionaries_assign_ids_in_first_seen_order(self):
        writer = EyeWriter()
        writer.add(rec(participant="Zoe", aoi=["B", "A"]))
        writer.add(rec(stimulus="Other", participant="Adam", category="Saccade", aoi=["A"]))
        writer.add(rec(participant="Adam", start="10", end="20", aoi=["A"]))

        data = writer.data
        assert data.stimuli.names() == ["Map", "Other"]
        assert data.participants.names() == ["Zoe", "Adam"]
        assert data.categories.names() == ["Fixation", "Saccade"]
        assert [row[0] for row in data.aois.data[0]] == ["B", "A"]
        assert [row[0] for row in data.aois.data[1]] == ["A"]
        assert data.segments[0][0] == [[0.0, 10.0, 0, 0, 1]]
        assert data.segments[0][1] == [[10.0, 20.0, 0, 1]]
        assert data.segments[1][1] == [[0.0, 10.0, 1, 0]]
        assert writer.segment_count == 3

    @pytest.mark.parametrize("start,end", [("abc", "1"), ("5", "1"), ("", "")])
    def test_rejects_invalid_times(self, start, end):
        writer = EyeWriter()
        assert writer.add(rec(start=start, end=end)) is False
        assert writer.rejected_count == 1
        assert writer.data.stimuli.data == []

    def test_add_many_counts_accepted(self):
        writer = EyeWriter()
        assert writer.add_many([rec(), rec(start="x"), rec(start="20", end="30")]) == 2


class TestEyeRefiner:
    def test_grid_is_padded(self):
        writer = EyeWriter()
        writer.add(rec(stimulus="A", participant="P1"))
        writer.add(rec(stimulus="B", participant="P2"))
        data = EyeRefiner().process(writer.data)
        assert data.segments[0][1] == []
        assert data.segments[1][0] == []
        assert len(data.aois.data) == 2

    def test_segments_sorted_by_start(self):
        writer = EyeWriter()
        writer.add(rec(start="20", end="30"))
        writer.add(rec(start="0", end="10"))
        writer.add(rec(start="10", end="20", category="Saccade"))
        data = EyeRefiner().process(writer.data)
        assert [seg[0] for seg in data.segments[0][0]] == [0.0, 10.0, 20.0]

    def test_duplicated_fixations_are_merged(self):
        writer = EyeWriter()
        writer.add(rec(start="0", end="10", aoi=["A"]))
        writer.add(rec(start="0", end="10", aoi=["B"]))
        writer.add(rec(start="0", end="10", category="Saccade"))
        data = EyeRefiner().process(writer.data)
        assert data.segments[0][0] == [[0.0, 10.0, 0, 0, 1], [0.0, 10.0, 1]]

    def test_merge_can_be_disabled(self):
        writer = EyeWriter()
        writer.add(rec(aoi=["A"]))
        writer.add(rec(aoi=["B"]))
        data = EyeRefiner(PipelineConfig(merge_duplicated_fixations=False)).process(writer.data)
        assert len(data.segments[0][0]) == 2

    def test_aois_sharing_displayed_name_collapse(self):
        writer = EyeWriter()
        writer.add(rec(aoi=["Left", "Right"]))
        raw = writer.data
        raw.aois.data[0][1] = ["Right", "Left"]
        data = EyeRefiner().process(raw)
        assert data.segments[0][0] == [[0.0, 10.0, 0, 0]]

    def test_alphabetical_order_vectors(self):
        writer = EyeWriter()
        for name in ("zed", "Adam", "bob"):
            writer.add(rec(participant=name, aoi=["b", "C", "a"]))
        data = EyeRefiner().process(writer.data)
        assert data.participants.order_vector == [1, 2, 0]
        assert data.aois.order_vector == [[2, 0, 1]]
        assert data.stimuli.order_vector == []
        assert data.categories.order_vector == []

    def test_input_is_not_modified(self):
        writer = EyeWriter()
        writer.add(rec(start="20", end="30"))
        writer.add(rec(start="0", end="10"))
        raw = writer.data
        EyeRefiner().process(raw)
        assert [seg[0] for seg in raw.segments[0][0]] == [20.0, 0.0]

    def test_odd_visibility_array_raises(self):
        writer = EyeWriter()
        writer.add(rec(aoi=["A"]))
        raw = writer.data
        raw.aois.dynamic_visibility["0_0"] = [0.0, 5.0, 7.0]
        with pytest.raises(InvalidVisibilityIntervalError):
            EyeRefiner().process(raw)
