"""Tobii Pro Lab TSV export.

Rows sharing an ``Eye movement type index`` form one segment. A segment is
only known to be complete when a row with another index (or another
stimulus) arrives, so ``deserialize`` returns the *previous* segment.

Handled export quirks:

1. Sensor filtering. When a ``Sensor`` column exists only ``Eye Tracker``
   rows drive timing and AOI hits. Every row still feeds the event column.
2. AOI hit aggregation. ``AOI hit [<stimulus> - <aoi>]`` flags may differ
   between rows of one segment, so hits are unioned across the segment.
3. Half-sample edges. The nominal sample interval is learned per recording
   and participant. When the gap between two segments is at most 1.5
   intervals, both the previous end and the new start move to the midpoint
   between the two samples. The last segment ends half an interval after
   its last sample.
4. Stimulus boundaries come either from the media column (with ``" (N)"``
   suffixes for revisits) or from ``<name> <start>``/``<name> <end>``
   markers in the ``Event`` column. Overlapping intervals yield one segment
   per open interval.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..config.constants import TobiiConstants
from ..domain.segments import DeserializerOutput, SegmentRecord
from ..errors import ColumnNotFoundError
from ..utils.numbers import format_number, require_float
from .base import EyeDeserializer

logger = logging.getLogger(__name__)

AOI_HIT_PATTERN = re.compile(r"^AOI hit \[(.*?) - (.*)\]$")

SampleKey = Tuple[str, str]


def build_aoi_columns(header: Sequence[str]) -> Dict[str, List[Tuple[int, str]]]:
    """Map stimulus name -> [(column index, AOI name), ...]."""
    columns: Dict[str, List[Tuple[int, str]]] = {}
    for idx, name in enumerate(header):
        if not name.startswith(TobiiConstants.AOI_HIT_PREFIX):
            continue
        match = AOI_HIT_PATTERN.match(name)
        if match is None:
            continue
        stimulus, aoi = match.groups()
        columns.setdefault(stimulus, []).append((idx, aoi))
    return columns


def parse_interval_markers(user_input: str) -> Tuple[str, str]:
    """``"IntervalStart;IntervalEnd"`` -> suffixes matched against events."""
    parts = [p.strip() for p in user_input.split(";")]
    default_end = TobiiConstants.DEFAULT_INTERVAL_MARKERS.split(";")[1]
    start = parts[0]
    end = parts[1] if len(parts) > 1 and parts[1] else default_end

    def suffix(marker: str) -> str:
        # web navigation markers ("page_start") are glued to the name
        return marker if marker.startswith("_") else f" {marker}"

    return suffix(start), suffix(end)


class TobiiDeserializer(EyeDeserializer):
    NAME = "tobii"

    def __init__(self, header: Sequence[str], user_input: str = ""):
        super().__init__()
        header = [h.strip() for h in header]
        self.c_timestamp, self._time_divisor = self._find_timestamp(header)
        self.c_participant = self.get_index(header, TobiiConstants.PARTICIPANT_COLUMN)
        self.c_category = self.get_index(header, TobiiConstants.CATEGORY_COLUMN)
        self.c_movement_index = self.get_index(header, TobiiConstants.MOVEMENT_INDEX_COLUMN)
        self.c_recording = self._optional_index(header, TobiiConstants.RECORDING_COLUMN)
        self.c_sensor = self._optional_index(header, TobiiConstants.SENSOR_COLUMN)
        self.c_event = self._optional_index(header, TobiiConstants.EVENT_COLUMN)
        self.c_stimulus = self._optional_index(header, TobiiConstants.STIMULUS_COLUMN)
        if self.c_stimulus == -1:
            self.c_stimulus = self._optional_index(header, TobiiConstants.MEDIA_COLUMN)

        self.user_input = user_input
        self.uses_intervals = user_input != ""
        if self.uses_intervals:
            self.get_index(header, TobiiConstants.EVENT_COLUMN)
            self._start_suffix, self._end_suffix = parse_interval_markers(user_input)
        elif self.c_stimulus == -1:
            raise ColumnNotFoundError(TobiiConstants.STIMULUS_COLUMN, self.NAME)

        self._aoi_columns = build_aoi_columns(header)

        # open segment
        self._open = False
        self._stimulus = ""
        self._aoi_stimulus = ""
        self._segment_stimuli: List[str] = []
        self._participant = ""
        self._sample_key: SampleKey = ("", "")
        self._movement_index = ""
        self._category = ""
        self._start = 0.0
        self._last = 0.0
        self._aoi_hits: Dict[str, None] = {}
        self._prev_ts: Optional[float] = None

        self._sample_intervals: Dict[SampleKey, float] = {}
        self._base_times: Dict[Tuple[str, str], float] = {}
        self._interval_stack: List[str] = []

        # revisit bookkeeping for the media-column strategy
        self._visit_counts: Dict[Tuple[str, str], int] = {}
        self._visit_key: Optional[Tuple[str, str]] = None
        self._visit_display = ""

    # ------------------------------------------------------------------ #
    # header helpers
    # ------------------------------------------------------------------ #
    def _find_timestamp(self, header: List[str]) -> Tuple[int, float]:
        for idx, name in enumerate(header):
            if not name.startswith(TobiiConstants.TIMESTAMP_COLUMN):
                continue
            unit = name[len(TobiiConstants.TIMESTAMP_COLUMN):].strip()
            return idx, 1.0 if unit == "[ms]" else 1000.0
        raise ColumnNotFoundError(TobiiConstants.TIMESTAMP_COLUMN, self.NAME)

    @staticmethod
    def _optional_index(header: List[str], column: str) -> int:
        return header.index(column) if column in header else -1

    # ------------------------------------------------------------------ #
    # row processing
    # ------------------------------------------------------------------ #
    def _deserialize(self, row: Sequence[str]) -> DeserializerOutput:
        name = self.cell(row, self.c_participant)
        recording = self.cell(row, self.c_recording)
        participant = " ".join(p for p in (recording, name) if p)

        if self.uses_intervals:
            stimuli = self._interval_stimuli(row)
        else:
            stimuli = self._media_stimuli(row, participant)

        if self.cell(row, self.c_category) == "":
            return None
        if self.c_sensor != -1 and self.cell(row, self.c_sensor) != TobiiConstants.EYE_TRACKER_SENSOR:
            return None

        ts = require_float(self.cell(row, self.c_timestamp), TobiiConstants.TIMESTAMP_COLUMN)
        sample_key = (recording, name)
        self._learn_sample_interval(sample_key, ts)

        if self._is_same_segment(row, participant, stimuli):
            self._last = ts
            self._track_aoi_hits(row)
            self._prev_ts = ts
            return None

        out = self._start_segment(row, ts, participant, sample_key, stimuli)
        self._prev_ts = ts
        return out

    def _finalize(self) -> DeserializerOutput:
        if not self._open:
            return None
        interval = self._sample_intervals.get(self._sample_key)
        end = self._last + interval / 2 if interval else self._last
        return self._emit(end)

    def _learn_sample_interval(self, key: SampleKey, ts: float) -> None:
        if self._prev_ts is None or key in self._sample_intervals:
            return
        delta = ts - self._prev_ts
        delta_us = delta * 1000.0 / self._time_divisor
        if TobiiConstants.MIN_SAMPLE_INTERVAL_US <= delta_us <= TobiiConstants.MAX_SAMPLE_INTERVAL_US:
            self._sample_intervals[key] = delta
            logger.debug("Learned sample interval %s for %s", delta, key)

    def _is_same_segment(self, row: Sequence[str], participant: str, stimuli: List[str]) -> bool:
        if not self._open:
            return False
        if self.cell(row, self.c_movement_index) != self._movement_index:
            return False
        if self.cell(row, self.c_category) != self._category:
            return False
        if participant != self._participant:
            return False
        # any opened or closed interval starts a new segment
        return stimuli == self._segment_stimuli

    def _start_segment(
        self,
        row: Sequence[str],
        ts: float,
        participant: str,
        sample_key: SampleKey,
        stimuli: List[str],
    ) -> DeserializerOutput:
        corrected_start = ts
        midpoint = None
        interval = self._sample_intervals.get(sample_key)
        if interval and self._prev_ts is not None:
            delta = ts - self._prev_ts
            if 0 <= delta <= interval * TobiiConstants.SAMPLE_INTERVAL_TOLERANCE_FACTOR:
                midpoint = self._prev_ts + delta / 2
                corrected_start = midpoint

        previous = None
        if self._open and self._last != self._start:
            previous = self._emit(midpoint if midpoint is not None else self._last)

        if not stimuli:
            self._open = False
            self._stimulus = ""
            return previous

        self._stimulus = stimuli[-1]
        self._segment_stimuli = list(stimuli)
        self._aoi_stimulus = self._stimulus if self.uses_intervals else self.cell(row, self.c_stimulus)
        for stimulus in stimuli:
            self._base_times.setdefault((stimulus, participant), corrected_start)

        self._open = True
        self._participant = participant
        self._sample_key = sample_key
        self._start = corrected_start
        self._last = ts
        self._category = self.cell(row, self.c_category)
        self._movement_index = self.cell(row, self.c_movement_index)
        self._aoi_hits = {}
        self._track_aoi_hits(row)
        return previous

    def _track_aoi_hits(self, row: Sequence[str]) -> None:
        for idx, aoi in self._aoi_columns.get(self._aoi_stimulus, ()):
            if self.cell(row, idx) == "1":
                self._aoi_hits[aoi] = None

    def _emit(self, end: float) -> Union[SegmentRecord, List[SegmentRecord]]:
        aoi = list(self._aoi_hits) or None
        records = []
        for stimulus in self._segment_stimuli:
            base = self._base_times.get((stimulus, self._participant), self._start)
            records.append(
                SegmentRecord(
                    stimulus=stimulus,
                    participant=self._participant,
                    category=self._category,
                    start=format_number((self._start - base) / self._time_divisor),
                    end=format_number((end - base) / self._time_divisor),
                    aoi=None if aoi is None else list(aoi),
                )
            )
        return records[0] if len(records) == 1 else records

    # ------------------------------------------------------------------ #
    # stimulus strategies
    # ------------------------------------------------------------------ #
    def _media_stimuli(self, row: Sequence[str], participant: str) -> List[str]:
        if self.c_sensor != -1 and self.cell(row, self.c_sensor) != TobiiConstants.EYE_TRACKER_SENSOR:
            return [self._visit_display] if self._visit_display else []
        raw = self.cell(row, self.c_stimulus)
        key = (raw, participant)
        if key != self._visit_key:
            self._visit_key = key
            if raw:
                count = self._visit_counts.get(key, 0)
                self._visit_counts[key] = count + 1
                self._visit_display = raw if count == 0 else f"{raw} ({count})"
            else:
                self._visit_display = ""
        return [self._visit_display] if self._visit_display else []

    def _interval_stimuli(self, row: Sequence[str]) -> List[str]:
        event = self.cell(row, self.c_event)
        if event.endswith(self._start_suffix) and len(event) > len(self._start_suffix):
            name = event[: -len(self._start_suffix)]
            if name not in self._interval_stack:
                self._interval_stack.append(name)
        elif event.endswith(self._end_suffix) and len(event) > len(self._end_suffix):
            name = event[: -len(self._end_suffix)]
            if name in self._interval_stack:
                self._interval_stack.remove(name)
        return list(self._interval_stack)
