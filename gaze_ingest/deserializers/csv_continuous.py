"""Generic continuous CSV: one row per sample with ``Time``, ``Participant``,
``Stimulus`` and ``AOI`` columns.

Consecutive samples sharing AOI, participant and stimulus form one segment.
A segment ends at its last sample, so a single-sample segment has zero
duration.
"""
from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from ..config.constants import CategoryNames
from ..domain.segments import SegmentRecord
from ..utils.numbers import format_number, require_float
from .base import EyeDeserializer


class CsvDeserializer(EyeDeserializer):
    NAME = "csv"

    def __init__(self, header: Sequence[str]):
        super().__init__()
        header = [h.strip() for h in header]
        self.c_time = self.get_index(header, "Time")
        self.c_aoi = self.get_index(header, "AOI")
        self.c_participant = self.get_index(header, "Participant")
        self.c_stimulus = self.get_index(header, "Stimulus")
        self._time_bases: Dict[Tuple[str, str], float] = {}
        self._key: Optional[Tuple[str, str, str]] = None
        self._time_start = 0.0
        self._time_last = 0.0

    def _deserialize(self, row: Sequence[str]) -> Optional[SegmentRecord]:
        time = require_float(self.cell(row, self.c_time), "Time")
        key = (
            self.cell(row, self.c_stimulus),
            self.cell(row, self.c_participant),
            self.cell(row, self.c_aoi),
        )
        self._time_bases.setdefault(key[:2], time)

        output = None
        if key != self._key:
            output = self._pending_segment()
            self._key = key
            self._time_start = time
        self._time_last = time
        return output

    def _finalize(self) -> Optional[SegmentRecord]:
        return self._pending_segment()

    def _pending_segment(self) -> Optional[SegmentRecord]:
        if self._key is None:
            return None
        stimulus, participant, aoi = self._key
        base = self._time_bases[(stimulus, participant)]
        return SegmentRecord(
            stimulus=stimulus,
            participant=participant,
            category=CategoryNames.FIXATION,
            start=format_number(self._time_start - base),
            end=format_number(self._time_last - base),
            aoi=[aoi] if aoi else None,
        )
