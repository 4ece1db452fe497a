"""Segmented CSV with ``timestamp`` + ``duration`` columns.

The first row of every (stimulus, participant) pair sets that pair's time
base. Eye movement type ``0`` is a fixation, any other code a saccade.
"""
from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from ..config.constants import CategoryNames
from ..domain.segments import SegmentRecord
from ..utils.numbers import format_number, require_float
from .base import EyeDeserializer

FIXATION_CODE = "0"


class CsvSegmentedDurationDeserializer(EyeDeserializer):
    NAME = "csv-segmented-duration"

    def __init__(self, header: Sequence[str]):
        super().__init__()
        # exports often carry stray spaces or a BOM in the header
        header = [h.strip().lstrip("\ufeff") for h in header]
        self.c_timestamp = self.get_index(header, "timestamp")
        self.c_duration = self.get_index(header, "duration")
        self.c_aoi = self.get_index(header, "AOI")
        self.c_participant = self.get_index(header, "participant")
        self.c_stimulus = self.get_index(header, "stimulus")
        self.c_eye_movement_type = self.get_index(header, "eyemovementtype")
        self._time_bases: Dict[Tuple[str, str], float] = {}

    def _deserialize(self, row: Sequence[str]) -> Optional[SegmentRecord]:
        participant = self.cell(row, self.c_participant)
        stimulus = self.cell(row, self.c_stimulus)
        if not participant or not stimulus:
            return None
        timestamp = require_float(self.cell(row, self.c_timestamp), "timestamp")
        duration = require_float(self.cell(row, self.c_duration), "duration")

        base = self._time_bases.setdefault((stimulus, participant), timestamp)
        start = timestamp - base
        end = start + duration

        movement = self.cell(row, self.c_eye_movement_type).strip()
        category = CategoryNames.FIXATION if movement == FIXATION_CODE else CategoryNames.SACCADE
        aoi = self.cell(row, self.c_aoi)
        return SegmentRecord(
            stimulus=stimulus,
            participant=participant,
            category=category,
            start=format_number(start),
            end=format_number(end),
            aoi=[aoi] if aoi else None,
        )
