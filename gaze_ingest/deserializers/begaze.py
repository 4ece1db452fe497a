"""SMI BeGaze event statistics export: one row is one segment."""
from __future__ import annotations

from typing import List, Optional, Sequence

from ..config.constants import CategoryNames
from ..domain.segments import SegmentRecord
from ..utils.numbers import to_float
from .base import EyeDeserializer


class BeGazeDeserializer(EyeDeserializer):
    NAME = "begaze"

    def __init__(self, header: Sequence[str]):
        super().__init__()
        self.c_start = self.get_index(header, "Event Start Trial Time [ms]")
        self.c_end = self.get_index(header, "Event End Trial Time [ms]")
        self.c_stimulus = self.get_index(header, "Stimulus")
        self.c_participant = self.get_index(header, "Participant")
        self.c_category = self.get_index(header, "Category")
        self.c_aoi = self.get_index(header, "AOI Name")

    def _deserialize(self, row: Sequence[str]) -> Optional[SegmentRecord]:
        start = self.cell(row, self.c_start).strip()
        end = self.cell(row, self.c_end).strip()
        if to_float(start) is None or to_float(end) is None:
            return None
        category = self.cell(row, self.c_category)
        if category in CategoryNames.BEGAZE_IGNORED:
            return None
        return SegmentRecord(
            stimulus=self.cell(row, self.c_stimulus),
            participant=self.cell(row, self.c_participant),
            category=category,
            start=start,
            end=end,
            aoi=self._transform_aoi(self.cell(row, self.c_aoi)),
        )

    @staticmethod
    def _transform_aoi(aoi: str) -> Optional[List[str]]:
        if aoi in CategoryNames.BEGAZE_NO_AOI:
            return None
        return [aoi]
