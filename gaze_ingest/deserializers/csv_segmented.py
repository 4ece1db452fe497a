"""Segmented CSV with explicit ``From``/``To`` columns."""
from __future__ import annotations

from typing import Optional, Sequence

from ..config.constants import CategoryNames
from ..domain.segments import SegmentRecord
from ..utils.numbers import to_float
from .base import EyeDeserializer


class CsvSegmentedDeserializer(EyeDeserializer):
    NAME = "csv-segmented"

    def __init__(self, header: Sequence[str]):
        super().__init__()
        header = [h.strip() for h in header]
        self.c_from = self.get_index(header, "From")
        self.c_to = self.get_index(header, "To")
        self.c_aoi = self.get_index(header, "AOI")
        self.c_participant = self.get_index(header, "Participant")
        self.c_stimulus = self.get_index(header, "Stimulus")

    def _deserialize(self, row: Sequence[str]) -> Optional[SegmentRecord]:
        start = self.cell(row, self.c_from).strip()
        end = self.cell(row, self.c_to).strip()
        participant = self.cell(row, self.c_participant)
        stimulus = self.cell(row, self.c_stimulus)
        if not participant or not stimulus:
            return None
        if to_float(start) is None or to_float(end) is None:
            return None
        aoi = self.cell(row, self.c_aoi)
        return SegmentRecord(
            stimulus=stimulus,
            participant=participant,
            category=CategoryNames.FIXATION,
            start=start,
            end=end,
            aoi=[aoi] if aoi else None,
        )
