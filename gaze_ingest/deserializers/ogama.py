"""OGAMA scanpath similarity export.

A row holds a whole scanpath as a string of single-letter AOI codes, ``#``
meaning "no AOI". Times are ordinal: letter ``i`` spans ``[i, i + 1)``.
"""
from __future__ import annotations

from pathlib import PurePath
from typing import List, Sequence

from ..config.constants import CategoryNames
from ..domain.segments import SegmentRecord
from .base import EyeDeserializer

NO_AOI_CODE = "#"


def _stimulus_from_file_name(file_name: str) -> str:
    return PurePath(file_name).name.split(".")[0]


class OgamaDeserializer(EyeDeserializer):
    NAME = "ogama"

    def __init__(self, header: Sequence[str], file_name: str):
        super().__init__()
        self.stimulus = _stimulus_from_file_name(file_name)
        self.c_participant = self.get_index(header, "Sequence Similarity")
        self.c_segments = self.get_index(header, "Scanpath string")

    def _deserialize(self, row: Sequence[str]) -> List[SegmentRecord]:
        scanpath = self.cell(row, self.c_segments).strip()
        participant = self.cell(row, self.c_participant)
        if not participant:
            return []
        return [
            SegmentRecord(
                stimulus=self.stimulus,
                participant=participant,
                category=CategoryNames.FIXATION,
                start=str(i),
                end=str(i + 1),
                aoi=None if code == NO_AOI_CODE else [code],
            )
            for i, code in enumerate(scanpath)
        ]
