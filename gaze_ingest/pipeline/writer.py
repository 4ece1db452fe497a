"""Accumulator turning segment records into indexed dictionaries."""
from __future__ import annotations

import logging
from typing import Dict, List

from ..domain.dataset import AoiData, AttributeData, ParsedData
from ..domain.segments import SegmentRecord
from ..utils.numbers import to_float

logger = logging.getLogger(__name__)


class _NameIndex:
    """Insertion-ordered name -> id dictionary (first seen wins)."""

    def __init__(self) -> None:
        self.ids: Dict[str, int] = {}
        self.names: List[str] = []

    def get_or_add(self, name: str) -> int:
        idx = self.ids.get(name)
        if idx is None:
            idx = len(self.names)
            self.ids[name] = idx
            self.names.append(name)
        return idx

    def __len__(self) -> int:
        return len(self.names)


class EyeWriter:
    """Single-writer accumulator owned by one ingestion session.

    Dictionaries only grow. Segments are stored as
    ``[start, end, categoryId, *aoiIds]`` under ``[stimulusId][participantId]``.
    """

    def __init__(self) -> None:
        self._stimuli = _NameIndex()
        self._participants = _NameIndex()
        self._categories = _NameIndex()
        self._aois: List[_NameIndex] = []
        self._segments: List[List[List[List[float]]]] = []
        self.segment_count = 0
        self.rejected_count = 0

    def add(self, record: SegmentRecord) -> bool:
        """Store one record. Returns ``False`` when it was rejected."""
        start = to_float(record.start)
        end = to_float(record.end)
        if start is None or end is None or end < start:
            self.rejected_count += 1
            logger.debug("Rejected segment with start=%r end=%r", record.start, record.end)
            return False

        s_id = self._stimuli.get_or_add(record.stimulus)
        p_id = self._participants.get_or_add(record.participant)
        c_id = self._categories.get_or_add(record.category)
        while len(self._aois) <= s_id:
            self._aois.append(_NameIndex())
        aoi_index = self._aois[s_id]
        aoi_ids = [aoi_index.get_or_add(name) for name in (record.aoi or [])]

        while len(self._segments) <= s_id:
            self._segments.append([])
        cells = self._segments[s_id]
        while len(cells) <= p_id:
            cells.append([])
        cells[p_id].append([start, end, c_id, *aoi_ids])
        self.segment_count += 1
        return True

    def add_many(self, records) -> int:
        return sum(1 for record in records if self.add(record))

    @property
    def data(self) -> ParsedData:
        """Raw (unrefined) snapshot of the accumulated dictionaries."""
        return ParsedData(
            stimuli=AttributeData(data=[[name] for name in self._stimuli.names]),
            participants=AttributeData(data=[[name] for name in self._participants.names]),
            categories=AttributeData(data=[[name] for name in self._categories.names]),
            aois=AoiData(
                data=[[[name] for name in index.names] for index in self._aois],
                order_vector=[[] for _ in self._aois],
            ),
            segments=[[list(map(list, cell)) for cell in cells] for cells in self._segments],
        )
