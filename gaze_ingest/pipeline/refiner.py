"""Finishing pass over the accumulated dictionaries."""
from __future__ import annotations

import copy
import logging
from typing import Dict, List, Optional

from ..config import CategoryNames, PipelineConfig
from ..domain.dataset import ParsedData
from ..errors import InvalidVisibilityIntervalError

logger = logging.getLogger(__name__)


class EyeRefiner:
    """Turns the writer's raw snapshot into the final dataset.

    - pads the segment grid so every [stimulus][participant] cell exists
    - collapses AOI ids sharing a displayed name inside each segment
    - orders every cell by segment start
    - merges fixations duplicated with identical start and end
    - fills participant and AOI order vectors alphabetically
    - checks that dynamic visibility arrays have even length

    The input is left untouched.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or PipelineConfig()

    def process(self, data: ParsedData) -> ParsedData:
        refined = copy.deepcopy(data)

        # Step 1: complete grid
        self._pad_segments(refined)

        # Step 2: AOI ids by displayed name
        canonical = self._canonical_aoi_ids(refined)

        # Step 3 + 4: sort and merge
        fixation_id = self._category_id(refined, CategoryNames.FIXATION)
        merged_total = 0
        for s_id, cells in enumerate(refined.segments):
            for p_id, cell in enumerate(cells):
                cell = [self._dedupe_aois(seg, canonical[s_id]) for seg in cell]
                cell.sort(key=lambda seg: seg[0])
                if self.config.merge_duplicated_fixations and fixation_id is not None:
                    before = len(cell)
                    cell = self._merge_duplicated_fixations(cell, fixation_id)
                    merged_total += before - len(cell)
                cells[p_id] = cell
        if merged_total:
            logger.debug("Merged %s duplicated fixation segments", merged_total)

        # Step 5: order vectors
        refined.participants.order_vector = (
            _alphabetical(refined.participants.names())
            if self.config.order_participants_alphabetically
            else []
        )
        refined.aois.order_vector = [
            _alphabetical([row[0] for row in stim]) if self.config.order_aois_alphabetically else []
            for stim in refined.aois.data
        ]

        # Step 6: visibility invariant
        self.validate_visibility(refined.aois.dynamic_visibility)
        return refined

    @staticmethod
    def validate_visibility(visibility: Dict[str, List[float]]) -> None:
        for key, values in visibility.items():
            if len(values) % 2 != 0:
                raise InvalidVisibilityIntervalError(
                    f"Visibility array for {key} has odd length {len(values)}"
                )

    @staticmethod
    def _pad_segments(data: ParsedData) -> None:
        n_stimuli = len(data.stimuli.data)
        n_participants = len(data.participants.data)
        while len(data.segments) < n_stimuli:
            data.segments.append([])
        for cells in data.segments:
            while len(cells) < n_participants:
                cells.append([])
        while len(data.aois.data) < n_stimuli:
            data.aois.data.append([])

    @staticmethod
    def _canonical_aoi_ids(data: ParsedData) -> List[List[int]]:
        result = []
        for s_id, stim in enumerate(data.aois.data):
            first_by_name: Dict[str, int] = {}
            mapping = []
            for a_id in range(len(stim)):
                name = data.aois.displayed_name(s_id, a_id)
                mapping.append(first_by_name.setdefault(name, a_id))
            result.append(mapping)
        return result

    @staticmethod
    def _dedupe_aois(segment: List[float], mapping: List[int]) -> List[float]:
        aoi_ids: List[int] = []
        for a_id in segment[3:]:
            canonical = mapping[int(a_id)]
            if canonical not in aoi_ids:
                aoi_ids.append(canonical)
        return [segment[0], segment[1], segment[2], *aoi_ids]

    @staticmethod
    def _merge_duplicated_fixations(cell: List[List[float]], fixation_id: int) -> List[List[float]]:
        merged: List[List[float]] = []
        for seg in cell:
            prev = merged[-1] if merged else None
            if (
                prev is not None
                and seg[2] == fixation_id
                and prev[2] == fixation_id
                and seg[0] == prev[0]
                and seg[1] == prev[1]
            ):
                for a_id in seg[3:]:
                    if a_id not in prev[3:]:
                        prev.append(a_id)
                continue
            merged.append(seg)
        return merged

    @staticmethod
    def _category_id(data: ParsedData, name: str) -> Optional[int]:
        for idx, row in enumerate(data.categories.data):
            if row[0] == name:
                return idx
        return None


def _alphabetical(names: List[str]) -> List[int]:
    return sorted(range(len(names)), key=lambda i: (names[i].casefold(), i))
