"""Segment records produced by deserializers, before id resolution."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Union


@dataclass
class SegmentRecord:
    """One normalized eye-movement segment.

    ``start``/``end`` are millisecond values kept as decimal strings until the
    writer turns them into numbers. ``aoi`` is ``None`` when no area of
    interest was hit.
    """

    stimulus: str
    participant: str
    category: str
    start: str
    end: str
    aoi: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "stimulus": self.stimulus,
            "participant": self.participant,
            "category": self.category,
            "start": self.start,
            "end": self.end,
            "aoi": None if self.aoi is None else list(self.aoi),
        }


# What deserialize()/finalize() may hand back
DeserializerOutput = Union[None, SegmentRecord, List[SegmentRecord]]
