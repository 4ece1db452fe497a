"""Normalized dataset handed to downstream consumers.

The structure mirrors the persisted JSON layout: dictionaries of
``[originalName, displayedName?, color?]`` rows whose index is the id, and a
segment grid indexed ``[stimulusId][participantId]`` holding
``[start, end, categoryId, *aoiIds]`` lists.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd


# Reserved ids of the synthetic "all" and "non-empty" participant groups
SYNTHETIC_GROUP_IDS = (-1, -2)


@dataclass
class AttributeData:
    """Name dictionary for stimuli, participants or categories."""

    data: List[List[str]] = field(default_factory=list)
    order_vector: List[int] = field(default_factory=list)

    def names(self) -> List[str]:
        return [row[0] for row in self.data]

    def displayed_name(self, idx: int) -> str:
        row = self.data[idx]
        return row[1] if len(row) > 1 and row[1] else row[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [list(row) for row in self.data],
            "orderVector": list(self.order_vector),
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "AttributeData":
        return cls(
            data=[list(row) for row in obj.get("data", [])],
            order_vector=list(obj.get("orderVector", [])),
        )


@dataclass
class AoiData:
    """Per-stimulus AOI dictionaries plus dynamic visibility arrays."""

    data: List[List[List[str]]] = field(default_factory=list)
    order_vector: List[List[int]] = field(default_factory=list)
    # "{stimulusId}_{aoiId}" or "{stimulusId}_{aoiId}_{participantId}" -> [show, hide, ...]
    dynamic_visibility: Dict[str, List[float]] = field(default_factory=dict)

    def displayed_name(self, stimulus_id: int, aoi_id: int) -> str:
        row = self.data[stimulus_id][aoi_id]
        return row[1] if len(row) > 1 and row[1] else row[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": [[list(row) for row in stim] for stim in self.data],
            "orderVector": [list(v) for v in self.order_vector],
            "dynamicVisibility": {k: list(v) for k, v in self.dynamic_visibility.items()},
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "AoiData":
        return cls(
            data=[[list(row) for row in stim] for stim in obj.get("data", [])],
            order_vector=[list(v) for v in obj.get("orderVector", [])],
            dynamic_visibility={
                str(k): list(v) for k, v in (obj.get("dynamicVisibility") or {}).items()
            },
        )


@dataclass
class ParticipantsGroup:
    id: int
    name: str
    participants_ids: List[int] = field(default_factory=list)

    @property
    def is_synthetic(self) -> bool:
        return self.id in SYNTHETIC_GROUP_IDS

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "participantsIds": list(self.participants_ids)}

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ParticipantsGroup":
        return cls(
            id=int(obj["id"]),
            name=str(obj.get("name", "")),
            participants_ids=[int(i) for i in obj.get("participantsIds", [])],
        )


@dataclass
class ParsedData:
    """The pipeline's final output (``DataType``)."""

    stimuli: AttributeData = field(default_factory=AttributeData)
    participants: AttributeData = field(default_factory=AttributeData)
    categories: AttributeData = field(default_factory=AttributeData)
    aois: AoiData = field(default_factory=AoiData)
    segments: List[List[List[List[float]]]] = field(default_factory=list)
    participants_groups: List[ParticipantsGroup] = field(default_factory=list)

    def get_segments(self, stimulus_id: int, participant_id: int) -> List[List[float]]:
        if stimulus_id >= len(self.segments):
            return []
        row = self.segments[stimulus_id]
        if participant_id >= len(row) or row[participant_id] is None:
            return []
        return row[participant_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stimuli": self.stimuli.to_dict(),
            "participants": self.participants.to_dict(),
            "categories": self.categories.to_dict(),
            "aois": self.aois.to_dict(),
            "segments": [
                [[list(seg) for seg in (cell or [])] for cell in stim]
                for stim in self.segments
            ],
            "participantsGroups": [
                g.to_dict() for g in self.participants_groups if not g.is_synthetic
            ],
        }

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ParsedData":
        return cls(
            stimuli=AttributeData.from_dict(obj["stimuli"]),
            participants=AttributeData.from_dict(obj["participants"]),
            categories=AttributeData.from_dict(obj["categories"]),
            aois=AoiData.from_dict(obj["aois"]),
            segments=[
                [[list(seg) for seg in (cell or [])] for cell in stim]
                for stim in obj.get("segments", [])
            ],
            participants_groups=[
                ParticipantsGroup.from_dict(g)
                for g in obj.get("participantsGroups", []) or []
                if int(g.get("id", 0)) not in SYNTHETIC_GROUP_IDS
            ],
        )

    def to_frame(self, stimulus_id: Optional[int] = None) -> pd.DataFrame:
        """Flatten segments into one row per segment (names, not ids)."""
        records = []
        for s_id, stim in enumerate(self.segments):
            if stimulus_id is not None and s_id != stimulus_id:
                continue
            for p_id, cell in enumerate(stim):
                for seg in cell or []:
                    start, end, cat_id = seg[0], seg[1], int(seg[2])
                    records.append(
                        {
                            "stimulus": self.stimuli.data[s_id][0],
                            "participant": self.participants.data[p_id][0],
                            "category": self.categories.data[cat_id][0],
                            "start": start,
                            "end": end,
                            "aois": tuple(
                                self.aois.data[s_id][int(a)][0] for a in seg[3:]
                            ),
                        }
                    )
        columns = ["stimulus", "participant", "category", "start", "end", "aois"]
        df = pd.DataFrame.from_records(records, columns=columns)
        df.insert(5, "duration", df["end"] - df["start"])
        return df
