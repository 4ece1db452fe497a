"""Domain types of the ingestion core."""

from .dataset import AoiData, AttributeData, ParsedData, ParticipantsGroup
from .segments import DeserializerOutput, SegmentRecord
from .settings import EyeFileType, EyeSettings

__all__ = [
    "AoiData",
    "AttributeData",
    "ParsedData",
    "ParticipantsGroup",
    "DeserializerOutput",
    "SegmentRecord",
    "EyeFileType",
    "EyeSettings",
]
