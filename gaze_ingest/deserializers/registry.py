"""Deserializer selection by classified file type."""
from __future__ import annotations

from typing import Sequence

from ..domain.settings import EyeFileType, EyeSettings
from ..errors import ClassificationError
from .base import EyeDeserializer
from .begaze import BeGazeDeserializer
from .csv_continuous import CsvDeserializer
from .csv_duration import CsvSegmentedDurationDeserializer
from .csv_segmented import CsvSegmentedDeserializer
from .gazepoint import GazePointDeserializer
from .ogama import OgamaDeserializer
from .tobii import TobiiDeserializer
from .varjo import VarjoDeserializer


def create_deserializer(
    header: Sequence[str],
    file_name: str,
    settings: EyeSettings,
    user_input: str = "",
) -> EyeDeserializer:
    """Build the deserializer for ``settings.type`` from the header row."""
    file_type = settings.type
    if file_type == EyeFileType.BEGAZE:
        return BeGazeDeserializer(header)
    if file_type in (EyeFileType.TOBII, EyeFileType.TOBII_WITH_EVENT):
        return TobiiDeserializer(header, user_input)
    if file_type == EyeFileType.GAZEPOINT:
        return GazePointDeserializer(header, file_name)
    if file_type == EyeFileType.OGAMA:
        return OgamaDeserializer(header, file_name)
    if file_type == EyeFileType.VARJO:
        return VarjoDeserializer(header, file_name)
    if file_type == EyeFileType.CSV:
        return CsvDeserializer(header)
    if file_type == EyeFileType.CSV_SEGMENTED:
        return CsvSegmentedDeserializer(header)
    if file_type == EyeFileType.CSV_SEGMENTED_DURATION:
        return CsvSegmentedDurationDeserializer(header)
    raise ClassificationError(f"No row deserializer for file type {file_type!r}")
