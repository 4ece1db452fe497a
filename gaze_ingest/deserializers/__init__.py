"""Per-format row deserializers."""

from .base import EyeDeserializer
from .begaze import BeGazeDeserializer
from .csv_continuous import CsvDeserializer
from .csv_duration import CsvSegmentedDurationDeserializer
from .csv_segmented import CsvSegmentedDeserializer
from .gazepoint import GazePointDeserializer
from .ogama import OgamaDeserializer
from .registry import create_deserializer
from .tobii import TobiiDeserializer
from .varjo import VarjoDeserializer

__all__ = [
    "EyeDeserializer",
    "BeGazeDeserializer",
    "CsvDeserializer",
    "CsvSegmentedDurationDeserializer",
    "CsvSegmentedDeserializer",
    "GazePointDeserializer",
    "OgamaDeserializer",
    "TobiiDeserializer",
    "VarjoDeserializer",
    "create_deserializer",
]
