"""File format sniffing from a short leading slice of a file.

The checks run as a priority chain, most specific signature first, because
several formats share superficial traits (e.g. all CSV variants are comma
separated and reuse ``Participant``/``Stimulus`` columns).
"""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple

from ..domain.settings import EyeFileType, EyeSettings
from ..errors import ClassificationError, MixedFileTypesError

logger = logging.getLogger(__name__)

OGAMA_MARKER = "# Contents: Similarity Measurements of scanpaths."
COMMENT_PREFIX = "#"
DEFAULT_ROW_DELIMITER = "\r\n"

_ANY_DELIMITER = re.compile(r"[\t,;]")


class EyeClassifier:
    """Determines file type and reading settings for a sample.

    Example:
        >>> settings = EyeClassifier().classify(first_chunk)
        >>> settings.type, settings.column_delimiter
        ('begaze', '\\t')
    """

    def __init__(self) -> None:
        self._chain: List[Tuple[str, Callable[[str], bool]]] = [
            (EyeFileType.BEGAZE, self.is_begaze),
            (EyeFileType.TOBII, self.is_tobii),
            (EyeFileType.GAZEPOINT, self.is_gazepoint),
            (EyeFileType.OGAMA, self.is_ogama),
            (EyeFileType.VARJO, self.is_varjo),
            (EyeFileType.CSV_SEGMENTED_DURATION, self.is_csv_segmented_duration),
            (EyeFileType.CSV_SEGMENTED, self.is_csv_segmented),
            (EyeFileType.CSV, self.is_csv),
        ]

    def classify(self, sample: str) -> EyeSettings:
        file_type = self.get_type_from_slice(sample)
        if file_type is None:
            checked = ", ".join(name for name, _ in self._chain)
            raise ClassificationError(
                f"Unknown file type: no known format matched (checked {checked})"
            )
        settings = EyeSettings(
            type=file_type,
            row_delimiter=self.get_row_delimiter(sample),
            column_delimiter=self.get_column_delimiter(file_type, sample),
            user_input_setting="",
            header_row_id=self.get_header_row_id(file_type, sample),
        )
        logger.debug("Classified sample as %s", settings)
        return settings

    def classify_many(self, samples: Sequence[str]) -> List[EyeSettings]:
        """Classify a batch that must share one format."""
        settings = [self.classify(sample) for sample in samples]
        types = sorted({s.type for s in settings})
        if len(types) > 1:
            raise MixedFileTypesError(types)
        return settings

    def get_type_from_slice(self, sample: str) -> Optional[str]:
        for file_type, predicate in self._chain:
            if predicate(sample):
                if file_type == EyeFileType.TOBII and self.has_event_column(sample):
                    return EyeFileType.TOBII_WITH_EVENT
                return file_type
        return None

    # ------------------------------------------------------------------ #
    # signatures
    # ------------------------------------------------------------------ #
    def is_begaze(self, sample: str) -> bool:
        header = _header_line(sample)
        return "Event Start Trial Time [ms]" in header and "Event End Trial Time [ms]" in header

    def is_tobii(self, sample: str) -> bool:
        return "Recording timestamp" in _header_line(sample)

    def has_event_column(self, sample: str) -> bool:
        return "Event" in _header_line(sample).split("\t")

    def is_gazepoint(self, sample: str) -> bool:
        columns = _header_columns(sample)
        if any(c.startswith("TIME(") for c in columns):
            return True
        return "FPOGS" in columns and "FPOGD" in columns

    def is_ogama(self, sample: str) -> bool:
        if OGAMA_MARKER in sample:
            return True
        lines = _lines(sample)
        if not lines or not lines[0].startswith(COMMENT_PREFIX):
            return False
        return "Scanpath string" in _header_line(sample)

    def is_varjo(self, sample: str) -> bool:
        columns = _header_columns(sample)
        return "Time" in columns and "Actor Label" in columns

    def is_csv_segmented_duration(self, sample: str) -> bool:
        columns = _header_columns(sample)
        return "timestamp" in columns and "duration" in columns

    def is_csv_segmented(self, sample: str) -> bool:
        columns = _header_columns(sample)
        return "From" in columns and "To" in columns

    def is_csv(self, sample: str) -> bool:
        columns = _header_columns(sample)
        return all(c in columns for c in ("Time", "Participant", "Stimulus", "AOI"))

    # ------------------------------------------------------------------ #
    # reading settings
    # ------------------------------------------------------------------ #
    def get_row_delimiter(self, sample: str) -> str:
        match = re.search(r"\r\n|\n|\r", sample)
        return match.group(0) if match else DEFAULT_ROW_DELIMITER

    def get_column_delimiter(self, file_type: str, sample: str) -> str:
        if file_type in (
            EyeFileType.TOBII,
            EyeFileType.TOBII_WITH_EVENT,
            EyeFileType.BEGAZE,
            EyeFileType.OGAMA,
        ):
            return "\t"
        if file_type == EyeFileType.GAZEPOINT:
            return ","
        if file_type == EyeFileType.VARJO:
            return ";"
        if file_type in (
            EyeFileType.CSV,
            EyeFileType.CSV_SEGMENTED,
            EyeFileType.CSV_SEGMENTED_DURATION,
        ):
            return self.determine_csv_delimiter(sample)
        raise ClassificationError(f"Unknown file type {file_type!r}")

    def determine_csv_delimiter(self, sample: str) -> str:
        """``,`` when the header has more commas than semicolons, else ``;``."""
        header = _header_line(sample)
        return "," if header.count(",") > header.count(";") else ";"

    def get_header_row_id(self, file_type: str, sample: str) -> int:
        if file_type != EyeFileType.OGAMA:
            return 0
        for idx, line in enumerate(_lines(sample)):
            if line.strip() and not line.startswith(COMMENT_PREFIX):
                return idx
        return 0


def _lines(sample: str) -> List[str]:
    return sample.lstrip("\ufeff").splitlines()


def _header_line(sample: str) -> str:
    """First line that is neither empty nor a ``#`` comment."""
    for line in _lines(sample):
        if line.strip() and not line.startswith(COMMENT_PREFIX):
            return line
    return ""


def _header_columns(sample: str) -> List[str]:
    return [c.strip().strip('"') for c in _ANY_DELIMITER.split(_header_line(sample))]
