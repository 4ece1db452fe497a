"""Error taxonomy for eye-tracking ingestion.

Every error derives from :class:`EyeParsingError`, itself a ``ValueError``,
so callers that only care about "bad input" can catch ``ValueError``.
"""
from __future__ import annotations

from typing import Optional

from .config.constants import ValidationMessages


class EyeParsingError(ValueError):
    """Base class for all ingestion errors."""


class ColumnNotFoundError(EyeParsingError):
    """A required header column is absent. Fatal for the file."""

    def __init__(self, column: str, deserializer: str):
        self.column = column
        self.deserializer = deserializer
        super().__init__(
            ValidationMessages.COLUMN_NOT_FOUND.format(
                deserializer=deserializer, column=column
            )
        )


class ClassificationError(EyeParsingError):
    """No known format signature matched the sample."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or ValidationMessages.UNKNOWN_FILE_TYPE)


class MixedFileTypesError(EyeParsingError):
    """A batch of files classified to more than one format."""

    def __init__(self, types: Optional[list] = None):
        self.types = list(types or [])
        super().__init__(ValidationMessages.MIXED_FILE_TYPES)


class MalformedRowError(EyeParsingError):
    """A row lacks a usable value. Recovered locally by the deserializer."""


class InvalidVisibilityIntervalError(EyeParsingError):
    """Visibility timestamps do not pair into closed intervals."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or ValidationMessages.ODD_KEYFRAMES)


class DeserializerStateError(EyeParsingError):
    """A deserializer was used after ``finalize()``."""


class PipelineStateError(EyeParsingError):
    """Input arrived that the current session state cannot accept."""


class MissingArchiveEntryError(EyeParsingError):
    """A Pupil Cloud ZIP lacks one of its expected CSV tables."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Missing {name} in ZIP")


class WorkspaceFormatError(EyeParsingError):
    """Persisted workspace JSON does not have the expected structure."""
