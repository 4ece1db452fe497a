"""Base class for all per-format deserializers."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from ..domain.segments import DeserializerOutput
from ..errors import ColumnNotFoundError, DeserializerStateError, MalformedRowError

logger = logging.getLogger(__name__)


class EyeDeserializer(ABC):
    """Turns delimiter-split rows of one file into segment records.

    Subclasses implement :meth:`_deserialize` and, when they accumulate rows,
    :meth:`_finalize`. The public wrappers enforce the lifecycle: rows that
    raise :class:`MalformedRowError` are dropped, ``finalize()`` is terminal
    and calling it again returns ``None``.
    """

    NAME = "abstract"

    def __init__(self) -> None:
        self._finalized = False
        self.skipped_rows = 0

    def deserialize(self, row: Sequence[str]) -> DeserializerOutput:
        if self._finalized:
            raise DeserializerStateError(
                f"{self.NAME} deserializer was already finalized"
            )
        try:
            return self._deserialize(row)
        except MalformedRowError as exc:
            self.skipped_rows += 1
            logger.debug("%s: skipping malformed row: %s", self.NAME, exc)
            return None

    def finalize(self) -> DeserializerOutput:
        if self._finalized:
            return None
        self._finalized = True
        return self._finalize()

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    @abstractmethod
    def _deserialize(self, row: Sequence[str]) -> DeserializerOutput:
        raise NotImplementedError

    def _finalize(self) -> DeserializerOutput:
        return None

    def get_index(self, header: Sequence[str], column: str) -> int:
        try:
            return list(header).index(column)
        except ValueError:
            raise ColumnNotFoundError(column, self.NAME) from None

    @staticmethod
    def cell(row: Sequence[str], idx: int) -> str:
        """Value at ``idx``, empty for missing columns or ``idx == -1``."""
        if idx < 0 or idx >= len(row):
            return ""
        return row[idx]


def as_list(output: DeserializerOutput) -> List:
    if output is None:
        return []
    if isinstance(output, list):
        return output
    return [output]
