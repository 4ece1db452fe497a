"""Varjo XR export: run-length segmentation over the ``Actor Label`` column."""
from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import PurePath
from typing import Optional, Sequence

from ..config.constants import CategoryNames
from ..domain.segments import SegmentRecord
from ..errors import MalformedRowError
from ..utils.numbers import format_number
from .base import EyeDeserializer

VARJO_STIMULUS = "VarjoScene"


def parse_varjo_time(value: str) -> float:
    """Milliseconds since the epoch for ``"YYYY:MM:DD:hh:mm:ss:ms"``.

    The month field is zero based and every field may overflow into the
    next larger unit.
    """
    parts = value.strip().split(":")
    if len(parts) != 7:
        raise MalformedRowError(f"Unexpected Varjo time {value!r}")
    try:
        year, month, day, hour, minute, second, millis = (int(p) for p in parts)
    except ValueError:
        raise MalformedRowError(f"Unexpected Varjo time {value!r}") from None
    year += month // 12
    first_of_month = datetime(year, month % 12 + 1, 1)
    moment = first_of_month + timedelta(
        days=day - 1, hours=hour, minutes=minute, seconds=second, milliseconds=millis
    )
    return float((moment - datetime(1970, 1, 1)) // timedelta(milliseconds=1))


class VarjoDeserializer(EyeDeserializer):
    NAME = "varjo"

    def __init__(self, header: Sequence[str], file_name: str):
        super().__init__()
        self.c_time = self.get_index(header, "Time")
        self.c_actor_label = self.get_index(header, "Actor Label")
        self.participant = PurePath(file_name).name.split(".")[0]
        self._time_base: Optional[float] = None
        self._time_start: Optional[float] = None
        self._time_last: Optional[float] = None
        self._actor_label: Optional[str] = None

    def _deserialize(self, row: Sequence[str]) -> Optional[SegmentRecord]:
        time = parse_varjo_time(self.cell(row, self.c_time))
        label = self.cell(row, self.c_actor_label)
        if self._time_base is None:
            self._time_base = time

        output = None
        if label != self._actor_label:
            output = self._pending_segment()
            self._time_start = time
            self._actor_label = label
        self._time_last = time
        return output

    def _finalize(self) -> Optional[SegmentRecord]:
        return self._pending_segment()

    def _pending_segment(self) -> Optional[SegmentRecord]:
        if self._actor_label is None or self._time_base is None:
            return None
        return SegmentRecord(
            stimulus=VARJO_STIMULUS,
            participant=self.participant,
            category=CategoryNames.FIXATION,
            start=format_number(self._time_start - self._time_base),
            end=format_number(self._time_last - self._time_base),
            aoi=[self._actor_label] if self._actor_label else None,
        )
