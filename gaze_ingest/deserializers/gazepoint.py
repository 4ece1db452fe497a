"""GazePoint Analysis export (fixation + blink state machine).

Fixation lifecycle:
  * starts on a row with ``FPOGD > 0`` unless it repeats the fixation that
    was just flushed (same ``FPOGID`` and no longer duration);
  * is flushed when the duration stops increasing, the fixation id changes
    or the media changes.

Blink lifecycle:
  * a row with ``BKID > 0`` opens a blink (flushing any open fixation);
  * the next ``BKID == 0`` row terminates it, the row after that emits it.

Blink timing uses row timestamps and ``BKDUR`` only, not per-sample
interpolation.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional, Sequence

from ..config.constants import CategoryNames
from ..domain.segments import SegmentRecord
from ..utils.numbers import format_number, require_float, to_float
from .base import EyeDeserializer

logger = logging.getLogger(__name__)

TIME_COLUMN_PATTERN = re.compile(r"^TIME")


@dataclass
class _Fixation:
    fix_id: str = ""
    stimulus: str = ""
    aoi: Optional[str] = None
    start: float = 0.0
    end: float = 0.0
    last_duration: float = 0.0


@dataclass
class _Blink:
    start: float
    end: float


class GazePointDeserializer(EyeDeserializer):
    NAME = "gazepoint"

    IDLE = "idle"
    FIXATION = "fixation"

    def __init__(self, header: Sequence[str], file_name: str):
        super().__init__()
        header = list(header)
        time_idx = next(
            (i for i, h in enumerate(header) if TIME_COLUMN_PATTERN.match(h)), -1
        )
        self.c_time = time_idx if time_idx >= 0 else self.get_index(header, "TIME")
        self.c_start = self.get_index(header, "FPOGS")
        self.c_fix_duration = self.get_index(header, "FPOGD")
        self.c_id = self.get_index(header, "FPOGID")
        self.c_stimulus = self.get_index(header, "MEDIA_NAME")
        # optional columns
        self.c_blink_id = header.index("BKID") if "BKID" in header else -1
        self.c_blink_duration = header.index("BKDUR") if "BKDUR" in header else -1
        self.c_aoi = header.index("AOI") if "AOI" in header else -1

        self.participant = PurePath(file_name).stem.split("_")[0]
        self._state = self.IDLE
        self._current = _Fixation()
        self._blink: Optional[_Blink] = None
        self._blink_terminated = False
        self._prev_fix_id: Optional[str] = None
        self._prev_fix_duration = 0.0

    def _deserialize(self, row: Sequence[str]) -> Optional[SegmentRecord]:
        time = require_float(self.cell(row, self.c_time), "TIME")
        start_raw = to_float(self.cell(row, self.c_start))
        duration = to_float(self.cell(row, self.c_fix_duration)) or 0.0
        blink_id = to_float(self.cell(row, self.c_blink_id)) or 0.0
        blink_duration = to_float(self.cell(row, self.c_blink_duration)) or 0.0
        aoi = self.cell(row, self.c_aoi) or None
        fix_id = self.cell(row, self.c_id)
        stimulus = self.cell(row, self.c_stimulus)

        if blink_id > 0:
            self._blink = _Blink(start=time - blink_duration, end=time)
            self._blink_terminated = False
            if self._state == self.FIXATION:
                self._state = self.IDLE
                return self._fixation_record()
            return None

        if self._blink is not None:
            if not self._blink_terminated:
                self._blink.end = time
                self._blink_terminated = True
                return None
            return self._take_blink()

        is_fixation = duration > 0 and start_raw is not None

        if self._state == self.IDLE:
            if is_fixation and self._is_new_fixation(fix_id, duration):
                self._open_fixation(fix_id, stimulus, aoi, start_raw, time, duration)
            return None

        current = self._current
        must_flush = (
            not is_fixation
            or fix_id != current.fix_id
            or stimulus != current.stimulus
            or duration <= current.last_duration
        )
        if must_flush:
            out = self._fixation_record()
            self._state = self.IDLE
            self._prev_fix_id = current.fix_id
            self._prev_fix_duration = current.last_duration
            if is_fixation and self._is_new_fixation(fix_id, duration):
                self._open_fixation(fix_id, stimulus, aoi, start_raw, time, duration)
            return out

        current.end = time
        current.last_duration = duration
        if aoi:
            current.aoi = aoi
        return None

    def _finalize(self) -> Optional[SegmentRecord]:
        if self._blink is not None and self._blink_terminated:
            return self._take_blink()
        if self._state == self.FIXATION:
            self._state = self.IDLE
            return self._fixation_record()
        return None

    def _is_new_fixation(self, fix_id: str, duration: float) -> bool:
        return fix_id != self._prev_fix_id or duration > self._prev_fix_duration

    def _open_fixation(self, fix_id, stimulus, aoi, start, time, duration) -> None:
        self._current = _Fixation(
            fix_id=fix_id,
            stimulus=stimulus,
            aoi=aoi,
            start=start,
            end=time,
            last_duration=duration,
        )
        self._state = self.FIXATION

    def _fixation_record(self) -> SegmentRecord:
        current = self._current
        return SegmentRecord(
            stimulus=current.stimulus,
            participant=self.participant,
            category=CategoryNames.FIXATION,
            start=format_number(current.start),
            end=format_number(current.end),
            aoi=[current.aoi] if current.aoi else None,
        )

    def _take_blink(self) -> SegmentRecord:
        blink = self._blink
        self._blink = None
        self._blink_terminated = False
        logger.debug("%s: blink %.5f-%.5f", self.participant, blink.start, blink.end)
        return SegmentRecord(
            stimulus=self._current.stimulus,
            participant=self.participant,
            category=CategoryNames.BLINK,
            start=format_number(blink.start),
            end=format_number(blink.end),
            aoi=None,
        )
