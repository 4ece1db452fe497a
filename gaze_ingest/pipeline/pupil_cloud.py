"""Pupil Cloud ZIP exports.

A Pupil Cloud "enrichment" download is a ZIP holding whole CSV tables rather
than a row stream:

    sections.csv        recording id -> recording name (the participant)
    aoi_fixations.csv   (recording id, fixation id) -> AOI names
    fixations.csv       fixation start/end timestamps in nanoseconds

Each ZIP is one stimulus. Several ZIPs share one writer, so participants and
categories accumulate across archives; only the last ZIP returns data.
"""
from __future__ import annotations

import io
import logging
import re
import zipfile
from pathlib import PurePosixPath
from typing import Dict, List, Optional, Sequence, Set

import numpy as np
import pandas as pd

from ..config import CategoryNames, PipelineConfig
from ..domain.segments import SegmentRecord
from ..domain.settings import EyeFileType, EyeSettings
from ..errors import MissingArchiveEntryError, PipelineStateError
from ..io.observers import FileStats
from ..utils.numbers import format_number
from .pipeline import ObservablePipeline, PipelineResult, PipelineState
from .refiner import EyeRefiner
from .writer import EyeWriter

logger = logging.getLogger(__name__)

SECTIONS_ENTRY = "sections.csv"
AOI_FIXATIONS_ENTRY = "aoi_fixations.csv"
FIXATIONS_ENTRY = "fixations.csv"

RECORDING_TIMESTAMP_SUFFIX = re.compile(r"_\d{4}-\d{2}-\d{2}_\d{2}:\d{2}:\d{2}$")
ZIP_SUFFIX = re.compile(r"\.zip$", re.IGNORECASE)

NS_PER_MS = 1e6

PUPIL_CLOUD_SETTINGS = EyeSettings(
    type=EyeFileType.PUPIL_CLOUD_ZIP,
    row_delimiter="\n",
    column_delimiter=",",
    user_input_setting="",
    header_row_id=0,
)

FixationToAoi = Dict[str, Set[str]]


def find_zip_entry(archive: zipfile.ZipFile, name_part: str) -> zipfile.ZipInfo:
    """Locate an entry by case-insensitive name.

    An entry whose base name equals ``name_part`` wins over a substring match,
    so ``fixations.csv`` never resolves to ``aoi_fixations.csv``.
    """
    needle = name_part.lower()
    candidates = [info for info in archive.infolist() if needle in info.filename.lower()]
    for info in candidates:
        if PurePosixPath(info.filename).name.lower() == needle:
            return info
    if not candidates:
        raise MissingArchiveEntryError(name_part)
    return candidates[0]


def read_zip_table(archive: zipfile.ZipFile, name_part: str) -> pd.DataFrame:
    """Read one CSV entry as an all-string DataFrame (missing cells are ``""``)."""
    info = find_zip_entry(archive, name_part)
    if info.is_dir():
        raise MissingArchiveEntryError(name_part)
    with archive.open(info) as handle:
        frame = pd.read_csv(handle, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    return frame.fillna("")


def _column(frame: pd.DataFrame, position: int) -> pd.Series:
    if position < frame.shape[1]:
        return frame.iloc[:, position].astype(str).str.strip()
    return pd.Series([""] * len(frame), index=frame.index, dtype=str)


def build_fixation_to_aoi_map(aoi_fixations: pd.DataFrame) -> FixationToAoi:
    """
    Map ``"{recording id}:{fixation id}"`` to the AOI names hit by the fixation.

    Columns: [1] AOI name, [3] recording id, [4] fixation id. Fixation ids are
    only unique within one recording, hence the composite key.
    """
    mapping: FixationToAoi = {}
    names = _column(aoi_fixations, 1)
    recordings = _column(aoi_fixations, 3)
    fixations = _column(aoi_fixations, 4)
    for aoi_name, recording_id, fixation_id in zip(names, recordings, fixations):
        if not recording_id or not fixation_id:
            continue
        hits = mapping.setdefault(f"{recording_id}:{fixation_id}", set())
        if aoi_name:
            hits.add(aoi_name)
    return mapping


def strip_timestamp_from_recording_name(recording_name: str) -> str:
    """``"T4a_AZ_ZP_2025-04-17_11:16:45"`` -> ``"T4a_AZ_ZP"``."""
    return RECORDING_TIMESTAMP_SUFFIX.sub("", recording_name)


def build_recording_to_participant_map(sections: pd.DataFrame) -> Dict[str, str]:
    """
    Map recording id to participant name (columns [1] and [2]).

    Timestamp suffixes are stripped only when the stripped names stay unique.
    """
    raw: Dict[str, str] = {}
    for recording_id, recording_name in zip(_column(sections, 1), _column(sections, 2)):
        if recording_id and recording_name:
            raw[recording_id] = recording_name

    stripped = {rid: strip_timestamp_from_recording_name(name) for rid, name in raw.items()}
    use_stripped = len(set(stripped.values())) == len(stripped)
    logger.debug(
        "Recording names: %s total, %s unique after stripping, using %s names",
        len(raw),
        len(set(stripped.values())),
        "stripped" if use_stripped else "original",
    )
    return stripped if use_stripped else raw


def derive_stimulus_from_zip_name(zip_name: str) -> str:
    return ZIP_SUFFIX.sub("", zip_name)


def build_fixation_records(
    fixations: pd.DataFrame,
    stimulus: str,
    fixation_to_aoi: FixationToAoi,
    recording_to_participant: Dict[str, str],
) -> List[SegmentRecord]:
    """
    Turn ``fixations.csv`` rows into Fixation records.

    Columns: [1] recording id, [2] fixation id, [3] start [ns], [4] end [ns].
    The first fixation start of each participant within the ZIP is time 0.
    Unknown recordings fall back to the recording id as participant.
    """
    frame = pd.DataFrame(
        {
            "recording": _column(fixations, 1),
            "fixation": _column(fixations, 2),
            "start": _column(fixations, 3),
            "end": _column(fixations, 4),
        }
    )
    start = pd.to_numeric(frame["start"], errors="coerce").astype(float)
    end = pd.to_numeric(frame["end"], errors="coerce").astype(float)
    valid = (frame["recording"] != "") & (frame["fixation"] != "") & np.isfinite(start) & np.isfinite(end)
    frame = frame[valid].copy()
    if frame.empty:
        return []

    # integer nanoseconds stay int64 so the subtraction is exact
    frame["start_ns"] = pd.to_numeric(frame["start"])
    frame["end_ns"] = pd.to_numeric(frame["end"])
    frame["participant"] = frame["recording"].map(recording_to_participant).fillna(frame["recording"])
    base = frame.groupby("participant", sort=False)["start_ns"].transform("first")
    frame["start_ms"] = (frame["start_ns"] - base) / NS_PER_MS
    frame["end_ms"] = (frame["end_ns"] - base) / NS_PER_MS

    records: List[SegmentRecord] = []
    for row in frame.itertuples(index=False):
        hits = fixation_to_aoi.get(f"{row.recording}:{row.fixation}")
        records.append(
            SegmentRecord(
                stimulus=stimulus,
                participant=row.participant,
                category=CategoryNames.FIXATION,
                start=format_number(float(row.start_ms)),
                end=format_number(float(row.end_ms)),
                aoi=sorted(hits) if hits else None,
            )
        )
    return records


class PupilCloudPipeline(ObservablePipeline):
    """
    Accumulates several Pupil Cloud ZIPs into one dataset.

    ZIPs are processed strictly one after another; the call that consumes
    the last declared ZIP refines and returns the dataset.
    """

    def __init__(self, zip_names: Sequence[str], config: Optional[PipelineConfig] = None):
        if isinstance(zip_names, str) or not zip_names:
            raise ValueError("zip_names must be a non-empty sequence of names")
        super().__init__()
        self.config = config or PipelineConfig()
        self.config.validate()
        self.zip_names: List[str] = list(zip_names)
        self.writer: Optional[EyeWriter] = EyeWriter()
        self.state = PipelineState.ACCUMULATING
        self.zip_count = 0
        self._started = False

    @property
    def is_all_processed(self) -> bool:
        return self.zip_count == len(self.zip_names)

    def add_new_zip(self, zip_bytes, zip_name: str) -> Optional[PipelineResult]:
        """
        Add one archive.

        Args:
            zip_bytes: raw ZIP bytes, a path or a binary file object
            zip_name: original file name, the stimulus name source

        Returns:
            The refined result after the last declared ZIP, else None.
        """
        if self.state in (PipelineState.COMPLETE, PipelineState.FAILED):
            raise PipelineStateError(f"Session is {self.state.value} and rejects further input")
        if not self._started:
            self._started = True
            self._notify("on_session_start", list(self.zip_names))
        try:
            if self.is_all_processed:
                raise PipelineStateError("All declared ZIP files were already processed")
            return self._consume(zip_bytes, zip_name)
        except Exception as exc:
            self.state = PipelineState.FAILED
            self.writer = None
            logger.info("Pupil Cloud session failed: %s", exc)
            self._notify("on_session_error", exc)
            raise

    def _consume(self, zip_bytes, zip_name: str) -> Optional[PipelineResult]:
        logger.info("Processing ZIP %s/%s: %s", self.zip_count + 1, len(self.zip_names), zip_name)
        if isinstance(zip_bytes, (bytes, bytearray, memoryview)):
            zip_bytes = io.BytesIO(bytes(zip_bytes))

        # Step 1: load the three tables
        with zipfile.ZipFile(zip_bytes) as archive:
            sections = read_zip_table(archive, SECTIONS_ENTRY)
            aoi_fixations = read_zip_table(archive, AOI_FIXATIONS_ENTRY)
            fixations = read_zip_table(archive, FIXATIONS_ENTRY)
        self._notify("on_file_classified", zip_name, PUPIL_CLOUD_SETTINGS)

        # Step 2: join them into fixation records
        records = build_fixation_records(
            fixations,
            derive_stimulus_from_zip_name(zip_name),
            build_fixation_to_aoi_map(aoi_fixations),
            build_recording_to_participant_map(sections),
        )
        stats = FileStats(
            file_name=zip_name,
            file_type=PUPIL_CLOUD_SETTINGS.type,
            rows=len(fixations),
            segments=self.writer.add_many(records),
        )
        stats.skipped_rows = stats.rows - len(records)
        self.zip_count += 1
        self._notify("on_file_complete", stats)

        # Step 3: refine after the last ZIP
        if not self.is_all_processed:
            return None
        logger.info("All %s ZIP files processed", len(self.zip_names))
        result = PipelineResult(data=EyeRefiner(self.config).process(self.writer.data), settings=PUPIL_CLOUD_SETTINGS)
        self.state = PipelineState.COMPLETE
        self.writer = None
        self._notify("on_session_complete", result.data, result.settings)
        return result
