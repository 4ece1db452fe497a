"""Dynamic AOI visibility files.

Two sources are understood:

- SMI XML: ``DynamicAOI`` nodes with a ``Name`` and ``KeyFrame`` children
  carrying ``Visible`` (``true``/``false``) and ``Timestamp`` in microseconds.
- Tobii JSON: ``{"Aois": {id: {"Name": ..., "KeyFrames": {id: {"IsActive":
  bool, "Seconds": float}}}}}``.

Both are reduced to flat ``[show, hide, show, hide, ...]`` arrays in
milliseconds, one per AOI, which :func:`apply_visibility` stores in
``ParsedData.aois.dynamic_visibility``.
"""
from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .domain.dataset import ParsedData
from .errors import EyeParsingError, InvalidVisibilityIntervalError
from .utils.numbers import to_float

logger = logging.getLogger(__name__)


@dataclass
class AoiVisibility:
    """Visibility arrays of one file, aligned by index with ``aoi_names``."""

    stimulus_id: int
    aoi_names: List[str] = field(default_factory=list)
    visibility_arrays: List[List[float]] = field(default_factory=list)
    # None applies the arrays to every participant
    participant_id: Optional[int] = None


# ---------------------------------------------------------------------- #
# Tobii JSON
# ---------------------------------------------------------------------- #
def _first_value(obj: Any) -> Any:
    if isinstance(obj, dict):
        return next(iter(obj.values()))
    return obj[0]


def is_tobii_json(obj: Any) -> bool:
    """Shallow shape check on the first AOI and its first keyframe."""
    if not isinstance(obj, dict):
        return False
    aois = obj.get("Aois")
    if not isinstance(aois, (dict, list)) or len(aois) == 0:
        return False
    first_aoi = _first_value(aois)
    if not isinstance(first_aoi, dict):
        return False
    keyframes = first_aoi.get("KeyFrames")
    if not isinstance(keyframes, (dict, list)) or len(keyframes) == 0:
        return False
    first_frame = _first_value(keyframes)
    return isinstance(first_frame, dict) and "IsActive" in first_frame and "Seconds" in first_frame


def _ordered(items: Union[Dict[Any, Any], List[Any]]) -> Iterable[Any]:
    """Values in key order; integer-like keys sort numerically."""
    if isinstance(items, list):
        return items

    def key(k: Any) -> Tuple[int, Any]:
        try:
            return 0, int(k)
        except (TypeError, ValueError):
            return 1, str(k)

    return [items[k] for k in sorted(items, key=key)]


def process_tobii_keyframes(keyframes: Union[Dict[Any, Dict[str, Any]], List[Dict[str, Any]]]) -> List[float]:
    """
    Record a timestamp (ms) on every visibility transition.

    Raises:
        InvalidVisibilityIntervalError: when the last interval is never closed
    """
    visibility: List[float] = []
    visible = False
    for frame in _ordered(keyframes):
        is_active = bool(frame.get("IsActive"))
        seconds = float(frame.get("Seconds", 0))
        if is_active != visible:
            visibility.append(seconds * 1000)
            visible = is_active
    if len(visibility) % 2:
        raise InvalidVisibilityIntervalError()
    return visibility


def process_tobii(stimulus_id: int, participant_id: Optional[int], obj: Dict[str, Any]) -> AoiVisibility:
    result = AoiVisibility(stimulus_id=stimulus_id, participant_id=participant_id)
    for aoi in _ordered(obj["Aois"]):
        result.aoi_names.append(str(aoi.get("Name", "")))
        result.visibility_arrays.append(process_tobii_keyframes(aoi.get("KeyFrames") or {}))
    return result


# ---------------------------------------------------------------------- #
# SMI XML
# ---------------------------------------------------------------------- #
def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(node: ET.Element, name: str) -> Optional[str]:
    for child in node.iter():
        if child is not node and _local(child.tag) == name:
            return (child.text or "").strip()
    return None


def _find_all(node: ET.Element, name: str) -> List[ET.Element]:
    return [el for el in node.iter() if _local(el.tag) == name]


def process_smi_keyframes(keyframes: List[ET.Element], stimulus_end: float) -> List[float]:
    """
    Timestamps (µs -> ms) of visibility transitions.

    A keyframe left visible at the end is closed at ``stimulus_end``.
    """
    visibility: List[float] = []
    visible = False
    last = len(keyframes) - 1
    for i, frame in enumerate(keyframes):
        flag = _child_text(frame, "Visible")
        if flag is None:
            continue
        if (flag == "true") != visible:
            timestamp = to_float(_child_text(frame, "Timestamp") or "")
            if timestamp is None:
                continue
            visibility.append(timestamp / 1000)
            visible = flag == "true"
        if flag == "true" and i == last:
            visibility.append(stimulus_end)
            visible = False
    return visibility


def process_smi(
    stimulus_id: int,
    participant_id: Optional[int],
    xml_text: str,
    stimulus_end: float = 0.0,
) -> AoiVisibility:
    root = ET.fromstring(xml_text)
    result = AoiVisibility(stimulus_id=stimulus_id, participant_id=participant_id)
    for aoi in _find_all(root, "DynamicAOI"):
        name = _child_text(aoi, "Name")
        if name is None:
            continue
        result.aoi_names.append(name)
        result.visibility_arrays.append(process_smi_keyframes(_find_all(aoi, "KeyFrame"), stimulus_end))
    return result


# ---------------------------------------------------------------------- #
# entry points
# ---------------------------------------------------------------------- #
def stimulus_end_time(data: ParsedData, stimulus_id: int) -> float:
    """Highest last-segment end over all participants of a stimulus."""
    if stimulus_id >= len(data.segments):
        return 0.0
    ends = [cell[-1][1] for cell in data.segments[stimulus_id] if cell]
    return max(ends, default=0.0)


def _is_smi_xml(text: str) -> Optional[ET.Element]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return None
    return root if _find_all(root, "DynamicAOI") else None


def parse_visibility_file(
    text: Union[str, bytes],
    stimulus_id: int,
    participant_id: Optional[int] = None,
    stimulus_end: float = 0.0,
) -> AoiVisibility:
    """Detect SMI XML or Tobii JSON and parse it."""
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    text = text.lstrip("\ufeff")
    if _is_smi_xml(text) is not None:
        logger.info("Parsing SMI AOI visibility for stimulus %s", stimulus_id)
        return process_smi(stimulus_id, participant_id, text, stimulus_end)

    obj = json.loads(text)
    if not is_tobii_json(obj):
        raise EyeParsingError("Assumed Tobii JSON format, but it is not valid")
    logger.info("Parsing Tobii AOI visibility for stimulus %s", stimulus_id)
    return process_tobii(stimulus_id, participant_id, obj)


def apply_visibility(data: ParsedData, result: AoiVisibility) -> ParsedData:
    """
    Store visibility arrays in ``data.aois.dynamic_visibility`` (in place).

    AOI names unknown to the stimulus are appended to its dictionary.
    """
    if result.stimulus_id < 0 or result.stimulus_id >= len(data.stimuli.data):
        raise EyeParsingError(f"Unknown stimulus id {result.stimulus_id}")
    while len(data.aois.data) <= result.stimulus_id:
        data.aois.data.append([])
        data.aois.order_vector.append([])
    aois = data.aois.data[result.stimulus_id]

    for name, visibility in zip(result.aoi_names, result.visibility_arrays):
        aoi_id = next((i for i, row in enumerate(aois) if row[0] == name), None)
        if aoi_id is None:
            aoi_id = len(aois)
            aois.append([name])
            order = data.aois.order_vector[result.stimulus_id]
            if order:
                order.append(aoi_id)
            logger.debug("Added AOI %r to stimulus %s", name, result.stimulus_id)
        key = f"{result.stimulus_id}_{aoi_id}"
        if result.participant_id is not None:
            key += f"_{result.participant_id}"
        data.aois.dynamic_visibility[key] = list(visibility)
    return data
