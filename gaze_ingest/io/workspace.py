"""Persisted workspace JSON.

Two layouts are accepted on load:

* version 2: ``{"version": 2, "data": <DataType>, "gridItems": [...]}``
* legacy: a bare ``DataType`` object.

Saving always writes version 2.
"""
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..domain.dataset import ParsedData
from ..errors import WorkspaceFormatError

logger = logging.getLogger(__name__)

WORKSPACE_VERSION = 2


@dataclass
class Workspace:
    data: ParsedData
    grid_items: List[Dict[str, Any]] = field(default_factory=list)
    # False when the file used the legacy bare layout
    is_versioned: bool = True


def is_versioned_format(obj: Any) -> bool:
    return (
        isinstance(obj, dict)
        and obj.get("version") == WORKSPACE_VERSION
        and "data" in obj
        and "gridItems" in obj
    )


def is_legacy_format(obj: Any) -> bool:
    return isinstance(obj, dict) and "stimuli" in obj and "participants" in obj


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_basic_structure(raw: Dict[str, Any]) -> None:
    for key in ("stimuli", "participants"):
        section = raw.get(key)
        if not isinstance(section, dict) or not isinstance(section.get("data"), list):
            raise WorkspaceFormatError(
                f"Invalid data structure: missing or invalid {key} data"
            )


def normalize_data_structure(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Fill optional sections and pad the segment grid to full size."""
    raw.setdefault("categories", {"data": [], "orderVector": []})
    raw.setdefault("aois", {"data": [], "orderVector": [], "dynamicVisibility": {}})
    segments = raw.get("segments") or []
    n_stimuli = len(raw["stimuli"]["data"])
    n_participants = len(raw["participants"]["data"])
    while len(segments) < n_stimuli:
        segments.append([])
    for s_id in range(n_stimuli):
        cells = segments[s_id] or []
        while len(cells) < n_participants:
            cells.append([])
        segments[s_id] = cells
    raw["segments"] = segments
    aoi_data = raw["aois"].setdefault("data", [])
    while len(aoi_data) < n_stimuli:
        aoi_data.append([])
    return raw


def validate_segments(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Drop malformed segments and sort the rest by start."""
    dropped = 0
    for cells in raw["segments"]:
        for p_id, segments in enumerate(cells):
            if not segments:
                cells[p_id] = []
                continue
            valid = [
                seg
                for seg in segments
                if isinstance(seg, list) and len(seg) >= 3 and all(_is_number(v) for v in seg[:3])
            ]
            dropped += len(segments) - len(valid)
            valid.sort(key=lambda seg: seg[0])
            cells[p_id] = valid
    if dropped:
        logger.warning("Dropped %s malformed segments from workspace", dropped)
    return raw


def load_workspace(source: Union[str, bytes, Dict[str, Any]]) -> Workspace:
    """Parse JSON text (or an already decoded object) into a :class:`Workspace`."""
    if isinstance(source, (str, bytes)):
        try:
            obj = json.loads(source)
        except json.JSONDecodeError as exc:
            raise WorkspaceFormatError(f"Invalid JSON: {exc}") from exc
    else:
        obj = copy.deepcopy(source)

    if is_versioned_format(obj):
        raw, grid_items, versioned = obj["data"], list(obj.get("gridItems") or []), True
    elif is_legacy_format(obj):
        raw, grid_items, versioned = obj, [], False
    else:
        raise WorkspaceFormatError(
            "Invalid JSON format: file must be either old or new format"
        )
    if not isinstance(raw, dict):
        raise WorkspaceFormatError("Invalid data structure: data is not an object")

    validate_basic_structure(raw)
    raw = validate_segments(normalize_data_structure(raw))
    return Workspace(data=ParsedData.from_dict(raw), grid_items=grid_items, is_versioned=versioned)


def dump_workspace(data: ParsedData, grid_items: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    return {
        "version": WORKSPACE_VERSION,
        "data": data.to_dict(),
        "gridItems": list(grid_items or []),
    }


def save_workspace(path: Union[str, Path], data: ParsedData, grid_items: Optional[List[Dict[str, Any]]] = None) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dump_workspace(data, grid_items), f, indent=2, ensure_ascii=False)
    logger.info("Workspace saved to %s", path)
    return path


def read_workspace(path: Union[str, Path]) -> Workspace:
    with open(path, "r", encoding="utf-8") as f:
        return load_workspace(f.read())
