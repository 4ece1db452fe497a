"""Numeric parsing and formatting for segment times."""
from __future__ import annotations

import math
from decimal import Decimal
from typing import Optional

from ..errors import MalformedRowError


def to_float(value) -> Optional[float]:
    """Parse a cell into a float, ``None`` when empty or unparsable.

    Accepts a decimal comma (German exports use ``;`` as column delimiter
    and ``,`` as decimal mark).
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        value = float(value)
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned == "":
            return None
        cleaned = cleaned.replace(",", ".")
        try:
            parsed = float(cleaned)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def require_float(value, field: str) -> float:
    """Like :func:`to_float` but raises :class:`MalformedRowError`."""
    parsed = to_float(value)
    if parsed is None:
        raise MalformedRowError(f"Value {value!r} of {field} is not a number")
    return parsed


def format_number(value: float) -> str:
    """Shortest text form of a time value.

    Integral values carry no fractional part and negative zero prints as
    ``"0"``, e.g. ``0.0 -> "0"``, ``72.0 -> "72"``, ``0.06689 -> "0.06689"``.
    Magnitudes down to 1e-6 stay positional (``1e-05 -> "0.00001"``);
    smaller ones use an unpadded exponent (``"1e-7"``).
    """
    if value == 0:
        return "0"
    if float(value).is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(float(value))
    if "e-" not in text:
        return text
    if abs(value) >= 1e-6:
        return format(Decimal(text), "f")
    mantissa, exponent = text.split("e")
    return f"{mantissa}e{int(exponent)}"
