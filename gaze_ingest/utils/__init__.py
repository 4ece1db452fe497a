"""Small shared helpers."""

from .numbers import format_number, require_float, to_float

__all__ = ["format_number", "require_float", "to_float"]
