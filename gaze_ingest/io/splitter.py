"""Reassembly of rows across chunk boundaries."""
from __future__ import annotations

from typing import List


class RowSplitter:
    """Split decoded text chunks into complete rows.

    The trailing partial row of every chunk is kept and prepended to the next
    chunk; :meth:`release` hands it out once the stream is exhausted.
    """

    def __init__(self, row_delimiter: str = "\r\n"):
        if not row_delimiter:
            raise ValueError("row_delimiter must not be empty")
        self.row_delimiter = row_delimiter
        self._remainder = ""

    def split_chunk(self, chunk: str) -> List[str]:
        text = self._remainder + chunk
        rows = text.split(self.row_delimiter)
        self._remainder = rows.pop()
        return [self._clean(row) for row in rows]

    def release(self) -> List[str]:
        remainder, self._remainder = self._remainder, ""
        if remainder == "":
            return []
        return [self._clean(row) for row in remainder.split(self.row_delimiter)]

    def _clean(self, row: str) -> str:
        # a lone "\r" survives when a "\r\n" file was detected as "\n"
        if self.row_delimiter == "\n" and row.endswith("\r"):
            return row[:-1]
        return row
