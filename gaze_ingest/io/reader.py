"""Lazy, chunked decoding of byte sources.

A source is either a bytes-like buffer, a binary file object (anything with
``read(size)``) or an iterable of byte chunks. Nothing is read before the
first :meth:`ChunkReader.get_text_chunk` call and at most one chunk is held
at a time.
"""
from __future__ import annotations

import codecs
from typing import Iterable, Iterator, Union

DEFAULT_CHUNK_SIZE = 1024 * 1024

ByteSource = Union[bytes, bytearray, memoryview, Iterable[bytes]]


def buffer_to_chunks(buffer: Union[bytes, bytearray, memoryview], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    """Cut a whole-file buffer into ``chunk_size`` slices."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")
    view = memoryview(buffer)
    for offset in range(0, len(view), chunk_size):
        yield bytes(view[offset:offset + chunk_size])


def _iter_file(handle, chunk_size: int) -> Iterator[bytes]:
    while True:
        block = handle.read(chunk_size)
        if not block:
            return
        yield block


def iter_byte_chunks(source, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return buffer_to_chunks(source, chunk_size)
    if hasattr(source, "read"):
        return _iter_file(source, chunk_size)
    return iter(source)


class ChunkReader:
    """Decode a byte source into text chunks, one source chunk at a time.

    Multi-byte characters split across chunk boundaries are reassembled by an
    incremental decoder.
    """

    def __init__(self, source: ByteSource, encoding: str = "utf-8-sig", chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._chunks = iter_byte_chunks(source, chunk_size)
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self.is_done = False
        self.bytes_read = 0

    def get_text_chunk(self) -> str:
        """Next decoded chunk; ``""`` once the source is exhausted."""
        if self.is_done:
            return ""
        for block in self._chunks:
            self.bytes_read += len(block)
            text = self._decoder.decode(bytes(block))
            if text:
                return text
        self.is_done = True
        return self._decoder.decode(b"", final=True)

    def __iter__(self) -> Iterator[str]:
        while not self.is_done:
            text = self.get_text_chunk()
            if text:
                yield text
