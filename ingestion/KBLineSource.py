# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: KBLineSource
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import codecs
import logging
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Iterable, Optional, Union

import settings
from utility.logging_utils import get_class_logger

ChunkStream = Union[AsyncIterable[bytes], Iterable[bytes]]


async def iter_file_chunks(path: Union[str, Path], chunk_size: Optional[int] = None) -> AsyncIterator[bytes]:
    """Read a file in fixed-size pieces; each read runs off the event loop."""
    size = chunk_size or settings.READ_CHUNK_BYTES
    with open(path, "rb") as fh:
        while True:
            chunk = await asyncio.to_thread(fh.read, size)
            if not chunk:
                break
            yield chunk


async def iter_bytes_chunks(data: bytes, chunk_size: Optional[int] = None) -> AsyncIterator[bytes]:
    size = chunk_size or settings.READ_CHUNK_BYTES
    for start in range(0, len(data), size):
        yield data[start:start + size]


async def _as_async(chunks: ChunkStream) -> AsyncIterator[bytes]:
    if hasattr(chunks, "__aiter__"):
        async for chunk in chunks:  # type: ignore[union-attr]
            yield chunk
    else:
        for chunk in chunks:  # type: ignore[union-attr]
            yield chunk


class KBLineSource:
    """
    Turns a byte stream of arbitrary chunking into trimmed, non-empty text lines.

    - UTF-8 is decoded incrementally, so a code point split across two chunks
      is never broken.
    - Blank / whitespace-only lines are dropped; a final line without a
      trailing newline is still produced.
    - Single forward pass: build a new source to read the data again.

    ``bytes_consumed`` counts the raw bytes of every line handed out so far,
    including its terminator and any blank lines skipped before it.
    """

    def __init__(self, chunks: ChunkStream, *, logger: logging.Logger | None = None) -> None:
        self._chunks = chunks
        self._started = False
        self.bytes_consumed = 0
        self.lines_read = 0
        self.logger = logger or get_class_logger(self.__class__)

    def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("KBLineSource is single-pass; construct a new source to re-read")
        self._started = True
        return self._lines()

    async def _lines(self) -> AsyncIterator[str]:
        # utf-8-sig drops a leading BOM and is otherwise plain utf-8
        decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="strict")
        buffer = bytearray()
        pending_bytes = 0  # bytes of blank lines not yet attributed to a yielded line

        async for chunk in _as_async(self._chunks):
            if not chunk:
                continue
            buffer.extend(chunk)

            start = 0
            while True:
                nl = buffer.find(b"\n", start)
                if nl == -1:
                    break
                raw = bytes(buffer[start:nl + 1])
                start = nl + 1
                line = decoder.decode(raw).strip()
                pending_bytes += len(raw)
                if line:
                    self.bytes_consumed += pending_bytes
                    pending_bytes = 0
                    self.lines_read += 1
                    yield line

            del buffer[:start]

        # Trailing partial line (no terminating newline)
        tail = decoder.decode(bytes(buffer), final=True).strip()
        pending_bytes += len(buffer)
        self.bytes_consumed += pending_bytes
        if tail:
            self.lines_read += 1
            yield tail

        self.logger.debug("Line source exhausted: %d line(s), %d byte(s)", self.lines_read, self.bytes_consumed)
