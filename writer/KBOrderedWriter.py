# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: KBOrderedWriter
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import settings
from batching.KBBatcher import KBBatch
from embedding.EmbeddingErrors import ResponseShapeError
from record.KBRecord import KBRecord
from utility.logging_utils import get_class_logger


class KBOrderedWriter:
    """
    Reassembles output lines in input order.

    Items arrive out of order (pass-through lines straight away, embedded
    records once their batch returns). Each output line is parked under its
    input position and the contiguous prefix is flushed to a spool, so only the
    out-of-order window is held in memory. The batcher bounds that window
    (settings.MAX_REORDER_LINES).

    Nothing leaves the spool until ``commit_to`` / ``getvalue``; ``discard``
    drops it all.
    """

    def __init__(
        self,
        *,
        spool_max_memory: Optional[int] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._pending: Dict[int, str] = {}
        self.next_position = 0
        self.lines_written = 0
        self._spool = tempfile.SpooledTemporaryFile(
            max_size=spool_max_memory or settings.SPOOL_MAX_MEMORY_BYTES,
            mode="w+b",
        )
        self._closed = False
        self.logger = logger or get_class_logger(self.__class__)

    # ---- placement ----
    def place_raw(self, position: int, raw_line: str) -> None:
        """Emit ``raw_line`` exactly as read (unparseable input)."""
        self._place(position, raw_line)

    def place_passthrough(self, position: int, record: Optional[KBRecord], raw_line: str) -> None:
        if record is None:
            # Valid JSON but not an object: nothing to serialise differently
            self._place(position, raw_line)
        else:
            self._place(position, record.to_json_line())

    def place_batch(self, batch: KBBatch, vectors: Sequence[List[float]]) -> None:
        if len(vectors) != len(batch):
            raise ResponseShapeError(
                f"Batch {batch.index}: expected {len(batch)} vectors, got {len(vectors)}"
            )
        for entry, vector in zip(batch.entries, vectors):
            entry.record.set_embedding(vector)
            self._place(entry.position, entry.record.to_json_line())

    def _place(self, position: int, line: str) -> None:
        self._ensure_open()
        if position < self.next_position or position in self._pending:
            raise ValueError(f"Output position {position} already placed")
        self._pending[position] = line
        self._flush_ready()

    def _flush_ready(self) -> None:
        while self.next_position in self._pending:
            line = self._pending.pop(self.next_position)
            self._spool.write(line.encode("utf-8"))
            self._spool.write(b"\n")
            self.next_position += 1
            self.lines_written += 1

    # ---- state ----
    @property
    def pending_count(self) -> int:
        """Lines waiting on an earlier position."""
        return len(self._pending)

    def is_complete(self) -> bool:
        return not self._pending

    # ---- output ----
    def getvalue(self) -> bytes:
        self._ensure_complete()
        self._spool.seek(0)
        data = self._spool.read()
        self._spool.seek(0, os.SEEK_END)
        return data

    def lines(self) -> List[str]:
        # split on "\n" only: ensure_ascii=False output may contain U+2028 etc.
        text = self.getvalue().decode("utf-8")
        return text.split("\n")[:-1] if text else []

    def commit_to(self, path: Union[str, Path]) -> Path:
        """Atomically write the assembled output to ``path`` (temp file + rename)."""
        self._ensure_complete()
        dest = Path(path)
        dest.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".tmp", dir=str(dest.parent))
        try:
            with os.fdopen(fd, "wb") as out:
                self._spool.seek(0)
                shutil.copyfileobj(self._spool, out)
            os.replace(tmp_name, dest)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        finally:
            self._spool.seek(0, os.SEEK_END)

        self.logger.info("Committed %d line(s) to '%s'", self.lines_written, dest)
        return dest

    def discard(self) -> None:
        if self._closed:
            return
        dropped = self.lines_written + len(self._pending)
        self._pending.clear()
        self._spool.close()
        self._closed = True
        self.logger.debug("Discarded %d buffered line(s)", dropped)

    def close(self) -> None:
        if not self._closed:
            self._spool.close()
            self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Writer is closed")

    def _ensure_complete(self) -> None:
        self._ensure_open()
        if self._pending:
            missing = self.next_position
            raise RuntimeError(f"Output incomplete: position {missing} never arrived ({len(self._pending)} line(s) waiting)")
