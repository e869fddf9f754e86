# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: KBBatcher
# -----------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator, List, Optional, Tuple, Union

import settings
from record.KBRecord import KBRecord
from record.KBRecordClassifier import Classified, NeedsEmbedding, ParseErrorLine, PassThrough


@dataclass(frozen=True)
class KBBatchEntry:
    position: int
    record: KBRecord
    text: str


@dataclass
class KBBatch:
    """Records sent to the provider together, in arrival order."""
    index: int
    entries: List[KBBatchEntry] = field(default_factory=list)

    @property
    def texts(self) -> List[str]:
        return [e.text for e in self.entries]

    @property
    def positions(self) -> List[int]:
        return [e.position for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class KBForward:
    """A pass-through or unparseable line, handed on without waiting for any batch."""
    position: int
    item: Union[PassThrough, ParseErrorLine]


BatcherEvent = Union[KBBatch, KBForward]


class KBBatcher:
    def __init__(self, batch_size: int = 8, max_held_lines: Optional[int] = None) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self.max_held_lines = max_held_lines or settings.MAX_REORDER_LINES
        if self.max_held_lines < 1:
            raise ValueError(f"max_held_lines must be >= 1, got {self.max_held_lines}")

    async def batches(self, classified: AsyncIterable[Tuple[int, Classified]]) -> AsyncIterator[BatcherEvent]:
        """
        Yield ``KBForward`` for pass-through / parse-error items as soon as they
        arrive, and a ``KBBatch`` whenever ``batch_size`` items needing an
        embedding have accumulated (plus a final partial batch, if any).

        Lines forwarded while a batch is open wait in the writer behind it, so
        an open batch is yielded short once ``max_held_lines`` have gone past it.
        """
        batch_index = 0
        current = KBBatch(index=batch_index)
        held = 0

        async for position, item in classified:
            if isinstance(item, NeedsEmbedding):
                current.entries.append(KBBatchEntry(position=position, record=item.record, text=item.text))
                if len(current) >= self.batch_size:
                    yield current
                    batch_index += 1
                    current = KBBatch(index=batch_index)
                    held = 0
                continue

            yield KBForward(position=position, item=item)
            if current.entries:
                held += 1
                if held >= self.max_held_lines:
                    yield current
                    batch_index += 1
                    current = KBBatch(index=batch_index)
                    held = 0

        if current.entries:
            yield current
