# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: KBPipelineState
# -----------------------------------------------------------------------------
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from pydantic import BaseModel

PipelineStatus = Literal["pending", "processing", "done", "error"]
TERMINAL_STATUSES = ("done", "error")


class KBProgressSnapshot(BaseModel):
    """Read-only view of one run, handed to observers (API, CLI, job list)."""
    status: PipelineStatus
    progress: int
    processed_count: int
    embedded_count: int
    already_embedded_count: int
    skipped_count: int
    error_count: int
    batch_count: int
    total_bytes: Optional[int] = None
    consumed_bytes: int
    error: Optional[str] = None


@dataclass
class KBPipelineState:
    """
    Counters for one run. Owned by KBEmbedPipeline; everyone else reads snapshots.

    processed_count  = records written from a parsed line (embedded, already embedded, skipped)
    skipped_count    = records with no embeddable text
    error_count      = lines that were not valid JSON
    """

    status: PipelineStatus = "pending"
    progress: int = 0
    processed_count: int = 0
    embedded_count: int = 0
    already_embedded_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    batch_count: int = 0
    bytes_consumed: int = 0
    total_bytes: Optional[int] = None
    error: Optional[str] = None
    _frozen: bool = field(default=False, repr=False)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def start(self, total_bytes: Optional[int]) -> None:
        if self.status != "pending":
            raise RuntimeError(f"Run already started (status={self.status}); create a new pipeline to re-run")
        self.processed_count = 0
        self.embedded_count = 0
        self.already_embedded_count = 0
        self.skipped_count = 0
        self.error_count = 0
        self.batch_count = 0
        self.bytes_consumed = 0
        self.progress = 0
        self.total_bytes = total_bytes
        self.error = None
        self.status = "processing"

    def update_progress(self, bytes_consumed: int) -> None:
        self._ensure_mutable()
        self.bytes_consumed = max(self.bytes_consumed, bytes_consumed)
        if self.total_bytes:
            pct = round(100 * self.bytes_consumed / self.total_bytes)
            self.progress = max(self.progress, min(99, pct))

    def finish(self, bytes_consumed: int) -> None:
        self._ensure_mutable()
        self.bytes_consumed = max(self.bytes_consumed, bytes_consumed)
        self.progress = 100
        self.status = "done"
        self._frozen = True

    def fail(self, message: str) -> None:
        self._ensure_mutable()
        self.error = message
        self.status = "error"
        self._frozen = True

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RuntimeError(f"Run state is final (status={self.status})")

    def snapshot(self) -> KBProgressSnapshot:
        return KBProgressSnapshot(
            status=self.status,
            progress=self.progress,
            processed_count=self.processed_count,
            embedded_count=self.embedded_count,
            already_embedded_count=self.already_embedded_count,
            skipped_count=self.skipped_count,
            error_count=self.error_count,
            batch_count=self.batch_count,
            total_bytes=self.total_bytes,
            consumed_bytes=self.bytes_consumed,
            error=self.error,
        )
