# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-07
# Description: KBEmbedPipeline
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Tuple, Union

from batching.KBBatcher import KBBatch, KBBatcher, KBForward
from embedding.EmbeddingErrors import BatchDispatchError
from embedding.KBEmbeddingClient import KBEmbeddingClient
from ingestion.KBLineSource import ChunkStream, KBLineSource, iter_file_chunks
from pipeline.KBPipelineState import KBPipelineState, KBProgressSnapshot
from record.KBRecordClassifier import Classified, KBRecordClassifier, ParseErrorLine, PassThrough
from utility.logging_utils import get_class_logger
from writer.KBOrderedWriter import KBOrderedWriter

ProgressCallback = Callable[[KBProgressSnapshot], None]


class RunCancelled(Exception):
    pass


@dataclass
class KBRunResult:
    """Outcome of one run. ``writer`` is only set when the run reached ``done``."""
    snapshot: KBProgressSnapshot
    writer: Optional[KBOrderedWriter]
    elapsed_s: float

    @property
    def ok(self) -> bool:
        return self.snapshot.status == "done"


class KBEmbedPipeline:
    """
    One run over one input stream:

        bytes -> KBLineSource -> KBRecordClassifier -> KBBatcher
              -> KBEmbeddingClient (one call per batch) -> KBOrderedWriter

    States: pending -> processing -> done | error. A pipeline runs once; build
    a new one to re-run (a failed file starts again from scratch).

    Pass-through and unparseable lines go to the writer as soon as they are
    read. Each batch is dispatched and awaited before the next one, and the
    loop yields to the event loop after every batch.
    A batch that stays open while ``max_held_lines`` later lines go by is
    dispatched short, which caps what the writer holds out of order.

    Any batch failure, read error or cancellation ends the run in ``error``
    and the partial output is discarded.
    """

    def __init__(
        self,
        client: KBEmbeddingClient,
        *,
        batch_size: Optional[int] = None,
        max_held_lines: Optional[int] = None,
        classifier: Optional[KBRecordClassifier] = None,
        on_progress: Optional[ProgressCallback] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.batcher = KBBatcher(batch_size or client.cfg.batch_size, max_held_lines)
        self.classifier = classifier or KBRecordClassifier()
        self.on_progress = on_progress
        self.state = KBPipelineState()
        self.logger = logger or get_class_logger(self.__class__)
        self._cancel_requested = False
        self._source: Optional[KBLineSource] = None

    # ---- observers ----
    def snapshot(self) -> KBProgressSnapshot:
        return self.state.snapshot()

    def cancel(self) -> None:
        """Abandon the run at the next batch boundary."""
        self._cancel_requested = True

    def _publish(self) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(self.state.snapshot())
        except Exception:
            # An observer must not take the run down with it
            self.logger.exception("Progress observer raised")

    # ---- run ----
    async def run(self, chunks: ChunkStream, *, total_bytes: Optional[int] = None, label: str = "<stream>") -> KBRunResult:
        self.state.start(total_bytes)
        writer = KBOrderedWriter()
        start = time.time()

        self.logger.info(
            "Run started input='%s' size=%s batch_size=%d",
            label,
            total_bytes if total_bytes is not None else "unknown",
            self.batcher.batch_size,
        )
        self._publish()

        try:
            await self._drive(chunks, writer)
        except asyncio.CancelledError:
            self._abort(writer, "Run cancelled")
            raise
        except RunCancelled:
            self._abort(writer, "Run cancelled")
        except BatchDispatchError as e:
            self._abort(writer, str(e))
        except (OSError, UnicodeDecodeError) as e:
            self._abort(writer, f"Failed reading input: {e}")
        except Exception as e:
            self.logger.exception("Unexpected failure while processing '%s'", label)
            self._abort(writer, f"{type(e).__name__}: {e}")

        elapsed = time.time() - start
        if self.state.status == "error":
            self.logger.error("Run failed input='%s' after %.2fs: %s", label, elapsed, self.state.error)
            return KBRunResult(snapshot=self.state.snapshot(), writer=None, elapsed_s=elapsed)

        consumed = self._source.bytes_consumed if self._source else 0
        self.state.finish(consumed)
        self._publish()

        s = self.state
        self.logger.info(
            "Run finished input='%s' in %.2fs: embedded=%d already_embedded=%d skipped=%d parse_errors=%d batches=%d",
            label,
            elapsed,
            s.embedded_count,
            s.already_embedded_count,
            s.skipped_count,
            s.error_count,
            s.batch_count,
        )
        return KBRunResult(snapshot=self.state.snapshot(), writer=writer, elapsed_s=elapsed)

    async def run_file(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
    ) -> KBRunResult:
        """Stream ``input_path``; on success commit the output to ``output_path`` (if given)."""
        path = Path(input_path)
        try:
            total = path.stat().st_size
        except OSError as e:
            self.state.start(None)
            self.state.fail(f"Failed reading input: {e}")
            self.logger.error("Cannot stat input '%s': %s", path, e)
            return KBRunResult(snapshot=self.state.snapshot(), writer=None, elapsed_s=0.0)

        result = await self.run(iter_file_chunks(path), total_bytes=total, label=str(path))
        if result.ok and output_path is not None and result.writer is not None:
            try:
                result.writer.commit_to(output_path)
            finally:
                result.writer.close()
        return result

    # ---- internals ----
    async def _positioned(self, source: KBLineSource) -> AsyncIterator[Tuple[int, Classified]]:
        position = 0
        async for line in source:
            yield position, self.classifier.classify(line)
            position += 1

    async def _drive(self, chunks: ChunkStream, writer: KBOrderedWriter) -> None:
        source = KBLineSource(chunks)
        self._source = source

        async for event in self.batcher.batches(self._positioned(source)):
            if isinstance(event, KBForward):
                self._forward(event, writer)
                continue

            await self._dispatch(event, writer)

            self.state.update_progress(source.bytes_consumed)
            self._publish()
            # Let other tasks (API, other files) run between batches
            await asyncio.sleep(0)

            if self._cancel_requested:
                raise RunCancelled()

        if self._cancel_requested:
            raise RunCancelled()

    def _forward(self, event: KBForward, writer: KBOrderedWriter) -> None:
        item = event.item
        if isinstance(item, ParseErrorLine):
            self.state.error_count += 1
            self.logger.warning("Line %d is not valid JSON; passing it through unchanged", event.position + 1)
            writer.place_raw(event.position, item.raw_line)
            return

        passthrough: PassThrough = item
        self.state.processed_count += 1
        if passthrough.reason == "already_embedded":
            self.state.already_embedded_count += 1
        else:
            self.state.skipped_count += 1
        writer.place_passthrough(event.position, passthrough.record, passthrough.raw_line)

    async def _dispatch(self, batch: KBBatch, writer: KBOrderedWriter) -> None:
        self.logger.debug("Dispatching batch %d (%d record(s), first line %d)", batch.index, len(batch), batch.positions[0] + 1)

        result = await self.client.embed_batch(batch.texts)
        vectors = result.raise_for_failure()
        writer.place_batch(batch, vectors)

        self.state.batch_count += 1
        self.state.embedded_count += len(batch)
        self.state.processed_count += len(batch)

    def _abort(self, writer: KBOrderedWriter, message: str) -> None:
        writer.discard()
        if not self.state.is_terminal:
            self.state.fail(message)
        self._publish()
