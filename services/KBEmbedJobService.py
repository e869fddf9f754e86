# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-09
# Description: KBEmbedJobService.py
# -----------------------------------------------------------------------------
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from fastapi import UploadFile

import settings
from embedding.KBEmbeddingClient import KBEmbeddingClient
from pipeline.KBEmbedPipeline import KBEmbedPipeline
from pipeline.KBPipelineState import KBProgressSnapshot
from utility.logging_utils import get_class_logger


def output_name_for(name: str, suffix: Optional[str] = None) -> str:
    """data.jsonl -> data.embedded.jsonl (anything else just gets the suffix appended)."""
    suffix = suffix or settings.OUTPUT_SUFFIX
    if name.endswith(".jsonl"):
        return name[: -len(".jsonl")] + suffix
    return name + suffix


def _new_job_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass
class KBEmbedJob:
    job_id: str
    name: str
    input_path: Path
    size: int
    uploaded: bool = False
    snapshot: KBProgressSnapshot = field(
        default_factory=lambda: KBProgressSnapshot(
            status="pending",
            progress=0,
            processed_count=0,
            embedded_count=0,
            already_embedded_count=0,
            skipped_count=0,
            error_count=0,
            batch_count=0,
            consumed_bytes=0,
        )
    )
    output_path: Optional[Path] = None
    pipeline: Optional[KBEmbedPipeline] = field(default=None, repr=False)

    @property
    def status(self) -> str:
        return self.snapshot.status

    @property
    def error(self) -> Optional[str]:
        return self.snapshot.error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "name": self.name,
            "size": self.size,
            "output_name": output_name_for(self.name) if self.output_path else None,
            **self.snapshot.model_dump(),
        }


class KBEmbedJobService:
    """
    Queue of input files, each embedded by its own KBEmbedPipeline.

    - files start ``pending``; ``run_pending`` runs every pending or failed job
      (a failed job is retried from scratch with a fresh pipeline)
    - files run one at a time unless ``max_parallel_files`` > 1; runs never
      share state
    - jobs cannot be removed while a run is in progress
    """

    def __init__(
        self,
        *,
        client: KBEmbeddingClient,
        batch_size: Optional[int] = None,
        output_dir: Optional[Union[str, Path]] = None,
        max_parallel_files: Optional[int] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.batch_size = batch_size or client.cfg.batch_size
        self.output_dir = Path(output_dir) if output_dir else None
        self.max_parallel_files = max_parallel_files or settings.MAX_PARALLEL_FILES
        self.logger = logger or get_class_logger(self.__class__)

        self._jobs: Dict[str, KBEmbedJob] = {}
        self._running = False

        self.logger.info(
            "KBEmbedJobService initialised (batch_size=%d, max_parallel_files=%d, output_dir=%s)",
            self.batch_size,
            self.max_parallel_files,
            self.output_dir or "<next to input>",
        )

    # ---- queue management ----
    @property
    def is_running(self) -> bool:
        return self._running

    def add_file(self, input_path: Union[str, Path], *, display_name: Optional[str] = None, uploaded: bool = False) -> KBEmbedJob:
        path = Path(input_path)
        if not path.is_file():
            raise FileNotFoundError(f"Input file not found: {path}")

        job = KBEmbedJob(
            job_id=_new_job_id(),
            name=display_name or path.name,
            input_path=path,
            size=path.stat().st_size,
            uploaded=uploaded,
        )
        self._jobs[job.job_id] = job
        self.logger.info("Queued job %s name='%s' (%d bytes)", job.job_id, job.name, job.size)
        return job

    async def upload_files(self, *, files: List[UploadFile], upload_dir: Union[str, Path]) -> List[KBEmbedJob]:
        """Stream each upload to ``upload_dir`` and queue it under its original filename."""
        target_dir = Path(upload_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

        jobs: List[KBEmbedJob] = []
        for f in files:
            filename = Path(f.filename or "upload.jsonl").name
            dest = target_dir / f"{_new_job_id()}_{filename}"
            written = 0
            # disk writes go to a worker thread; a run may be active on this loop
            out = await asyncio.to_thread(open, dest, "wb")
            try:
                while True:
                    chunk = await f.read(settings.READ_CHUNK_BYTES)
                    if not chunk:
                        break
                    await asyncio.to_thread(out.write, chunk)
                    written += len(chunk)
            finally:
                await asyncio.to_thread(out.close)
            self.logger.info("upload_files: saved '%s' (%d bytes) -> '%s'", filename, written, dest)
            jobs.append(self.add_file(dest, display_name=filename, uploaded=True))
        return jobs

    def add_files(self, paths: Iterable[Union[str, Path]]) -> List[KBEmbedJob]:
        return [self.add_file(p) for p in paths]

    def add_directory(self, directory: Union[str, Path]) -> List[KBEmbedJob]:
        """Queue every *.jsonl in ``directory`` that is not itself an output file."""
        root = Path(directory)
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")

        candidates = sorted(
            p for p in root.glob("*.jsonl")
            if p.is_file() and not p.name.endswith(settings.OUTPUT_SUFFIX)
        )
        self.logger.info("Found %d input file(s) in '%s'", len(candidates), root)
        return self.add_files(candidates)

    def get(self, job_id: str) -> KBEmbedJob:
        try:
            return self._jobs[job_id]
        except KeyError:
            raise KeyError(f"Unknown job: {job_id}") from None

    def list_jobs(self) -> List[KBEmbedJob]:
        return list(self._jobs.values())

    def remove(self, job_id: str) -> KBEmbedJob:
        if self._running:
            raise RuntimeError("Cannot remove jobs while processing")
        job = self.get(job_id)
        del self._jobs[job_id]
        self._cleanup(job)
        self.logger.info("Removed job %s name='%s'", job.job_id, job.name)
        return job

    def clear(self) -> int:
        if self._running:
            raise RuntimeError("Cannot clear jobs while processing")
        jobs = list(self._jobs.values())
        self._jobs.clear()
        for job in jobs:
            self._cleanup(job)
        self.logger.info("Cleared %d job(s)", len(jobs))
        return len(jobs)

    def _cleanup(self, job: KBEmbedJob) -> None:
        if job.uploaded and settings.DELETE_UPLOADS_ON_REMOVE:
            job.input_path.unlink(missing_ok=True)

    def stats(self) -> Dict[str, int]:
        jobs = self.list_jobs()
        return {
            "total_files": len(jobs),
            "completed_files": sum(1 for j in jobs if j.status == "done"),
            "failed_files": sum(1 for j in jobs if j.status == "error"),
            "processed_records": sum(j.snapshot.processed_count for j in jobs),
        }

    # ---- processing ----
    def output_path_for(self, job: KBEmbedJob) -> Path:
        directory = self.output_dir or job.input_path.parent
        # Uploads can share a filename; keep their outputs apart
        stem = f"{job.job_id}_{job.name}" if job.uploaded else job.name
        return directory / output_name_for(stem)

    async def run_pending(self) -> List[KBEmbedJob]:
        if self._running:
            raise RuntimeError("A run is already in progress")

        todo = [j for j in self._jobs.values() if j.status in ("pending", "error")]
        if not todo:
            self.logger.info("run_pending: nothing to do")
            return []

        self._running = True
        self.logger.info("run_pending: %d job(s) (max_parallel_files=%d)", len(todo), self.max_parallel_files)
        try:
            if self.max_parallel_files <= 1:
                for job in todo:
                    await self._run_job(job)
            else:
                gate = asyncio.Semaphore(self.max_parallel_files)

                async def _bounded(j: KBEmbedJob) -> None:
                    async with gate:
                        await self._run_job(j)

                await asyncio.gather(*(_bounded(j) for j in todo))
        finally:
            self._running = False

        done = sum(1 for j in todo if j.status == "done")
        self.logger.info("run_pending complete: %d/%d job(s) succeeded", done, len(todo))
        return todo

    async def _run_job(self, job: KBEmbedJob) -> None:
        def _on_progress(snapshot: KBProgressSnapshot) -> None:
            job.snapshot = snapshot

        job.output_path = None
        pipeline = KBEmbedPipeline(self.client, batch_size=self.batch_size, on_progress=_on_progress)
        job.pipeline = pipeline

        output_path = self.output_path_for(job)
        self.logger.info("Processing job %s '%s' -> '%s'", job.job_id, job.input_path, output_path)

        try:
            result = await pipeline.run_file(job.input_path, output_path)
        except OSError as e:
            # Commit failed after a successful run
            self.logger.error("Job %s: could not write output '%s': %s", job.job_id, output_path, e)
            job.snapshot = pipeline.snapshot().model_copy(update={"status": "error", "error": f"Failed writing output: {e}"})
            return
        finally:
            job.pipeline = None

        job.snapshot = result.snapshot
        if result.ok:
            job.output_path = output_path
            self.logger.info("Job %s done: %s", job.job_id, output_path)
        else:
            self.logger.error("Job %s failed: %s", job.job_id, result.snapshot.error)

    def cancel_all(self) -> None:
        for job in self._jobs.values():
            if job.pipeline is not None:
                job.pipeline.cancel()
