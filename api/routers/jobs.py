# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Description: api/routers/jobs.py
# -----------------------------------------------------------------------------
import logging
from pathlib import Path
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from fastapi.responses import FileResponse

import settings
from api.dependencies import get_job_service
from api.schemas.jobs import (
    ClearJobsResponse,
    DeleteJobResponse,
    GetJobResponse,
    JobInfo,
    JobStats,
    ListJobsResponse,
    RunJobsResponse,
    UploadJobsResponse,
)
from services.KBEmbedJobService import KBEmbedJob, KBEmbedJobService, output_name_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _info(job: KBEmbedJob) -> JobInfo:
    return JobInfo(**job.to_dict())


def _get_or_404(svc: KBEmbedJobService, job_id: str) -> KBEmbedJob:
    try:
        return svc.get(job_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"job '{job_id}' not found")


async def _run_in_background(svc: KBEmbedJobService) -> None:
    try:
        await svc.run_pending()
    except RuntimeError as e:
        # Another run grabbed the queue first
        logger.warning("Background run skipped: %s", e)


@router.get("", response_model=ListJobsResponse)
def list_jobs(svc: KBEmbedJobService = Depends(get_job_service)) -> ListJobsResponse:
    jobs = [_info(j) for j in svc.list_jobs()]
    logger.info("GET /jobs count=%d running=%s", len(jobs), svc.is_running)
    return ListJobsResponse(running=svc.is_running, stats=JobStats(**svc.stats()), jobs=jobs)


@router.get("/{job_id}", response_model=GetJobResponse)
def get_job(job_id: str, svc: KBEmbedJobService = Depends(get_job_service)) -> GetJobResponse:
    return GetJobResponse(job=_info(_get_or_404(svc, job_id)))


@router.post("/upload", response_model=UploadJobsResponse)
async def upload_jobs(
    files: List[UploadFile] = File(...),
    svc: KBEmbedJobService = Depends(get_job_service),
) -> UploadJobsResponse:
    if not files:
        raise HTTPException(status_code=400, detail="files must not be empty")

    logger.info("POST /jobs/upload (start) files=%d", len(files))
    try:
        jobs = await svc.upload_files(files=files, upload_dir=Path(settings.WORK_DIR) / "uploads")
        logger.info("POST /jobs/upload (done) queued=%d", len(jobs))
        return UploadJobsResponse(queued=len(jobs), jobs=[_info(j) for j in jobs])
    except Exception as e:
        logger.exception("upload_jobs failed: %s", e)
        raise HTTPException(status_code=500, detail=f"upload failed: {e}")


@router.post("/run", response_model=RunJobsResponse)
def run_jobs(
    background_tasks: BackgroundTasks,
    svc: KBEmbedJobService = Depends(get_job_service),
) -> RunJobsResponse:
    if svc.is_running:
        raise HTTPException(status_code=409, detail="a run is already in progress")

    queued = sum(1 for j in svc.list_jobs() if j.status in ("pending", "error"))
    logger.info("POST /jobs/run queued=%d", queued)
    if queued:
        background_tasks.add_task(_run_in_background, svc)
    return RunJobsResponse(started=queued > 0, queued=queued)


@router.get("/{job_id}/download")
def download_job_output(job_id: str, svc: KBEmbedJobService = Depends(get_job_service)) -> FileResponse:
    job = _get_or_404(svc, job_id)
    if job.status != "done" or job.output_path is None:
        raise HTTPException(status_code=409, detail=f"job '{job_id}' has no output (status={job.status})")
    if not job.output_path.is_file():
        logger.error("download: output for job %s missing on disk: %s", job_id, job.output_path)
        raise HTTPException(status_code=500, detail="output file missing")

    return FileResponse(
        path=str(job.output_path),
        media_type="application/jsonl",
        filename=output_name_for(job.name),
    )


@router.delete("/{job_id}", response_model=DeleteJobResponse)
def delete_job(job_id: str, svc: KBEmbedJobService = Depends(get_job_service)) -> DeleteJobResponse:
    _get_or_404(svc, job_id)
    try:
        svc.remove(job_id)
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("DELETE /jobs/%s (done)", job_id)
    return DeleteJobResponse(job_id=job_id, deleted=True)


@router.delete("", response_model=ClearJobsResponse)
def clear_jobs(svc: KBEmbedJobService = Depends(get_job_service)) -> ClearJobsResponse:
    try:
        deleted = svc.clear()
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("DELETE /jobs (done) deleted=%d", deleted)
    return ClearJobsResponse(deleted=deleted)
