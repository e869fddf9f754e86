# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Description: jobs.py
# -----------------------------------------------------------------------------
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class JobInfo(BaseModel):
    job_id: str
    name: str
    size: int
    output_name: Optional[str] = None

    # Run snapshot
    status: str
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


class JobStats(BaseModel):
    total_files: int
    completed_files: int
    failed_files: int
    processed_records: int


class ListJobsResponse(BaseModel):
    running: bool
    stats: JobStats
    jobs: List[JobInfo]


class GetJobResponse(BaseModel):
    job: JobInfo


class UploadJobsResponse(BaseModel):
    queued: int
    jobs: List[JobInfo]


class RunJobsResponse(BaseModel):
    started: bool
    queued: int


class DeleteJobResponse(BaseModel):
    job_id: str
    deleted: bool


class ClearJobsResponse(BaseModel):
    deleted: int
