"""
Status Endpoint - Job Status Tracking

GET /api/v1/status/{job_id} - Current status of a generation job
GET /api/v1/status          - Recent jobs, newest first
"""

from typing import List, Dict

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.api.dependencies import get_service
from src.core.exceptions import JobNotFoundError
from src.engines.generation.schemas import JobStatusView
from src.engines.generation.service import AIService

router = APIRouter()


class JobListResponse(BaseModel):
    """List of jobs response."""
    jobs: List[JobStatusView]
    counts: Dict[str, int]
    limit: int
    offset: int


@router.get("/{job_id}", response_model=JobStatusView)
async def get_job_status(
    job_id: str,
    service: AIService = Depends(get_service)
):
    """
    Get the current status of a generation job.

    Returns 404 for unknown ids; a failed job is returned with its error.
    """
    view = await service.get_job_status(job_id)
    if view is None:
        raise JobNotFoundError(job_id)
    return view


@router.get("", response_model=JobListResponse)
async def list_jobs(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: AIService = Depends(get_service)
):
    jobs = await service.list_jobs(limit=limit, offset=offset)
    counts = await service.count_jobs()
    return JobListResponse(
        jobs=jobs,
        counts={job_status.value: count for job_status, count in counts.items()},
        limit=limit,
        offset=offset
    )
