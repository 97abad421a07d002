"""
Job Store

Keyed record store for asynchronous generation jobs. Every backend enforces
the same lifecycle through ``apply_update``:

    pending -> processing -> completed
       |            |
       +-> failed <-+

Terminal jobs are immutable, ``completed_at`` is stamped once on the
terminal transition and ``updated_at`` strictly increases.
"""

import uuid
import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional, List, Dict

from pydantic import BaseModel

from src.core.exceptions import JobNotFoundError, JobStateError
from src.engines.generation.schemas import (
    Job,
    JobStatus,
    JobResult,
    Provider,
    GenerationRequest,
)

ALLOWED_TRANSITIONS = {
    (JobStatus.PENDING, JobStatus.PROCESSING),
    (JobStatus.PENDING, JobStatus.FAILED),
    (JobStatus.PROCESSING, JobStatus.COMPLETED),
    (JobStatus.PROCESSING, JobStatus.FAILED),
}


def utc_now() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JobUpdate(BaseModel):
    """Partial update; only explicitly set fields are applied."""
    status: Optional[JobStatus] = None
    provider_used: Optional[Provider] = None
    result: Optional[JobResult] = None
    error: Optional[str] = None


def new_job(request: GenerationRequest, provider_used: Optional[Provider] = None) -> Job:
    """Build a pending job for a request."""
    now = utc_now()
    return Job(
        id=str(uuid.uuid4()),
        status=JobStatus.PENDING,
        task=request.task,
        provider_used=provider_used,
        input=request.model_copy(deep=True),
        created_at=now,
        updated_at=now
    )


def apply_update(job: Job, update: JobUpdate, now: Optional[datetime] = None) -> Job:
    """
    Return a new job with ``update`` applied.

    Raises:
        JobStateError: If the job is terminal or the transition is not allowed
    """
    if job.status.is_terminal:
        raise JobStateError(
            f"Job {job.id} is already {job.status.value} and cannot be updated",
            job_id=job.id
        )

    changes = update.model_dump(exclude_unset=True)
    target = changes.get("status")
    if target is not None and target != job.status and (job.status, target) not in ALLOWED_TRANSITIONS:
        raise JobStateError(
            f"Invalid job transition: {job.status.value} -> {JobStatus(target).value}",
            job_id=job.id
        )

    updated = job.model_copy(deep=True)
    for field, value in changes.items():
        setattr(updated, field, getattr(update, field))

    now = now or utc_now()
    updated.updated_at = max(now, job.updated_at + timedelta(microseconds=1))
    if updated.status.is_terminal:
        updated.completed_at = updated.updated_at

    return updated


class JobStore(ABC):
    """Interface for job persistence."""

    @abstractmethod
    async def create(self, job: Job) -> Job:
        """Store a new job. Raises JobStateError if the id is taken."""
        pass

    @abstractmethod
    async def get(self, job_id: str) -> Optional[Job]:
        pass

    @abstractmethod
    async def update(self, job_id: str, update: JobUpdate) -> Job:
        """
        Apply a partial update.

        Raises:
            JobNotFoundError: If the job does not exist
            JobStateError: If the update violates the lifecycle
        """
        pass

    @abstractmethod
    async def delete(self, job_id: str) -> bool:
        pass

    @abstractmethod
    async def list(self, limit: int = 20, offset: int = 0) -> List[Job]:
        """Jobs ordered newest first."""
        pass

    @abstractmethod
    async def count_by_status(self) -> Dict[JobStatus, int]:
        pass


class InMemoryJobStore(JobStore):
    """Process-local store. Callers always receive copies."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = asyncio.Lock()

    async def create(self, job: Job) -> Job:
        async with self._lock:
            if job.id in self._jobs:
                raise JobStateError(f"Job already exists: {job.id}", job_id=job.id)
            self._jobs[job.id] = job.model_copy(deep=True)
        return job.model_copy(deep=True)

    async def get(self, job_id: str) -> Optional[Job]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def update(self, job_id: str, update: JobUpdate) -> Job:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            updated = apply_update(job, update)
            self._jobs[job_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, job_id: str) -> bool:
        async with self._lock:
            return self._jobs.pop(job_id, None) is not None

    async def list(self, limit: int = 20, offset: int = 0) -> List[Job]:
        # Reverse insertion order first so ties on created_at stay newest first
        jobs = sorted(reversed(list(self._jobs.values())), key=lambda j: j.created_at, reverse=True)
        return [job.model_copy(deep=True) for job in jobs[offset:offset + limit]]

    async def count_by_status(self) -> Dict[JobStatus, int]:
        counts = {status: 0 for status in JobStatus}
        for job in self._jobs.values():
            counts[job.status] += 1
        return counts

    def clear(self):
        self._jobs.clear()

    def __len__(self) -> int:
        return len(self._jobs)
