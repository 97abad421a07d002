"""
SQL Job Store

SQLModel-backed implementation of the job store, used when
JOB_STORE_BACKEND=database.
"""

from typing import Optional, List, Dict, Callable

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from src.core.exceptions import JobNotFoundError, JobStateError
from src.engines.generation.job_store import JobStore, JobUpdate, apply_update
from src.engines.generation.schemas import Job, JobStatus
from src.modules.generation.models import GenerationJob


class SqlJobStore(JobStore):
    """Job store persisting to the ``generation_jobs`` table."""

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def create(self, job: Job) -> Job:
        async with self.session_factory() as session:
            if await session.get(GenerationJob, job.id) is not None:
                raise JobStateError(f"Job already exists: {job.id}", job_id=job.id)
            session.add(GenerationJob.from_job(job))
            await session.commit()
        return job.model_copy(deep=True)

    async def get(self, job_id: str) -> Optional[Job]:
        async with self.session_factory() as session:
            row = await session.get(GenerationJob, job_id)
            return row.to_job() if row else None

    async def update(self, job_id: str, update: JobUpdate) -> Job:
        async with self.session_factory() as session:
            row = await session.get(GenerationJob, job_id, with_for_update=True)
            if row is None:
                raise JobNotFoundError(job_id)

            updated = apply_update(row.to_job(), update)
            row.copy_from(updated)
            session.add(row)
            await session.commit()
        return updated

    async def delete(self, job_id: str) -> bool:
        async with self.session_factory() as session:
            row = await session.get(GenerationJob, job_id)
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True

    async def list(self, limit: int = 20, offset: int = 0) -> List[Job]:
        async with self.session_factory() as session:
            statement = (
                select(GenerationJob)
                .order_by(GenerationJob.created_at.desc())
                .offset(offset)
                .limit(limit)
            )
            result = await session.execute(statement)
            return [row.to_job() for row in result.scalars().all()]

    async def count_by_status(self) -> Dict[JobStatus, int]:
        counts = {status: 0 for status in JobStatus}
        async with self.session_factory() as session:
            statement = select(GenerationJob.status, func.count()).group_by(GenerationJob.status)
            result = await session.execute(statement)
            for status, count in result.all():
                counts[JobStatus(status)] = count
        return counts
