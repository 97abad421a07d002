"""
GenerationJob Model

Row-level storage for asynchronous generation jobs.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from sqlmodel import SQLModel, Field, Column, JSON, DateTime

from src.engines.generation.schemas import (
    Job,
    JobStatus,
    Task,
    Provider,
    JobResult,
    GenerationRequest,
)


class GenerationJob(SQLModel, table=True):
    """One asynchronous generation job."""
    __tablename__ = "generation_jobs"

    id: str = Field(primary_key=True, max_length=36)

    status: str = Field(default=JobStatus.PENDING.value, index=True)
    task: str = Field(index=True)
    provider_used: Optional[str] = None

    # Echo of the submitted request
    input: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    # Normalized output, set on completion
    result: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    error: Optional[str] = None

    # Naive UTC, matching utc_now()
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=False), index=True, nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False)))

    @classmethod
    def from_job(cls, job: Job) -> "GenerationJob":
        row = cls(id=job.id, created_at=job.created_at, updated_at=job.updated_at, task=job.task.value)
        row.copy_from(job)
        return row

    def copy_from(self, job: Job):
        """Overwrite mutable columns from a job."""
        self.status = job.status.value
        self.task = job.task.value
        self.provider_used = job.provider_used.value if job.provider_used else None
        self.input = job.input.model_dump(mode="json")
        self.result = job.result.model_dump(mode="json") if job.result else None
        self.error = job.error
        self.updated_at = job.updated_at
        self.completed_at = job.completed_at

    def to_job(self) -> Job:
        return Job(
            id=self.id,
            status=JobStatus(self.status),
            task=Task(self.task),
            provider_used=Provider(self.provider_used) if self.provider_used else None,
            input=GenerationRequest.model_validate(self.input),
            result=JobResult.model_validate(self.result) if self.result else None,
            error=self.error,
            created_at=self.created_at,
            updated_at=self.updated_at,
            completed_at=self.completed_at
        )
