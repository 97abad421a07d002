"""
Generation Schemas

DTOs shared by the routing table, providers, job store and orchestrator.
"""

from enum import Enum
from datetime import datetime
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.core.config import settings


class Task(str, Enum):
    """Image operations the studio can request from a provider."""
    REMOVE_BG = "remove-bg"
    UPSCALE = "upscale"
    POLISH = "polish"
    RELIGHT = "relight"
    SCENE_GEN = "scene-gen"
    TRY_ON = "try-on"
    OBJECT_REMOVAL = "object-removal"
    TEXT_REMOVAL = "text-removal"


class Provider(str, Enum):
    """External image providers."""
    GEMINI = "gemini"
    ZAI = "zai"


class JobStatus(str, Enum):
    """Asynchronous job lifecycle states."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Tasks whose provider path consumes an ordered list of input images
MULTI_IMAGE_TASKS = frozenset({Task.TRY_ON})


class RoutingEntry(BaseModel):
    """Static provider assignment for one task."""
    model_config = ConfigDict(frozen=True)

    task: Task
    primary: Provider
    model: str
    fallback: Optional[Provider] = None


class GenerationRequest(BaseModel):
    """A caller's request for one generation."""
    task: Task
    input_url: Optional[str] = None
    input_urls: Optional[List[str]] = None
    prompt: Optional[str] = None
    options: Optional[Dict[str, Any]] = None

    @field_validator("prompt")
    @classmethod
    def check_prompt_length(cls, value: Optional[str]) -> Optional[str]:
        if value and len(value) > settings.MAX_PROMPT_LENGTH:
            raise ValueError(f"Prompt exceeds {settings.MAX_PROMPT_LENGTH} characters")
        return value

    @model_validator(mode="after")
    def check_inputs(self) -> "GenerationRequest":
        if self.input_url and self.input_urls and self.task not in MULTI_IMAGE_TASKS:
            raise ValueError(
                f"Task '{self.task.value}' accepts either input_url or input_urls, not both"
            )
        return self


class ProviderRequest(BaseModel):
    """Parameters handed to a provider capability."""
    task: Task
    prompt: str
    model: str
    input_url: Optional[str] = None
    n: int = Field(default=1, ge=1)
    provider_options: Dict[str, Any] = Field(default_factory=dict)


class GeneratedImage(BaseModel):
    """One output image: a remote URL or an inline data reference."""
    url: str
    base64: Optional[str] = None


class GenerationUsage(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class ProviderOutcome(BaseModel):
    """Successful provider response."""
    images: List[GeneratedImage]
    duration_ms: int = Field(ge=0)
    cost_units: int = Field(ge=0)
    usage: Optional[GenerationUsage] = None


class SyncResult(BaseModel):
    """Uniform result of a synchronous generation."""
    model_config = ConfigDict(protected_namespaces=())

    success: bool
    output_url: Optional[str] = None
    output_urls: Optional[List[str]] = None
    local_path: Optional[str] = None
    local_paths: Optional[List[str]] = None
    public_url: Optional[str] = None
    public_urls: Optional[List[str]] = None
    duration_ms: int = 0
    cost_units: int = 0
    provider_used: Provider
    model_used: str
    usage: Optional[GenerationUsage] = None
    error: Optional[str] = None


class JobResult(BaseModel):
    """Persisted and normalized output recorded against a completed job."""
    model_config = ConfigDict(protected_namespaces=())

    output_url: Optional[str] = None
    output_urls: Optional[List[str]] = None
    local_path: Optional[str] = None
    local_paths: Optional[List[str]] = None
    public_url: Optional[str] = None
    public_urls: Optional[List[str]] = None
    duration_ms: int = 0
    cost_units: int = 0
    provider_used: Optional[Provider] = None
    model_used: Optional[str] = None

    @classmethod
    def from_sync_result(cls, result: SyncResult) -> "JobResult":
        return cls(
            output_url=result.output_url,
            output_urls=result.output_urls,
            local_path=result.local_path,
            local_paths=result.local_paths,
            public_url=result.public_url,
            public_urls=result.public_urls,
            duration_ms=result.duration_ms,
            cost_units=result.cost_units,
            provider_used=result.provider_used,
            model_used=result.model_used
        )


class Job(BaseModel):
    """Record of one asynchronous generation attempt."""
    id: str
    status: JobStatus = JobStatus.PENDING
    task: Task
    provider_used: Optional[Provider] = None
    input: GenerationRequest
    result: Optional[JobResult] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class JobStatusView(BaseModel):
    """Read-only projection of a job for pollers."""
    model_config = ConfigDict(frozen=True)

    job_id: str
    status: JobStatus
    task: Task
    provider_used: Optional[Provider] = None
    result: Optional[JobResult] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusView":
        return cls(
            job_id=job.id,
            status=job.status,
            task=job.task,
            provider_used=job.provider_used,
            result=job.result,
            error=job.error,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at
        )


class AsyncSubmission(BaseModel):
    """Returned immediately by an asynchronous submission."""
    job_id: str
    status: JobStatus = JobStatus.PENDING
    task: Task
    poll_url: str
