"""
Generation Service

Orchestrates image generation: routes each task to its primary provider,
retries once on the configured fallback, persists every output image and
drives the asynchronous job lifecycle.

Sync path:
    resolve -> prompt -> primary -> persist
                            |
                            +-> (failure) fallback -> persist

Async path:
    create job (pending) -> runner -> processing -> sync path -> completed | failed
"""

from typing import Callable, Optional, List, Dict, Any

from src.core.config import settings
from src.core.exceptions import JobNotFoundError, JobStateError
from src.core.logging import get_logger, LogContext
from src.core.metrics import (
    track_provider_latency,
    record_generation_attempt,
    record_fallback,
    record_job_started,
    record_job_completion,
)
from src.core.storage import IArtifactStorage, SavedArtifact, get_storage
from src.engines.generation import routing
from src.engines.generation.job_store import (
    JobStore,
    JobUpdate,
    InMemoryJobStore,
    new_job,
)
from src.engines.generation.prompts import build_task_prompt
from src.engines.generation.providers import ImageGenerationProvider, create_image_provider
from src.engines.generation.runner import JobRunner
from src.engines.generation.schemas import (
    Provider,
    JobStatus,
    JobResult,
    JobStatusView,
    SyncResult,
    AsyncSubmission,
    GenerationRequest,
    ProviderRequest,
    ProviderOutcome,
)

logger = get_logger(__name__)

ProviderFactory = Callable[[Provider], ImageGenerationProvider]

POLL_URL_TEMPLATE = "/api/v1/status/{job_id}"


def _error_message(exc: Exception) -> str:
    return str(exc) or "Unknown error"


class AIService:
    """
    Generation orchestrator.

    Args:
        job_store: Store for asynchronous jobs
        storage: Artifact persistence for generated images
        provider_factory: Builds a provider instance for each attempt
        runner: Background runner for asynchronous jobs (one is created if omitted)
    """

    def __init__(
        self,
        job_store: JobStore,
        storage: IArtifactStorage,
        provider_factory: ProviderFactory = create_image_provider,
        runner: Optional[JobRunner] = None
    ):
        self.job_store = job_store
        self.storage = storage
        self.provider_factory = provider_factory
        self.runner = runner or JobRunner(timeout_seconds=settings.JOB_TIMEOUT_SECONDS)
        if self.runner.on_timeout is None:
            self.runner.on_timeout = self._on_job_timeout

    # =========================================================================
    # Synchronous path
    # =========================================================================

    async def generate_sync(self, request: GenerationRequest) -> SyncResult:
        """
        Run one generation and wait for it.

        Provider and persistence failures are returned as ``success=False``;
        only a missing routing entry raises.
        """
        entry = routing.resolve(request.task)
        prompt = build_task_prompt(request)
        task = request.task.value

        logger.info(
            "generation_started",
            task=task,
            primary=entry.primary.value,
            fallback=entry.fallback.value if entry.fallback else None
        )

        try:
            return await self._attempt(request, entry.primary, entry.model, prompt)
        except Exception as e:
            primary_error = _error_message(e)
            logger.warning(
                "provider_failed",
                task=task,
                provider=entry.primary.value,
                error=primary_error,
                error_type=type(e).__name__
            )

        if entry.fallback is None:
            return self._failure(entry.primary, entry.model, primary_error)

        fallback_model = routing.get_fallback_model(entry.fallback)
        record_fallback(task, entry.fallback.value)
        logger.info("fallback_attempted", task=task, provider=entry.fallback.value, model=fallback_model)

        try:
            return await self._attempt(request, entry.fallback, fallback_model, prompt)
        except Exception as e:
            fallback_error = _error_message(e)
            logger.warning(
                "fallback_failed",
                task=task,
                provider=entry.fallback.value,
                error=fallback_error,
                error_type=type(e).__name__
            )

        return self._failure(
            entry.primary,
            entry.model,
            f"Primary provider failed: {primary_error}. Fallback provider failed: {fallback_error}"
        )

    async def _attempt(
        self,
        request: GenerationRequest,
        provider: Provider,
        model: str,
        prompt: str
    ) -> SyncResult:
        """One provider call plus persistence of its outputs. Raises on any failure."""
        task = request.task.value

        try:
            with track_provider_latency(provider.value):
                instance = self.provider_factory(provider)
                outcome = await instance.generate_image(
                    ProviderRequest(
                        task=request.task,
                        prompt=prompt,
                        model=model,
                        input_url=request.input_url,
                        provider_options=self._provider_options(request)
                    )
                )
                saved = await self._persist(outcome, task)
        except Exception:
            record_generation_attempt(task, provider.value, "error")
            raise

        record_generation_attempt(task, provider.value, "success", outcome.cost_units)
        logger.info(
            "provider_succeeded",
            task=task,
            provider=provider.value,
            model=model,
            images=len(outcome.images),
            duration_ms=outcome.duration_ms,
            cost_units=outcome.cost_units
        )

        output_urls = [image.url for image in outcome.images]
        return SyncResult(
            success=True,
            output_url=output_urls[0] if output_urls else None,
            output_urls=output_urls,
            local_path=saved[0].file_path if saved else None,
            local_paths=[artifact.file_path for artifact in saved],
            public_url=saved[0].public_url if saved else None,
            public_urls=[artifact.public_url for artifact in saved],
            duration_ms=outcome.duration_ms,
            cost_units=outcome.cost_units,
            provider_used=provider,
            model_used=model,
            usage=outcome.usage
        )

    async def _persist(self, outcome: ProviderOutcome, task: str) -> List[SavedArtifact]:
        # Sequential, so artifact i always belongs to image i
        saved = []
        for image in outcome.images:
            saved.append(await self.storage.save_image(image.url, task))
        return saved

    @staticmethod
    def _provider_options(request: GenerationRequest) -> Dict[str, Any]:
        options = dict(request.options or {})
        if request.input_urls:
            options["input_urls"] = list(request.input_urls)
        return options

    @staticmethod
    def _failure(provider: Provider, model: str, error: str) -> SyncResult:
        return SyncResult(
            success=False,
            duration_ms=0,
            cost_units=0,
            provider_used=provider,
            model_used=model,
            error=error
        )

    # =========================================================================
    # Asynchronous path
    # =========================================================================

    async def generate_async(self, request: GenerationRequest) -> AsyncSubmission:
        """Record a pending job, hand it to the runner and return immediately."""
        entry = routing.resolve(request.task)
        job = await self.job_store.create(new_job(request, provider_used=entry.primary))

        logger.info("job_submitted", job_id=job.id, task=request.task.value)
        self.runner.submit(job.id, lambda: self._process_job(job.id, request))

        return AsyncSubmission(
            job_id=job.id,
            status=JobStatus.PENDING,
            task=request.task,
            poll_url=POLL_URL_TEMPLATE.format(job_id=job.id)
        )

    async def _process_job(self, job_id: str, request: GenerationRequest):
        task = request.task.value

        with LogContext(job_id=job_id, task=task):
            try:
                await self.job_store.update(job_id, JobUpdate(status=JobStatus.PROCESSING))
                record_job_started()

                result = await self.generate_sync(request)

                if result.success:
                    await self.job_store.update(
                        job_id,
                        JobUpdate(
                            status=JobStatus.COMPLETED,
                            provider_used=result.provider_used,
                            result=JobResult.from_sync_result(result)
                        )
                    )
                    record_job_completion(JobStatus.COMPLETED.value, task)
                    logger.info("job_completed", provider=result.provider_used.value)
                else:
                    await self.job_store.update(
                        job_id,
                        JobUpdate(status=JobStatus.FAILED, error=result.error)
                    )
                    record_job_completion(JobStatus.FAILED.value, task)
                    logger.warning("job_failed", error=result.error)

            except Exception as e:
                logger.error("job_processing_error", error=_error_message(e), error_type=type(e).__name__)
                await self._fail_job(job_id, _error_message(e))

    async def _fail_job(self, job_id: str, error: str):
        """Move a job to failed unless it already reached a terminal state."""
        job = await self.job_store.get(job_id)
        if job is None or job.status.is_terminal:
            logger.warning("job_fail_skipped", job_id=job_id, error=error)
            return

        try:
            await self.job_store.update(job_id, JobUpdate(status=JobStatus.FAILED, error=error))
        except (JobStateError, JobNotFoundError) as e:
            logger.warning("job_fail_skipped", job_id=job_id, error=e.message)
            return

        record_job_completion(
            JobStatus.FAILED.value,
            job.task.value,
            was_active=job.status == JobStatus.PROCESSING
        )

    async def _on_job_timeout(self, job_id: str, timeout_seconds: float):
        await self._fail_job(job_id, f"Generation timed out after {timeout_seconds:g}s")

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_job_status(self, job_id: str) -> Optional[JobStatusView]:
        """Projection of a job, or None if the id is unknown."""
        job = await self.job_store.get(job_id)
        if job is None:
            return None
        return JobStatusView.from_job(job)

    async def list_jobs(self, limit: int = 20, offset: int = 0) -> List[JobStatusView]:
        jobs = await self.job_store.list(limit=limit, offset=offset)
        return [JobStatusView.from_job(job) for job in jobs]

    async def count_jobs(self) -> Dict[JobStatus, int]:
        return await self.job_store.count_by_status()

    async def shutdown(self):
        await self.runner.shutdown()


# =============================================================================
# Process default
# =============================================================================

_ai_service: Optional[AIService] = None


def build_job_store() -> JobStore:
    """Job store selected by JOB_STORE_BACKEND."""
    if settings.JOB_STORE_BACKEND == "database":
        from src.core.database import async_session_maker
        from src.modules.generation.repository import SqlJobStore
        return SqlJobStore(async_session_maker)
    return InMemoryJobStore()


def get_ai_service() -> AIService:
    """Get the process-wide service, building it from settings on first use."""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService(job_store=build_job_store(), storage=get_storage())
    return _ai_service


def set_ai_service(service: AIService):
    """Substitute the process-wide service."""
    global _ai_service
    _ai_service = service
