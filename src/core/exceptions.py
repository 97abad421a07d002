"""
Global Exception Handling

Domain exceptions for the generation service and structured JSON error
responses for the HTTP layer.
"""

import traceback
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.logging import get_logger, job_id_var, task_var

logger = get_logger(__name__)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# =============================================================================
# Custom Exceptions
# =============================================================================

class StudioBaseException(Exception):
    """Base exception for the generation service."""

    def __init__(
        self,
        message: str,
        code: int = 500,
        job_id: Optional[str] = None,
        task: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.job_id = job_id or job_id_var.get()
        self.task = task or task_var.get()
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(StudioBaseException):
    """Raised when input validation fails."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=400, **kwargs)


class RoutingNotFoundError(StudioBaseException):
    """Raised when a task has no routing entry. Indicates a configuration bug."""

    def __init__(self, task: str, **kwargs):
        super().__init__(
            f"No provider configuration found for task: {task}",
            code=500,
            task=task,
            **kwargs
        )


class ProviderError(StudioBaseException):
    """Raised when an image provider call fails (auth, rate limit, policy, network, bad response)."""

    def __init__(self, message: str, provider: str, http_status: Optional[int] = None, **kwargs):
        super().__init__(message, code=502, **kwargs)
        self.provider = provider
        self.details["provider"] = provider
        self.details["http_status"] = http_status


class ProviderConfigurationError(StudioBaseException):
    """Raised when a provider cannot be constructed (unknown name, missing credentials)."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        super().__init__(message, code=500, **kwargs)
        self.details["provider"] = provider


class PersistenceError(StudioBaseException):
    """Raised when a generated artifact cannot be stored."""

    def __init__(self, message: str, source: Optional[str] = None, **kwargs):
        super().__init__(message, code=500, **kwargs)
        if source:
            self.details["source"] = source[:120]


class JobNotFoundError(StudioBaseException):
    """Raised when polling an unknown job id."""

    def __init__(self, job_id: str, **kwargs):
        super().__init__(f"Job not found: {job_id}", code=404, job_id=job_id, **kwargs)


class JobStateError(StudioBaseException):
    """Raised when a job update would violate the job lifecycle."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code=409, **kwargs)


# =============================================================================
# Exception Handlers
# =============================================================================

def register_exception_handlers(app: FastAPI):
    """Register custom exception handlers with FastAPI app."""

    @app.exception_handler(StudioBaseException)
    async def studio_exception_handler(request: Request, exc: StudioBaseException):
        log = logger.warning if exc.code < 500 else logger.error
        log(
            "studio_exception",
            error=exc.message,
            code=exc.code,
            error_type=type(exc).__name__,
            details=exc.details,
            path=str(request.url.path)
        )

        return JSONResponse(
            status_code=exc.code,
            content={
                "error": exc.message,
                "job_id": exc.job_id,
                "task": exc.task,
                "code": exc.code,
                "details": exc.details,
                "timestamp": _timestamp()
            }
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
            traceback=traceback.format_exc()
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "job_id": job_id_var.get(),
                "code": 500,
                "timestamp": _timestamp()
            }
        )
