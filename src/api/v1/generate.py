"""
Generate Endpoint

POST /api/v1/generate          - Run a generation and wait for the result
POST /api/v1/generate/async    - Queue a generation and return a job id for polling
GET  /api/v1/generate/presets  - Prompt preset catalogues
GET  /api/v1/generate/routing  - Provider routing per task
"""

from typing import List, Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from src.api.dependencies import get_service
from src.core.logging import get_logger
from src.engines.generation.prompts import (
    SCENE_PROMPTS,
    ENHANCEMENT_PROMPTS,
    STYLE_PROMPTS,
    DEFAULT_TASK_PROMPTS,
)
from src.engines.generation.routing import ROUTING_TABLE
from src.engines.generation.schemas import (
    GenerationRequest,
    SyncResult,
    AsyncSubmission,
    RoutingEntry,
)
from src.engines.generation.service import AIService

logger = get_logger(__name__)
router = APIRouter()


class PresetCatalogue(BaseModel):
    scenes: Dict[str, str]
    enhancements: Dict[str, str]
    styles: Dict[str, str]
    task_defaults: Dict[str, str]


@router.post("", response_model=SyncResult)
async def generate(
    request: GenerationRequest,
    service: AIService = Depends(get_service)
):
    """
    Synchronous generation.

    Provider and persistence failures come back as ``success=false`` with
    an ``error`` message, not as an HTTP error.
    """
    result = await service.generate_sync(request)

    logger.info(
        "generate_sync_request",
        task=request.task.value,
        success=result.success,
        provider=result.provider_used.value
    )
    return result


@router.post("/async", response_model=AsyncSubmission, status_code=status.HTTP_202_ACCEPTED)
async def generate_async(
    request: GenerationRequest,
    service: AIService = Depends(get_service)
):
    """Queue a generation. Poll the returned ``poll_url`` for the outcome."""
    return await service.generate_async(request)


@router.get("/presets", response_model=PresetCatalogue)
async def presets():
    return PresetCatalogue(
        scenes=SCENE_PROMPTS,
        enhancements=ENHANCEMENT_PROMPTS,
        styles=STYLE_PROMPTS,
        task_defaults={task.value: prompt for task, prompt in DEFAULT_TASK_PROMPTS.items()}
    )


@router.get("/routing", response_model=List[RoutingEntry])
async def routing_table():
    return list(ROUTING_TABLE.values())
