"""
Task Endpoints

Task-specific entry points. Each one builds a GenerationRequest and queues
it; all return 202 with a job id to poll.

POST /api/v1/tasks/remove-bg  - Background removal
POST /api/v1/tasks/scene-gen  - Scene generation from a product image
POST /api/v1/tasks/try-on     - Virtual try-on (person + garment)
"""

from typing import Optional, Dict, Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.dependencies import get_service
from src.core.config import settings
from src.core.exceptions import ValidationError
from src.engines.generation.prompts import compose_prompt
from src.engines.generation.schemas import Task, GenerationRequest, AsyncSubmission
from src.engines.generation.service import AIService

router = APIRouter()


# =============================================================================
# Request Schemas
# =============================================================================

class RemoveBgRequest(BaseModel):
    image: str = Field(..., min_length=1, description="Image URL or data reference")
    project_id: Optional[str] = None
    options: Optional[Dict[str, Any]] = None


class SceneGenRequest(BaseModel):
    product_image: str = Field(..., min_length=1)
    scene_description: Optional[str] = None
    scene: Optional[str] = Field(default=None, description="Scene preset key")
    style: Optional[str] = Field(default=None, description="Style preset key")
    enhancement: Optional[str] = Field(default=None, description="Enhancement preset key")
    project_id: Optional[str] = None
    options: Optional[Dict[str, Any]] = None


class TryOnRequest(BaseModel):
    person_image: str = Field(..., min_length=1)
    garment_image: str = Field(..., min_length=1)
    project_id: Optional[str] = None
    options: Optional[Dict[str, Any]] = None


def _options(options: Optional[Dict[str, Any]], project_id: Optional[str]) -> Optional[Dict[str, Any]]:
    merged = dict(options or {})
    if project_id:
        merged["project_id"] = project_id
    return merged or None


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/remove-bg", response_model=AsyncSubmission, status_code=status.HTTP_202_ACCEPTED)
async def remove_background(
    body: RemoveBgRequest,
    service: AIService = Depends(get_service)
):
    request = GenerationRequest(
        task=Task.REMOVE_BG,
        input_url=body.image,
        options=_options(body.options, body.project_id)
    )
    return await service.generate_async(request)


@router.post("/scene-gen", response_model=AsyncSubmission, status_code=status.HTTP_202_ACCEPTED)
async def scene_generation(
    body: SceneGenRequest,
    service: AIService = Depends(get_service)
):
    """
    Presets and free text are combined into one prompt; with neither, the
    default scene instruction is used.
    """
    prompt = compose_prompt(
        scene=body.scene,
        enhancement=body.enhancement,
        style=body.style,
        custom=body.scene_description
    )
    if len(prompt) > settings.MAX_PROMPT_LENGTH:
        raise ValidationError(
            f"Prompt exceeds {settings.MAX_PROMPT_LENGTH} characters",
            task=Task.SCENE_GEN.value,
            details={"length": len(prompt)}
        )
    request = GenerationRequest(
        task=Task.SCENE_GEN,
        input_url=body.product_image,
        prompt=prompt or None,
        options=_options(body.options, body.project_id)
    )
    return await service.generate_async(request)


@router.post("/try-on", response_model=AsyncSubmission, status_code=status.HTTP_202_ACCEPTED)
async def virtual_try_on(
    body: TryOnRequest,
    service: AIService = Depends(get_service)
):
    request = GenerationRequest(
        task=Task.TRY_ON,
        input_urls=[body.person_image, body.garment_image],
        options=_options(body.options, body.project_id)
    )
    return await service.generate_async(request)
