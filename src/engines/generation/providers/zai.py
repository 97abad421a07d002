"""
z.ai Provider

Text-to-image only. Editing tasks are approximated by describing the
desired result in the prompt.
"""

import time
from typing import Optional, Dict, Any, Literal

import httpx
from pydantic import Field

from src.core.exceptions import ProviderError, ProviderConfigurationError
from src.core.logging import get_logger
from src.engines.generation.providers.base import ImageGenerationProvider, ProviderOptions
from src.engines.generation.schemas import (
    Task,
    ProviderRequest,
    ProviderOutcome,
    GeneratedImage,
    GenerationUsage,
)

logger = get_logger(__name__)

TASK_PROMPTS: Dict[Task, str] = {
    Task.REMOVE_BG: (
        "Create a product image with a clean transparent or white background. "
        "The main subject should be clearly visible with no distracting background elements."
    ),
    Task.UPSCALE: (
        "Generate a high-resolution, detailed image with sharp focus and crisp details. "
        "Professional quality, 4K resolution appearance."
    ),
    Task.POLISH: (
        "Create a polished, professional image with enhanced colors, "
        "perfect lighting, and high-end photography quality."
    ),
    Task.RELIGHT: (
        "Generate an image with professional studio lighting, "
        "soft shadows, and perfect illumination of the subject."
    ),
    Task.TRY_ON: (
        "Create a realistic lifestyle product image showing the item in use "
        "in an appropriate real-world setting."
    ),
    Task.OBJECT_REMOVAL: (
        "Generate a clean image with only the essential elements, "
        "removing any distracting or unwanted objects."
    ),
    Task.TEXT_REMOVAL: (
        "Create a clean image with no text, labels, or typography, "
        "showing only the visual content."
    ),
}

SCENE_FALLBACK_PROMPT = "Generate a high-quality product scene with professional photography styling."

TASK_COSTS: Dict[Task, int] = {
    Task.REMOVE_BG: 3,
    Task.UPSCALE: 4,
    Task.POLISH: 4,
    Task.RELIGHT: 5,
    Task.SCENE_GEN: 6,
    Task.TRY_ON: 6,
    Task.OBJECT_REMOVAL: 5,
    Task.TEXT_REMOVAL: 4,
}
DEFAULT_COST = 5


class ZaiOptions(ProviderOptions):
    size: str = Field(default="1024x1024", pattern=r"^\d+x\d+$")
    quality: Literal["standard", "hd"] = "standard"
    seed: Optional[int] = None


class ZaiProvider(ImageGenerationProvider):
    """z.ai image generation API."""

    name = "zai"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.z.ai/api/paas/v4",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not api_key:
            raise ProviderConfigurationError(
                "ZAI_API_KEY environment variable is required",
                provider=self.name
            )
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def build_prompt(
        task: Task,
        user_prompt: Optional[str] = None,
        input_url: Optional[str] = None
    ) -> str:
        if task == Task.SCENE_GEN:
            return user_prompt or SCENE_FALLBACK_PROMPT

        prompt = TASK_PROMPTS.get(task) or user_prompt or "Generate a high-quality image."
        if user_prompt:
            prompt = f"{prompt} User request: {user_prompt}"
        if input_url:
            prompt = f"{prompt} Based on reference image: {input_url}"
        return prompt

    def _payload(self, request: ProviderRequest, options: ZaiOptions) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": request.model,
            "prompt": self.build_prompt(request.task, request.prompt, request.input_url),
            "n": request.n,
            "size": options.size,
            "quality": options.quality,
            "response_format": "url",
        }
        if options.seed is not None:
            payload["seed"] = options.seed
        return payload

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error") or {}
            message = error.get("message") if isinstance(error, dict) else None
        except ValueError:
            message = None
        return message or response.reason_phrase or str(response.status_code)

    async def generate_image(self, request: ProviderRequest) -> ProviderOutcome:
        started = time.monotonic()
        options = self.parse_options(ZaiOptions, request.provider_options)
        payload = self._payload(request, options)

        logger.debug("zai_request", model=request.model, task=request.task.value, size=options.size)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/images/generations",
                    json=payload,
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {self.api_key}"
                    }
                )
        except httpx.TimeoutException:
            raise ProviderError("z.ai API timeout", provider=self.name)
        except httpx.HTTPError as e:
            raise ProviderError(f"z.ai API call failed: {e}", provider=self.name)

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderError(
                f"z.ai API error: {self._error_message(response)}",
                provider=self.name,
                http_status=response.status_code
            )

        try:
            body = response.json()
        except ValueError:
            raise ProviderError("z.ai API returned malformed JSON", provider=self.name)

        data = body.get("data") or []
        if not data or not data[0].get("url"):
            raise ProviderError("z.ai API returned no image URL", provider=self.name)

        usage = None
        if body.get("usage"):
            usage = GenerationUsage(
                prompt_tokens=body["usage"].get("prompt_tokens"),
                completion_tokens=body["usage"].get("completion_tokens"),
                total_tokens=body["usage"].get("total_tokens")
            )

        # Returned URLs expire; the orchestrator persists them
        return ProviderOutcome(
            images=[GeneratedImage(url=item["url"]) for item in data if item.get("url")],
            duration_ms=self.elapsed_ms(started),
            cost_units=TASK_COSTS.get(request.task, DEFAULT_COST),
            usage=usage
        )
