"""
Gemini Provider

Image-aware provider: edits supplied images through the Gemini
``generateContent`` REST endpoint and returns the generated image inline.
"""

import re
import time
import base64
from typing import Optional, List, Dict, Any

import httpx
from pydantic import Field

from src.core.exceptions import ProviderError, ProviderConfigurationError
from src.core.logging import get_logger
from src.core.storage import is_data_url, is_remote_url
from src.engines.generation.providers.base import ImageGenerationProvider, ProviderOptions
from src.engines.generation.schemas import (
    Task,
    ProviderRequest,
    ProviderOutcome,
    GeneratedImage,
)

logger = get_logger(__name__)

DATA_URL_MIME_PATTERN = re.compile(r"^data:([^;,]+)[;,]")

TASK_PROMPTS: Dict[Task, str] = {
    Task.REMOVE_BG: "Remove the background from this image, keeping only the main subject.",
    Task.UPSCALE: "Enhance and upscale this image to higher resolution while preserving details.",
    Task.POLISH: "Improve the quality of this image, enhance colors, lighting, and overall appearance.",
    Task.RELIGHT: "Adjust the lighting in this image to create a more professional look.",
    Task.TRY_ON: "Place the product in this image into a realistic usage scenario.",
    Task.OBJECT_REMOVAL: "Remove unwanted objects from this image seamlessly.",
    Task.TEXT_REMOVAL: "Remove all text from this image while preserving the background.",
}

SCENE_FALLBACK_PROMPT = "Generate a high-quality product scene image."

# Cost units per task
TASK_COSTS: Dict[Task, int] = {
    Task.REMOVE_BG: 2,
    Task.UPSCALE: 3,
    Task.POLISH: 3,
    Task.RELIGHT: 4,
    Task.SCENE_GEN: 5,
    Task.TRY_ON: 5,
    Task.OBJECT_REMOVAL: 4,
    Task.TEXT_REMOVAL: 3,
}
DEFAULT_COST = 5


class GeminiOptions(ProviderOptions):
    seed: Optional[int] = None
    size: Optional[str] = Field(default=None, pattern=r"^\d+x\d+$")
    input_urls: Optional[List[str]] = None


class GeminiProvider(ImageGenerationProvider):
    """Gemini image generation over REST."""

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://generativelanguage.googleapis.com/v1beta",
        default_model: str = "gemini-2.5-flash-preview-05-20",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not api_key:
            raise ProviderConfigurationError(
                "GEMINI_API_KEY environment variable is required",
                provider=self.name
            )
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.default_model = default_model
        self.timeout = timeout
        self._transport = transport

    # =========================================================================
    # Prompt and payload
    # =========================================================================

    @staticmethod
    def build_prompt(task: Task, user_prompt: Optional[str] = None) -> str:
        if task == Task.SCENE_GEN:
            return user_prompt or SCENE_FALLBACK_PROMPT

        base_prompt = TASK_PROMPTS.get(task) or user_prompt or "Process this image."
        if user_prompt:
            return f"{base_prompt} Additional instructions: {user_prompt}"
        return base_prompt

    @staticmethod
    def _split_data_url(data_url: str) -> Dict[str, str]:
        match = DATA_URL_MIME_PATTERN.match(data_url)
        mime_type = match.group(1) if match else "image/png"
        return {"mime_type": mime_type, "data": data_url.split(",", 1)[-1]}

    async def _inline_image(self, client: httpx.AsyncClient, url: str) -> Dict[str, str]:
        """Turn an input reference into an inline_data part, fetching remote URLs."""
        if is_data_url(url):
            return self._split_data_url(url)
        if not is_remote_url(url):
            raise ProviderError(
                "Failed to process input URL: unsupported URL scheme",
                provider=self.name
            )

        try:
            response = await client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise ProviderError(f"Failed to process input URL: {e}", provider=self.name)

        if response.status_code < 200 or response.status_code >= 300:
            raise ProviderError(
                f"Failed to process input URL: Failed to fetch image: "
                f"{response.status_code} {response.reason_phrase}",
                provider=self.name,
                http_status=response.status_code
            )

        content_type = response.headers.get("content-type", "image/png").split(";")[0].strip()
        return {
            "mime_type": content_type or "image/png",
            "data": base64.b64encode(response.content).decode("utf-8")
        }

    def _generation_config(self, options: GeminiOptions) -> Dict[str, Any]:
        config: Dict[str, Any] = {"responseModalities": ["IMAGE", "TEXT"]}
        if options.seed is not None:
            config["seed"] = options.seed
        return config

    # =========================================================================
    # Response
    # =========================================================================

    def _extract_image(self, body: Dict[str, Any]) -> GeneratedImage:
        candidates = body.get("candidates") or []
        if not candidates:
            raise ProviderError("No response from Gemini", provider=self.name)

        parts = (candidates[0].get("content") or {}).get("parts")
        if not parts:
            raise ProviderError("No content in Gemini response", provider=self.name)

        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                return GeneratedImage(
                    url=f"data:{mime_type};base64,{inline['data']}",
                    base64=inline["data"]
                )

        raise ProviderError("No image generated", provider=self.name)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            message = response.json().get("error", {}).get("message")
        except ValueError:
            message = None
        return message or response.reason_phrase or str(response.status_code)

    # =========================================================================
    # Capability
    # =========================================================================

    async def generate_image(self, request: ProviderRequest) -> ProviderOutcome:
        started = time.monotonic()
        options = self.parse_options(GeminiOptions, request.provider_options)
        model = request.model or self.default_model

        input_refs = list(options.input_urls or [])
        if not input_refs and request.input_url:
            input_refs = [request.input_url]

        logger.debug(
            "gemini_request",
            model=model,
            task=request.task.value,
            input_images=len(input_refs)
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                parts: List[Dict[str, Any]] = [{"text": self.build_prompt(request.task, request.prompt)}]
                for ref in input_refs:
                    parts.append({"inline_data": await self._inline_image(client, ref)})

                payload = {
                    "contents": [{"role": "user", "parts": parts}],
                    "generationConfig": self._generation_config(options)
                }

                response = await client.post(
                    f"{self.api_url}/models/{model}:generateContent",
                    json=payload,
                    headers={
                        "Content-Type": "application/json",
                        "x-goog-api-key": self.api_key
                    }
                )
        except httpx.TimeoutException:
            raise ProviderError("Gemini API timeout", provider=self.name)
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini API call failed: {e}", provider=self.name)

        if response.status_code != 200:
            raise ProviderError(
                f"Gemini API error: {self._error_message(response)}",
                provider=self.name,
                http_status=response.status_code
            )

        try:
            body = response.json()
        except ValueError:
            raise ProviderError("Gemini API returned malformed JSON", provider=self.name)

        image = self._extract_image(body)

        return ProviderOutcome(
            images=[image],
            duration_ms=self.elapsed_ms(started),
            cost_units=TASK_COSTS.get(request.task, DEFAULT_COST)
        )
