"""
Image providers and the factory that builds them.
"""

from typing import Optional, Union

import httpx

from src.core.config import Settings, settings as default_settings
from src.core.exceptions import ProviderConfigurationError
from src.engines.generation.providers.base import ImageGenerationProvider, ProviderOptions
from src.engines.generation.providers.gemini import GeminiProvider, GeminiOptions
from src.engines.generation.providers.zai import ZaiProvider, ZaiOptions
from src.engines.generation.schemas import Provider


def create_image_provider(
    provider: Union[Provider, str],
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> ImageGenerationProvider:
    """
    Build a fresh provider instance.

    Raises:
        ProviderConfigurationError: Unknown provider or missing credentials
    """
    cfg = settings or default_settings

    try:
        provider = Provider(provider)
    except ValueError:
        raise ProviderConfigurationError(f"Unknown AI provider: {provider}", provider=str(provider))

    if provider == Provider.GEMINI:
        return GeminiProvider(
            api_key=cfg.GEMINI_API_KEY,
            api_url=cfg.GEMINI_API_URL,
            default_model=cfg.GEMINI_MODEL,
            timeout=cfg.PROVIDER_TIMEOUT_SECONDS,
            transport=transport
        )
    return ZaiProvider(
        api_key=cfg.ZAI_API_KEY,
        base_url=cfg.ZAI_BASE_URL,
        timeout=cfg.PROVIDER_TIMEOUT_SECONDS,
        transport=transport
    )


__all__ = [
    "ImageGenerationProvider",
    "ProviderOptions",
    "GeminiProvider",
    "GeminiOptions",
    "ZaiProvider",
    "ZaiOptions",
    "create_image_provider",
]
