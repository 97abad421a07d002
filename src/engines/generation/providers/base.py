"""
Provider Capability

Common interface and helpers shared by the image providers.
"""

import time
from abc import ABC, abstractmethod
from typing import Dict, Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from src.core.exceptions import ProviderError
from src.engines.generation.schemas import ProviderRequest, ProviderOutcome

OptionsT = TypeVar("OptionsT", bound="ProviderOptions")


class ProviderOptions(BaseModel):
    """Base for per-provider option models. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore")


class ImageGenerationProvider(ABC):
    """Interface every image provider implements."""

    name: str = ""

    @abstractmethod
    async def generate_image(self, request: ProviderRequest) -> ProviderOutcome:
        """
        Generate images for one request.

        Raises:
            ProviderError: On any failure (HTTP status, timeout, malformed
                response, no image returned)
        """
        pass

    def parse_options(self, options_model: Type[OptionsT], raw: Dict[str, Any]) -> OptionsT:
        """Narrow the opaque option bag to this provider's typed options."""
        try:
            return options_model.model_validate(raw or {})
        except PydanticValidationError as e:
            raise ProviderError(
                f"Invalid {self.name} options: {e.errors()[0]['msg']}",
                provider=self.name
            )

    @staticmethod
    def elapsed_ms(started: float) -> int:
        return max(0, int((time.monotonic() - started) * 1000))
