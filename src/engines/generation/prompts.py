"""
Prompt Catalogue

Default per-task instructions used when a request carries no prompt, and
preset fragments the editor offers for scene generation.
"""

from typing import Dict, Optional

from src.core.exceptions import ValidationError
from src.engines.generation.schemas import Task, GenerationRequest

GENERIC_PHOTOGRAPHY_PROMPT = (
    "Professional product photography with studio lighting, clean composition, high quality."
)

DEFAULT_TASK_PROMPTS: Dict[Task, str] = {
    Task.REMOVE_BG: (
        "Remove the background from this product image, keeping only the product on a "
        "transparent or pure white background. Professional product photography style."
    ),
    # Scene generation is prompt-driven, so it only gets the generic instruction
    Task.SCENE_GEN: GENERIC_PHOTOGRAPHY_PROMPT,
    Task.TRY_ON: (
        "Fashion model wearing the garment naturally, professional fashion photography, "
        "appropriate lighting and pose."
    ),
    Task.UPSCALE: "Enhance and upscale this image while preserving details and improving quality.",
    Task.POLISH: "Polish and enhance this image with improved lighting, clarity, and professional quality.",
    Task.RELIGHT: "Adjust lighting on this image for professional product photography look.",
    Task.OBJECT_REMOVAL: "Remove unwanted objects from this image seamlessly.",
    Task.TEXT_REMOVAL: "Remove all text from this image while preserving the background naturally.",
}

SCENE_PROMPTS: Dict[str, str] = {
    "studio-white": "Professional product photography on pure white background, soft studio lighting, clean and minimal",
    "studio-gradient": "Professional product photography on subtle gradient background, soft shadows, commercial quality",
    "lifestyle-kitchen": "Product placed in modern kitchen setting, natural lighting, lifestyle photography",
    "lifestyle-bedroom": "Product in cozy bedroom interior, soft natural light, lifestyle aesthetic",
    "lifestyle-office": "Product on modern office desk, professional setting, clean workspace",
    "lifestyle-outdoor": "Product in outdoor natural setting, golden hour lighting, organic feel",
    "minimal-solid": "Product on solid color background, minimal shadows, clean commercial style",
    "dark-mode": "Product on dark background, dramatic lighting, premium feel",
}

ENHANCEMENT_PROMPTS: Dict[str, str] = {
    "polish": "Enhance image quality, reduce noise, sharpen details, maintain natural look",
    "relight_soft": "Soft diffused lighting, minimal shadows, even illumination",
    "relight_bright": "Bright studio lighting, high key, clean and fresh",
    "relight_dramatic": "Dramatic side lighting, deep shadows, moody atmosphere",
    "relight_natural": "Natural window light, soft shadows, realistic indoor lighting",
}

STYLE_PROMPTS: Dict[str, str] = {
    "bright_airy": "Bright and airy aesthetic, high exposure, soft tones, minimal contrast",
    "dark_moody": "Dark and moody, low key lighting, rich shadows, cinematic",
    "warm_cozy": "Warm color temperature, cozy atmosphere, golden tones",
    "cool_professional": "Cool color temperature, professional clean look, blue undertones",
}


def build_task_prompt(request: GenerationRequest) -> str:
    """Use the request prompt verbatim, otherwise the task's default instruction."""
    if request.prompt:
        return request.prompt
    return DEFAULT_TASK_PROMPTS.get(request.task, "Process this image with professional quality results.")


def _lookup(catalogue: Dict[str, str], key: str, kind: str) -> str:
    if key not in catalogue:
        raise ValidationError(
            f"Unknown {kind} preset: {key}",
            details={"allowed": sorted(catalogue)}
        )
    return catalogue[key]


def compose_prompt(
    scene: Optional[str] = None,
    enhancement: Optional[str] = None,
    style: Optional[str] = None,
    custom: Optional[str] = None
) -> str:
    """
    Join the selected preset fragments and free text into one prompt.

    Returns an empty string when nothing was selected.

    Raises:
        ValidationError: If a preset key is unknown
    """
    parts = []
    if scene:
        parts.append(_lookup(SCENE_PROMPTS, scene, "scene"))
    if enhancement:
        parts.append(_lookup(ENHANCEMENT_PROMPTS, enhancement, "enhancement"))
    if style:
        parts.append(_lookup(STYLE_PROMPTS, style, "style"))
    if custom:
        parts.append(custom)
    return ". ".join(parts)
