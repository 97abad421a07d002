"""
Task Routing

Maps each task to its primary provider, model and optional fallback.

    remove-bg, upscale, polish, try-on, object-removal: Gemini -> z.ai
    scene-gen:                                          z.ai -> Gemini
    relight, text-removal:                              Gemini only
"""

from typing import Dict, Optional, Union

from src.core.exceptions import RoutingNotFoundError
from src.engines.generation.schemas import Task, Provider, RoutingEntry

GEMINI_IMAGE_MODEL = "gemini-2.5-flash-preview-05-20"
ZAI_IMAGE_MODEL = "glm-image"


def _entry(task: Task, primary: Provider, model: str, fallback: Optional[Provider]) -> RoutingEntry:
    return RoutingEntry(task=task, primary=primary, model=model, fallback=fallback)


ROUTING_TABLE: Dict[Task, RoutingEntry] = {
    Task.REMOVE_BG: _entry(Task.REMOVE_BG, Provider.GEMINI, GEMINI_IMAGE_MODEL, Provider.ZAI),
    Task.UPSCALE: _entry(Task.UPSCALE, Provider.GEMINI, GEMINI_IMAGE_MODEL, Provider.ZAI),
    Task.POLISH: _entry(Task.POLISH, Provider.GEMINI, GEMINI_IMAGE_MODEL, Provider.ZAI),
    # z.ai output is not an acceptable substitute for relighting
    Task.RELIGHT: _entry(Task.RELIGHT, Provider.GEMINI, GEMINI_IMAGE_MODEL, None),
    Task.SCENE_GEN: _entry(Task.SCENE_GEN, Provider.ZAI, ZAI_IMAGE_MODEL, Provider.GEMINI),
    Task.TRY_ON: _entry(Task.TRY_ON, Provider.GEMINI, GEMINI_IMAGE_MODEL, Provider.ZAI),
    Task.OBJECT_REMOVAL: _entry(Task.OBJECT_REMOVAL, Provider.GEMINI, GEMINI_IMAGE_MODEL, Provider.ZAI),
    Task.TEXT_REMOVAL: _entry(Task.TEXT_REMOVAL, Provider.GEMINI, GEMINI_IMAGE_MODEL, None),
}

# Fallback attempts always use the provider's default model, not the routed one
FALLBACK_DEFAULT_MODELS: Dict[Provider, str] = {
    Provider.GEMINI: GEMINI_IMAGE_MODEL,
    Provider.ZAI: ZAI_IMAGE_MODEL,
}


def _coerce_task(task: Union[Task, str]) -> Task:
    try:
        return Task(task)
    except ValueError:
        raise RoutingNotFoundError(str(task))


def resolve(task: Union[Task, str]) -> RoutingEntry:
    """
    Get the routing entry for a task.

    Raises:
        RoutingNotFoundError: If the task has no entry
    """
    entry = ROUTING_TABLE.get(_coerce_task(task))
    if entry is None:
        raise RoutingNotFoundError(str(task))
    return entry


def get_fallback_provider(task: Union[Task, str]) -> Optional[Provider]:
    """Get the fallback provider for a task, or None if it has none."""
    return resolve(task).fallback


def has_fallback_provider(task: Union[Task, str]) -> bool:
    return resolve(task).fallback is not None


def get_fallback_model(provider: Provider) -> str:
    """Default model used when ``provider`` serves as a fallback."""
    return FALLBACK_DEFAULT_MODELS.get(provider, GEMINI_IMAGE_MODEL)
