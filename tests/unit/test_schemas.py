import pytest
from pydantic import ValidationError

from src.core.config import settings
from src.engines.generation.schemas import Task, GenerationRequest


def test_prompt_limit_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "MAX_PROMPT_LENGTH", 10)

    assert GenerationRequest(task=Task.POLISH, prompt="x" * 10).prompt == "x" * 10
    with pytest.raises(ValidationError) as exc_info:
        GenerationRequest(task=Task.POLISH, prompt="x" * 11)
    assert "Prompt exceeds 10 characters" in str(exc_info.value)


def test_raised_prompt_limit_accepts_long_prompts(monkeypatch):
    monkeypatch.setattr(settings, "MAX_PROMPT_LENGTH", 2000)
    request = GenerationRequest(task=Task.SCENE_GEN, prompt="x" * 1500)
    assert len(request.prompt) == 1500


def test_both_inputs_allowed_only_for_try_on():
    GenerationRequest(task=Task.TRY_ON, input_url="https://a/1.png", input_urls=["https://a/2.png"])
    with pytest.raises(ValidationError):
        GenerationRequest(task=Task.POLISH, input_url="https://a/1.png", input_urls=["https://a/2.png"])
