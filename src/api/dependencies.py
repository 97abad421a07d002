"""
FastAPI Dependencies

Provides dependency injection for:
- Generation service (process default, substitutable with set_ai_service)
"""

from src.engines.generation.service import AIService, get_ai_service


def get_service() -> AIService:
    """Generation service for request handlers."""
    return get_ai_service()
