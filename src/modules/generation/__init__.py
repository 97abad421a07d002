"""
Generation Module

Database-backed job tracking for asynchronous generations.
"""

from src.modules.generation.models import GenerationJob
from src.modules.generation.repository import SqlJobStore

__all__ = ["GenerationJob", "SqlJobStore"]
