"""
Application Configuration

Centralized settings management using Pydantic Settings.
Supports environment variables and .env files.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # ==========================================================================
    # App Settings
    # ==========================================================================
    APP_NAME: str = "Product Image Studio - Generation Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, PROD
    DEBUG: bool = True

    # ==========================================================================
    # Providers
    # ==========================================================================
    # Gemini (image-aware provider)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash-preview-05-20"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    # z.ai (text-to-image provider)
    ZAI_API_KEY: Optional[str] = None
    ZAI_BASE_URL: str = "https://api.z.ai/api/paas/v4"

    # Per-request HTTP timeout for provider calls and artifact downloads
    PROVIDER_TIMEOUT_SECONDS: float = 60.0

    # ==========================================================================
    # Artifact Storage
    # ==========================================================================
    STORAGE_PATH: str = "./data/generated"
    PUBLIC_STORAGE_URL: str = "/generated"

    # ==========================================================================
    # Job Tracking
    # ==========================================================================
    JOB_STORE_BACKEND: str = "memory"  # memory, database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/studio.db"

    # Deadline for one background generation; 0 disables it
    JOB_TIMEOUT_SECONDS: float = 300.0

    # ==========================================================================
    # Request Limits
    # ==========================================================================
    MAX_PROMPT_LENGTH: int = 1000

    # ==========================================================================
    # Logging Settings
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT_JSON: bool = True  # JSON for production, console for development

    # ==========================================================================
    # CORS Settings
    # ==========================================================================
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()
