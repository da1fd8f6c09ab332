"""
Application Configuration Module

Centralizes all application settings using Pydantic Settings.
Environment variables are loaded from .env file automatically.

Usage:
    from config.settings import settings

    print(settings.OPENAI_MODEL)
    print(settings.REMOTE_NLP_ENABLED)
"""

from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Variable names are case-insensitive.
    """

    # ==========================================================================
    # Remote Language Understanding (OpenAI-compatible chat completions)
    # ==========================================================================
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for the remote language-understanding service"
    )
    OPENAI_BASE_URL: Optional[str] = Field(
        default=None,
        description="Override base URL (e.g. an OpenAI-compatible gateway)"
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o",
        description="Chat model used for extraction, intent and welcome messages"
    )
    REMOTE_NLP_ENABLED: bool = Field(
        default=True,
        description="Allow remote calls at all; when off only local heuristics run"
    )
    REMOTE_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Per-request timeout for remote calls"
    )

    # ==========================================================================
    # CORS Configuration
    # ==========================================================================
    CORS_ORIGINS: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    @property
    def cors_origins_list(self) -> list:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )
    JSON_LOGS: bool = Field(
        default=False,
        description="Emit structured JSON logs instead of colored console output"
    )
    APP_NAME: str = Field(
        default="FormEase",
        description="Application name for OpenAPI docs"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application version"
    )

    # ==========================================================================
    # Voice/Speech Configuration
    # ==========================================================================
    SPEECH_LANGUAGE: str = Field(
        default="en",
        description="Default recognition language code (en, hi, te)"
    )
    SPEECH_CAPTURE_ENABLED: bool = Field(
        default=True,
        description="Accept recognizer results for sessions; when off, listening answers 501"
    )
    ELEVENLABS_API_KEY: Optional[str] = Field(
        default=None,
        description="ElevenLabs API key for text-to-speech"
    )
    ELEVENLABS_VOICE_ID: str = Field(
        default="21m00Tcm4TlvDq8ikWAM",
        description="Default ElevenLabs voice ID (Rachel)"
    )
    ELEVENLABS_MODEL: str = Field(
        default="eleven_turbo_v2_5",
        description="ElevenLabs model for TTS"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Singleton instance for easy import
settings = get_settings()
