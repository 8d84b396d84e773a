"""
Configuration management for the grading engine.

All configuration comes from environment variables or .env file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GRADE_ENGINE_",
        case_sensitive=False
    )

    # AI Provider ("none" disables batch AI grading at the service level)
    ai_provider: str = "none"  # "gemini", "openai", "openrouter", "none"

    # API Keys
    gemini_api_key: str = ""
    openai_api_key: str = ""
    openrouter_api_key: str = ""

    # Models
    gemini_model: Optional[str] = None
    openai_model: Optional[str] = None
    openrouter_model: Optional[str] = None

    # AI grading policy
    ai_timeout_seconds: float = Field(default=30.0, gt=0)
    fallback_score_ratio: float = Field(default=0.7, gt=0, le=1)

    # Storage
    database_url: str = "sqlite:///data/grade_engine.db"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Validators
    @field_validator('ai_provider')
    @classmethod
    def validate_ai_provider(cls, v: str) -> str:
        """Validate AI provider is a supported value."""
        valid_providers = ['gemini', 'openai', 'openrouter', 'none']
        if v.lower() not in valid_providers:
            raise ValueError(f"ai_provider must be one of: {', '.join(valid_providers)}")
        return v.lower()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        levels = ['TRACE', 'DEBUG', 'INFO', 'SUCCESS', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in levels:
            raise ValueError(f"log_level must be one of: {', '.join(levels)}")
        return v.upper()

    @model_validator(mode='after')
    def validate_api_keys(self):
        """Ensure required API key is set for the configured provider."""
        provider = self.ai_provider
        if provider == "none":
            return self
        api_key = getattr(self, f"{provider}_api_key", "")
        if not api_key:
            raise ValueError(f"GRADE_ENGINE_{provider.upper()}_API_KEY required when provider={provider}")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reload_settings() -> Settings:
    """Reload settings from environment."""
    get_settings.cache_clear()
    return get_settings()
