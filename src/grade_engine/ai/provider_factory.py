"""
Factory for creating AI provider instances.

Uses registry-based configuration for easy extensibility.
"""

from typing import List, Optional

from loguru import logger

from grade_engine.ai.base_provider import BaseProvider
from grade_engine.config.settings import Settings, get_settings
from grade_engine.config.providers import get_provider_config, PROVIDER_REGISTRY
from grade_engine.core.exceptions import ConfigurationError


def create_ai_provider(
    provider_type: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[Settings] = None
) -> Optional[BaseProvider]:
    """
    Create an AI provider instance.

    Args:
        provider_type: Provider name (default: from settings)
        model: Override model name
        settings: Settings to read keys from (default: cached settings)

    Returns:
        Provider instance, or None when AI grading is switched off ("none")

    Raises:
        ConfigurationError: Unknown provider, or missing key/model
    """
    settings = settings or get_settings()
    provider_type = (provider_type or settings.ai_provider).lower()

    if provider_type == "none":
        logger.info("No AI provider configured; batch grading will use fallback scores")
        return None

    if provider_type not in PROVIDER_REGISTRY:
        raise ConfigurationError(f"Unknown provider: {provider_type}. Available: {list(PROVIDER_REGISTRY.keys())}")

    config = get_provider_config(provider_type, settings)

    if model:
        config.model = model

    if not config.api_key:
        raise ConfigurationError(f"API key required for {provider_type}. Set GRADE_ENGINE_{provider_type.upper()}_API_KEY")

    if not config.model:
        raise ConfigurationError(f"Model required for {provider_type}. Set GRADE_ENGINE_{provider_type.upper()}_MODEL")

    # Gemini uses native client
    if provider_type == "gemini":
        from grade_engine.ai.gemini_provider import GeminiProvider
        return GeminiProvider(
            api_key=config.api_key,
            model=config.model,
            call_timeout=settings.ai_timeout_seconds,
        )

    # All other providers use OpenAI-compatible API
    from grade_engine.ai.openai_provider import OpenAIProvider
    return OpenAIProvider(
        api_key=config.api_key,
        base_url=config.base_url,
        model=config.model,
        name=f"{provider_type}/{config.model}",
        extra_headers=config.extra_headers,
        call_timeout=settings.ai_timeout_seconds,
    )


def get_available_providers(settings: Optional[Settings] = None) -> List[str]:
    """Get providers with configured API keys."""
    settings = settings or get_settings()
    return [
        name for name in PROVIDER_REGISTRY
        if get_provider_config(name, settings).api_key
    ]
