"""
Provider registry and configuration.

All provider-specific settings in one place.
No hardcoded values in provider classes.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Any


@dataclass
class ProviderConfig:
    """Configuration for a single AI provider."""
    api_key: str = ""
    base_url: Optional[str] = None
    model: Optional[str] = None
    extra_headers: Dict[str, str] = field(default_factory=dict)


# Provider metadata - defines how to create each provider
PROVIDER_REGISTRY: Dict[str, Dict[str, Any]] = {
    "gemini": {
        "api_key_attr": "gemini_api_key",
        "model_attr": "gemini_model",
        "default_model": "gemini-2.5-flash",
        "requires_native": True,  # Uses google-genai, not OpenAI-compatible
    },
    "openai": {
        "api_key_attr": "openai_api_key",
        "model_attr": "openai_model",
        "default_model": "gpt-4o-mini",
        "base_url": None,  # Default OpenAI API
    },
    "openrouter": {
        "api_key_attr": "openrouter_api_key",
        "model_attr": "openrouter_model",
        "default_model": None,
        "base_url": "https://openrouter.ai/api/v1",
        "extra_headers": {
            "X-Title": "grade-engine"
        }
    },
}


def get_provider_config(provider_name: str, settings) -> ProviderConfig:
    """
    Build ProviderConfig from settings for a given provider.

    Args:
        provider_name: Name of provider (e.g., "gemini", "openai")
        settings: Settings instance

    Returns:
        ProviderConfig with all settings populated
    """
    registry = PROVIDER_REGISTRY.get(provider_name.lower())
    if not registry:
        raise ValueError(f"Unknown provider: {provider_name}. Available: {list(PROVIDER_REGISTRY.keys())}")

    return ProviderConfig(
        api_key=getattr(settings, registry["api_key_attr"], "") or "",
        base_url=registry.get("base_url"),
        model=getattr(settings, registry["model_attr"], None) or registry.get("default_model"),
        extra_headers=dict(registry.get("extra_headers", {})),
    )
