"""
AI grading for free-text answers.

Supports multiple AI backends:
- OpenAI-compatible APIs (OpenAI, OpenRouter)
- Google Gemini

Usage:
    from grade_engine.ai import AIGradingClient, create_ai_provider

    client = AIGradingClient(create_ai_provider(), timeout=30)
    results = await client.grade_batch(context, items)
"""

from grade_engine.ai.base_provider import BaseProvider
from grade_engine.ai.batch_grader import (
    AIGradingClient,
    GradingContext,
    GradingItem,
    GradingResult,
)
from grade_engine.ai.provider_factory import create_ai_provider, get_available_providers

__all__ = [
    "BaseProvider",
    "AIGradingClient",
    "GradingContext",
    "GradingItem",
    "GradingResult",
    "create_ai_provider",
    "get_available_providers",
]
