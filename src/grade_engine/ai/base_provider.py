"""
Base provider class for AI text-completion backends.

Provides shared functionality: SDK error translation, secret-safe call
logging, and the abstract text call every backend implements.
"""

import functools
import re
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger

from grade_engine.core.exceptions import (
    ProviderError,
    APIConnectionError,
    APITimeoutError,
    APIResponseError,
    ParsingError,
)


def _sanitize_for_logging(text: str) -> str:
    """
    Sanitize text for logging by removing potential API keys and secrets.

    Args:
        text: Text to sanitize

    Returns:
        Sanitized text with sensitive values masked
    """
    if not text:
        return text

    patterns = [
        (r'(sk-[a-zA-Z0-9_-]{20,})', 'sk-[REDACTED]'),
        (r'(api[_-]?key\s*[=:]\s*["\']?)([a-zA-Z0-9_-]{20,})', r'\1[REDACTED]'),
        (r'(Bearer\s+)([a-zA-Z0-9._-]{20,})', r'\1[REDACTED]'),
        (r'(AIza[a-zA-Z0-9_-]{35})', 'AIza[REDACTED]'),
    ]

    sanitized = text
    for pattern, replacement in patterns:
        sanitized = re.sub(pattern, replacement, sanitized)
    return sanitized


class APIErrorContext:
    """
    Context manager for consistent API error handling.

    Translates SDK exceptions into the ProviderError family.

    Usage:
        with APIErrorContext("batch grading", "openai/gpt-4o-mini"):
            response = client.call(...)
    """

    def __init__(self, operation: str, provider_name: str = "unknown"):
        self.operation = operation
        self.provider_name = provider_name

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            return False

        # Already translated
        if isinstance(exc_val, ProviderError):
            return False

        # Let cancellation and interpreter exits through untouched
        if not isinstance(exc_val, Exception):
            return False

        logger.error(f"{self.provider_name} API error during {self.operation}: {_sanitize_for_logging(str(exc_val))}")

        exc_name = exc_type.__name__

        if any(name in exc_name for name in ['Timeout', 'TimedOut', 'DeadlineExceeded']):
            raise APITimeoutError(
                f"Timeout during {self.operation}: {exc_val}"
            ) from exc_val

        if any(name in exc_name for name in ['Connection', 'Connect', 'Network']):
            raise APIConnectionError(
                f"Failed to connect during {self.operation}: {exc_val}"
            ) from exc_val

        if any(name in exc_name for name in ['JSON', 'Parse', 'Decode']):
            raise ParsingError(
                f"Failed to parse response during {self.operation}: {exc_val}"
            ) from exc_val

        if 'Rate' in exc_name or '429' in str(exc_val):
            raise APIResponseError(
                f"Rate limited during {self.operation}: {exc_val}"
            ) from exc_val

        raise ProviderError(
            f"API error during {self.operation}: {exc_val}"
        ) from exc_val


def stop_after_call_budget(retry_state) -> bool:
    """
    Tenacity stop condition: give up once the provider's call budget is spent.

    The budget is the provider's call_timeout, so retries running in a worker
    thread end once the caller has stopped waiting for them.
    """
    provider = retry_state.args[0] if retry_state.args else None
    budget = getattr(provider, "call_timeout", None)
    return budget is not None and retry_state.seconds_since_start >= budget


def handle_api_errors(operation: str):
    """
    Decorator for consistent API error handling.

    Usage:
        @handle_api_errors("text call")
        def call_text(self, ...):
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            with APIErrorContext(operation, self.name):
                return func(self, *args, **kwargs)
        return wrapper
    return decorator


class BaseProvider(ABC):
    """
    Abstract base class for AI providers.

    Subclasses must implement:
    - name
    - call_text()
    """

    # Total seconds one call_text may spend, retries included (None: unbounded)
    call_timeout: Optional[float] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name, e.g. "openai/gpt-4o-mini"."""

    @abstractmethod
    def call_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        response_format: str = "text"
    ) -> str:
        """
        Call the text API.

        Blocking; callers on the event loop run it in a worker thread.

        Args:
            prompt: User prompt
            system_prompt: System prompt (optional)
            response_format: "text" or "json"

        Returns:
            Model response text
        """

    def _log_call(
        self,
        prompt: str,
        response: str,
        duration_ms: float,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None
    ) -> None:
        """Log an AI call with sanitized summaries."""
        logger.bind(
            provider=self.name,
            prompt=_sanitize_for_logging(prompt[:120]),
            response=_sanitize_for_logging(response[:200]),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        ).debug(f"{self.name} text call in {duration_ms:.0f}ms")
