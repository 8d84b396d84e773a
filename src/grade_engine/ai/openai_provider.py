"""
OpenAI-compatible API provider.

Works with any OpenAI-compatible API (OpenAI, OpenRouter, etc.)
"""

import time
from typing import Dict, Optional

import httpx
from openai import OpenAI, APIConnectionError, APITimeoutError, RateLimitError, InternalServerError
from tenacity import retry, stop_after_attempt, retry_if_exception_type, wait_exponential

from grade_engine.ai.base_provider import BaseProvider, handle_api_errors, stop_after_call_budget
from grade_engine.config.constants import (
    MAX_RETRIES, MAX_TOKENS, TEMPERATURE,
    API_CONNECT_TIMEOUT, API_READ_TIMEOUT,
    RETRY_MIN_WAIT, RETRY_MAX_WAIT,
)

# Transient failures worth another attempt; auth and request errors are not
RETRYABLE_EXCEPTIONS = (APIConnectionError, APITimeoutError, RateLimitError, InternalServerError)


class OpenAIProvider(BaseProvider):
    """
    Provider for OpenAI-compatible APIs.

    The API key is sent as a bearer credential by the SDK.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        name: Optional[str] = None,
        extra_headers: Optional[Dict[str, str]] = None,
        client: Optional[OpenAI] = None,
        call_timeout: Optional[float] = None
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self._name = name or model or "OpenAI"
        self.call_timeout = call_timeout
        self.client = client or self._create_client(extra_headers)

    def _create_client(self, extra_headers: Optional[Dict[str, str]]) -> OpenAI:
        """Create OpenAI client."""
        timeout = httpx.Timeout(
            connect=API_CONNECT_TIMEOUT,
            read=min(API_READ_TIMEOUT, self.call_timeout or API_READ_TIMEOUT),
            write=API_CONNECT_TIMEOUT,
            pool=API_CONNECT_TIMEOUT
        )

        client_kwargs = {
            "api_key": self.api_key,
            "timeout": timeout,
            # Retries are handled by tenacity below
            "max_retries": 0,
        }

        if self.base_url:
            client_kwargs["base_url"] = self.base_url

        if extra_headers:
            client_kwargs["default_headers"] = extra_headers

        return OpenAI(**client_kwargs)

    @property
    def name(self) -> str:
        return self._name

    @handle_api_errors("text call")
    @retry(
        stop=stop_after_attempt(MAX_RETRIES) | stop_after_call_budget,
        wait=wait_exponential(multiplier=RETRY_MIN_WAIT, min=RETRY_MIN_WAIT, max=RETRY_MAX_WAIT),
        retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
        reraise=True
    )
    def call_text(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        response_format: str = "text"
    ) -> str:
        """Call text API."""
        start_time = time.time()
        messages = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model,
            "messages": messages,
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE
        }

        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        response = self.client.chat.completions.create(**kwargs)
        result = response.choices[0].message.content or ""

        self._log_call(
            prompt=prompt,
            response=result,
            duration_ms=(time.time() - start_time) * 1000,
            prompt_tokens=response.usage.prompt_tokens if response.usage else None,
            completion_tokens=response.usage.completion_tokens if response.usage else None,
        )

        return result
