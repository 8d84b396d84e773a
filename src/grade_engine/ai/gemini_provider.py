"""
Google Gemini API provider for text grading calls.
"""

import time
from typing import Optional

import google.genai as genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from tenacity import retry, stop_after_attempt, retry_if_exception_type, wait_exponential

from grade_engine.ai.base_provider import BaseProvider, handle_api_errors, stop_after_call_budget
from grade_engine.config.constants import (
    MAX_RETRIES, MAX_TOKENS, TEMPERATURE, RETRY_MIN_WAIT, RETRY_MAX_WAIT,
)


# 5xx responses and network failures are retried; 4xx are not
RETRYABLE_EXCEPTIONS = (
    genai_errors.ServerError,
    ConnectionError,
    TimeoutError,
)


class GeminiProvider(BaseProvider):
    """
    Provider for Google Gemini API interactions.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        client: Optional[genai.Client] = None,
        call_timeout: Optional[float] = None
    ):
        """
        Initialize Gemini provider.

        Args:
            api_key: Google API key
            model: Model for text operations
            client: Pre-built client (tests)
            call_timeout: Seconds one call may spend, retries included
        """
        if not api_key and client is None:
            raise ValueError(
                "Gemini API key is required. "
                "Set GRADE_ENGINE_GEMINI_API_KEY in .env"
            )
        if not model:
            raise ValueError(
                "Gemini model is required. "
                "Set GRADE_ENGINE_GEMINI_MODEL in .env"
            )

        self.api_key = api_key
        self.model = model
        self.call_timeout = call_timeout
        # HttpOptions.timeout is in milliseconds
        http_options = genai_types.HttpOptions(timeout=int(call_timeout * 1000)) if call_timeout else None
        self.client = client or genai.Client(api_key=api_key, http_options=http_options)

    @property
    def name(self) -> str:
        return f"gemini/{self.model}"

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
        """
        Call the text API.

        Args:
            prompt: User prompt
            system_prompt: System prompt (optional)
            response_format: "text" or "json"

        Returns:
            Model response text
        """
        start_time = time.time()

        config = genai_types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=TEMPERATURE,
            max_output_tokens=MAX_TOKENS,
            response_mime_type="application/json" if response_format == "json" else None,
        )

        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=config
        )

        result = response.text or ""

        prompt_tokens = None
        completion_tokens = None
        if getattr(response, 'usage_metadata', None):
            prompt_tokens = getattr(response.usage_metadata, 'prompt_token_count', None)
            completion_tokens = getattr(response.usage_metadata, 'candidates_token_count', None)

        self._log_call(
            prompt=prompt,
            response=result,
            duration_ms=(time.time() - start_time) * 1000,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
        )

        return result
