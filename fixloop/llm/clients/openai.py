"""OpenAI client - Pure API wrapper.

This module provides an OpenAI chat client with zero repair logic. It only
knows how to send messages, retry transient failures and return text.
"""

import logging
import time
from typing import Dict, List, Optional

from openai import APIConnectionError, APITimeoutError, OpenAI, RateLimitError

from fixloop.core.config import get_config_value

logger = logging.getLogger(__name__)


class OpenAIAuthenticationError(ValueError):
    """Raised when the API rejects the configured key. Never retried."""


class OpenAIClient:
    """Pure OpenAI API wrapper - no repair logic.

    Configuration priority: explicit parameter > config.json > environment > ValueError

    Example:
        >>> client = OpenAIClient(api_key="sk-...")
        >>> text = client.chat([{"role": "user", "content": "Hello"}])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.2,
        timeout: float = 60.0,
        max_retries: int = 3,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (loads from config.json / OPENAI_API_KEY if None)
            model: Model to use (loads from config.json if None, default: "gpt-4o")
            temperature: Sampling temperature; low by default since fixes should be conservative
            timeout: Request timeout in seconds
            max_retries: Retries on connection errors, timeouts and rate limits
        """
        self.api_key = api_key or get_config_value(["openai", "api_key"])
        self.model = model or get_config_value(["openai", "model"], default="gpt-4o")
        self.temperature = temperature
        self.timeout = timeout
        self.max_retries = max_retries

        if not self.api_key:
            raise ValueError(
                "OpenAI API key required. Set it in config.json "
                "({'openai': {'api_key': 'sk-...'}}) or OPENAI_API_KEY"
            )

        self._client = self._new_client()

    def _new_client(self, timeout: Optional[float] = None) -> OpenAI:
        # Retries are handled here so every failure gets logged
        return OpenAI(api_key=self.api_key, timeout=timeout or self.timeout, max_retries=0)

    @staticmethod
    def _retry_delay(error: Exception, attempt: int) -> Optional[float]:
        """Seconds to wait before retrying ``error``, or None if it is not retryable."""
        if isinstance(error, APIConnectionError) and not isinstance(error, APITimeoutError):
            return 2 + (2 ** attempt) + attempt
        if isinstance(error, (APITimeoutError, TimeoutError)):
            return (2 ** attempt) + attempt * 0.5
        if isinstance(error, RateLimitError):
            return 10 + attempt * 5
        return None

    def chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Send chat messages and return the assistant's text.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Override default temperature
            timeout: Override default timeout
            max_tokens: Optional completion token cap

        Returns:
            Response text ("" if the model returned no content)

        Raises:
            OpenAIAuthenticationError: If the API key is rejected
            RuntimeError: When all attempts fail
        """
        client = self._client if timeout is None else self._new_client(timeout)
        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        last_error: Optional[Exception] = None
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                response = client.chat.completions.create(**kwargs)
                return response.choices[0].message.content or ""
            except Exception as e:
                last_error = e
                status_code = getattr(e, "status_code", None)
                logger.error(
                    f"OpenAI request failed (attempt {attempt + 1}/{attempts}): "
                    f"{type(e).__name__}, status={status_code}: {e}"
                )
                if status_code == 401 or "authentication" in str(e).lower():
                    raise OpenAIAuthenticationError(
                        f"OpenAI API authentication failed, check the configured key: {e}"
                    ) from e

                delay = self._retry_delay(e, attempt)
                if delay is None or attempt == attempts - 1:
                    break
                logger.warning(f"Retrying in {delay:.1f}s...")
                time.sleep(delay)
                if isinstance(e, APIConnectionError):
                    client = self._new_client(timeout)

        raise RuntimeError(
            f"OpenAI API error after {attempt + 1} attempts: "
            f"{type(last_error).__name__}: {last_error}"
        ) from last_error
