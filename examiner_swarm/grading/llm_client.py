"""
LLM client for OpenAI-compatible chat completion endpoints.

Provides the `complete` capability the examiners and the summary generator
depend on. Includes retry logic with exponential backoff for retryable
transport errors.
"""

import asyncio
from typing import Protocol, runtime_checkable

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, RateLimitError

from examiner_swarm.config import Settings, get_settings
from examiner_swarm.errors import ConfigurationError
from examiner_swarm.logging import get_logger

logger = get_logger(__name__)


class LLMError(Exception):
    """Raised when an LLM API call fails."""

    def __init__(self, message: str, cause: Exception | None = None, retryable: bool = False):
        self.cause = cause
        self.retryable = retryable
        super().__init__(message)


@runtime_checkable
class CompletionBackend(Protocol):
    """The language-model capability: one prompt pair in, raw text out."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


class LLMClient:
    """
    Client for an OpenAI-compatible LLM API.

    Uses the OpenAI SDK's async client with a custom base URL. The SDK's own
    retries are disabled; this class owns the retry policy.
    """

    def __init__(self, settings: Settings | None = None, client: AsyncOpenAI | None = None):
        """
        Initialize the LLM client.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
            client: Pre-built SDK client (tests).

        Raises:
            ConfigurationError: If no API key is configured.
        """
        self._settings = settings or get_settings()
        if client is None:
            if not self._settings.llm_configured:
                raise ConfigurationError("LLM_API_KEY not configured")
            client = AsyncOpenAI(
                api_key=self._settings.llm_api_key,
                base_url=self._settings.llm_base_url,
                max_retries=0,
            )
        self._client = client

        # Retry configuration
        self._max_retries = self._settings.llm_max_retries
        self._base_delay = 1.0  # seconds
        self._max_delay = 8.0  # seconds

    @property
    def model(self) -> str:
        return self._settings.llm_model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """
        Generate a response from the LLM.

        Args:
            system_prompt: System message defining the model's role.
            user_prompt: User message with the actual request.
            temperature: Sampling temperature.
            max_tokens: Maximum tokens in response.

        Returns:
            The generated text response.

        Raises:
            LLMError: If generation fails after all retries.
        """
        messages: list[dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        last_error: Exception | None = None

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._client.chat.completions.create(
                    model=self._settings.llm_model,
                    messages=messages,  # type: ignore[arg-type]
                    temperature=temperature,
                    max_tokens=max_tokens,
                )

                if response.choices and response.choices[0].message.content:
                    return response.choices[0].message.content

                raise LLMError("Empty response from LLM")

            except RateLimitError as e:
                last_error = e
                if attempt < self._max_retries:
                    await self._backoff(attempt, "rate_limited")
                    continue
                raise LLMError(
                    f"Rate limit exceeded after {self._max_retries} retries",
                    cause=e,
                    retryable=True,
                ) from e

            except APIConnectionError as e:
                last_error = e
                if attempt < self._max_retries:
                    await self._backoff(attempt, "connection_failed")
                    continue
                raise LLMError(
                    f"Connection failed after {self._max_retries} retries",
                    cause=e,
                    retryable=True,
                ) from e

            except APIStatusError as e:
                # Don't retry on client errors (4xx except 429)
                if 400 <= e.status_code < 500 and e.status_code != 429:
                    raise LLMError(
                        f"API error: {e.message}",
                        cause=e,
                        retryable=False,
                    ) from e

                last_error = e
                if attempt < self._max_retries:
                    await self._backoff(attempt, "server_error")
                    continue
                raise LLMError(
                    f"API error after {self._max_retries} retries: {e.message}",
                    cause=e,
                    retryable=True,
                ) from e

        raise LLMError(f"Failed after {self._max_retries} retries", cause=last_error)

    async def _backoff(self, attempt: int, reason: str) -> None:
        delay = min(self._base_delay * (2**attempt), self._max_delay)
        logger.debug("llm_retry", attempt=attempt + 1, delay=delay, reason=reason)
        await asyncio.sleep(delay)

    async def health_check(self) -> bool:
        """
        Check if the API is reachable.

        Returns:
            True if API is healthy, False otherwise.
        """
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.llm_model,
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=5,
            )
            return bool(response.choices)
        except Exception as e:
            logger.warning("health_check_failed", error=str(e))
            return False
