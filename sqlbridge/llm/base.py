"""
Base LLM Provider

Abstract base class for LLM providers plus the shared HTTP transport.

Providers talk to REST endpoints through one httpx.AsyncClient. Transient
failures (connection errors, timeouts, HTTP 429 and 5xx) are retried with
exponential backoff via tenacity; anything else surfaces as LLMError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from sqlbridge.llm.models import LLMRequest, LLMResponse

logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 4.0
ERROR_BODY_EXCERPT = 500


class LLMError(Exception):
    """Raised when an LLM call fails after retries."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


def is_transient_error(exc: BaseException) -> bool:
    """Transport failures, timeouts, rate limits and server errors are retryable."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Attributes:
        provider_name: Unique identifier for this provider
        temperature: Default sampling temperature
        max_tokens: Default maximum tokens to generate
        timeout: Request timeout in seconds
        max_retries: Retries after the first attempt for transient failures
        retry_backoff_seconds: Multiplier of the exponential backoff
    """

    def __init__(
        self,
        provider_name: str,
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_seconds: float = 0.25,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize base provider.

        Args:
            provider_name: Provider identifier (e.g., "google", "local")
            temperature: Default temperature for responses
            max_tokens: Default max tokens for responses
            timeout: Request timeout in seconds
            max_retries: Retries for transient failures
            retry_backoff_seconds: Base delay for exponential backoff
            client: Preconfigured HTTP client (tests inject a MockTransport)
        """
        self.provider_name = provider_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.client = client or httpx.AsyncClient(timeout=float(timeout))

        logger.info(
            f"Initialized {provider_name} provider",
            extra={
                "provider": provider_name,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "max_retries": max_retries,
            },
        )

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            request: LLM request with messages and parameters

        Returns:
            LLMResponse with generated content and metadata

        Raises:
            LLMError: Non-success response or transport failure after retries
        """
        pass  # pragma: no cover - abstract method

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        POST a JSON payload with retries and return the decoded body.

        Raises:
            LLMError: With the status code and a body excerpt on HTTP errors
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.retry_backoff_seconds, max=MAX_BACKOFF_SECONDS),
            retry=retry_if_exception(is_transient_error),
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await self.client.post(
                        url, json=payload, params=params, headers=headers
                    )
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            excerpt = e.response.text[:ERROR_BODY_EXCERPT]
            logger.error(
                f"{self.provider_name} request failed with HTTP {status}",
                extra={"provider": self.provider_name, "status_code": status},
            )
            raise LLMError(self.provider_name, f"HTTP {status}: {excerpt}", status) from e
        except httpx.TimeoutException as e:
            logger.error(f"{self.provider_name} request timed out after {self.timeout}s")
            raise LLMError(self.provider_name, f"Request timed out after {self.timeout}s") from e
        except httpx.TransportError as e:
            logger.error(f"{self.provider_name} transport error: {type(e).__name__}")
            raise LLMError(self.provider_name, f"Transport error: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise LLMError(
                self.provider_name, "Response body is not valid JSON", response.status_code
            ) from e

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"{self.provider_name} transient failure, retrying "
            f"(attempt {retry_state.attempt_number}/{self.max_retries + 1})",
            extra={"provider": self.provider_name, "error": type(exc).__name__},
        )

    def _apply_defaults(self, request: LLMRequest) -> LLMRequest:
        """Apply default values to request if not specified."""
        updates: dict[str, Any] = {}
        if request.temperature is None:
            updates["temperature"] = self.temperature
        if request.max_tokens is None:
            updates["max_tokens"] = self.max_tokens
        return request.model_copy(update=updates) if updates else request

    def _log_request(self, request: LLMRequest) -> None:
        """Log request details for debugging."""
        logger.debug(
            f"{self.provider_name} request",
            extra={
                "provider": self.provider_name,
                "message_count": len(request.messages),
                "temperature": request.temperature,
                "max_tokens": request.max_tokens,
            },
        )

    def _log_response(self, response: LLMResponse) -> None:
        """Log response details for debugging."""
        logger.debug(
            f"{self.provider_name} response",
            extra={
                "provider": self.provider_name,
                "model": response.model,
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "finish_reason": response.finish_reason,
            },
        )
