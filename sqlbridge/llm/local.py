"""
Local LLM Provider

Implementation of BaseLLMProvider for local model servers exposing an
OpenAI-compatible ``/v1/chat/completions`` endpoint (Ollama, vLLM,
llama.cpp server).
"""

import logging

import httpx

from sqlbridge.llm.base import BaseLLMProvider
from sqlbridge.llm.models import LLMRequest, LLMResponse, LLMUsage

logger = logging.getLogger(__name__)


class LocalProvider(BaseLLMProvider):
    """Local LLM provider implementation."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_seconds: float = 0.25,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize local provider.

        Args:
            base_url: Base URL for local model server
            model: Model name (e.g., "llama3.1:8b" for Ollama)
            temperature: Default temperature
            max_tokens: Default max tokens
            timeout: Request timeout
            max_retries: Retries for transient failures
            retry_backoff_seconds: Base delay for exponential backoff
            client: Preconfigured HTTP client
        """
        super().__init__(
            provider_name="local",
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=max_retries,
            retry_backoff_seconds=retry_backoff_seconds,
            client=client,
        )

        self.base_url = base_url.rstrip("/")
        self.model = model

        logger.info(
            f"Local provider initialized: {base_url} with model: {model}",
            extra={"base_url": base_url, "model": model},
        )

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate completion using the OpenAI-compatible chat endpoint."""
        request = self._apply_defaults(request)
        self._log_request(request)

        payload = {
            "model": request.model or self.model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in request.messages],
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        data = await self._post_json(f"{self.base_url}/v1/chat/completions", payload)

        choice = (data.get("choices") or [{}])[0]
        usage = data.get("usage") or {}
        llm_response = LLMResponse(
            content=(choice.get("message") or {}).get("content") or "",
            model=data.get("model", self.model),
            usage=LLMUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
            ),
            finish_reason="length" if choice.get("finish_reason") == "length" else "stop",
            provider="local",
            metadata={"base_url": self.base_url},
        )

        self._log_response(llm_response)
        return llm_response
