"""
Google LLM Provider

Implementation of BaseLLMProvider for Gemini models over the
Generative Language REST API (``models/{model}:generateContent``).
"""

import logging
from typing import Any

import httpx

from sqlbridge.llm.base import BaseLLMProvider, LLMError
from sqlbridge.llm.models import LLMRequest, LLMResponse, LLMUsage

logger = logging.getLogger(__name__)

_FINISH_REASONS = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
    "RECITATION": "content_filter",
    "BLOCKLIST": "content_filter",
    "PROHIBITED_CONTENT": "content_filter",
}


class GoogleProvider(BaseLLMProvider):
    """
    Google (Gemini) LLM provider implementation.

    The API key travels as the ``key`` query parameter. User and assistant
    messages map to Gemini's ``user`` and ``model`` roles; system messages
    become the system instruction.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com",
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_seconds: float = 0.25,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize Google provider."""
        super().__init__(
            provider_name="google",
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            max_retries=max_retries,
            retry_backoff_seconds=retry_backoff_seconds,
            client=client,
        )

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

        logger.info(f"Google provider initialized with model: {model}", extra={"model": model})

    def endpoint(self, model: str | None = None) -> str:
        return f"{self.base_url}/v1beta/models/{model or self.model}:generateContent"

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Generate completion using the Gemini REST API."""
        request = self._apply_defaults(request)
        self._log_request(request)

        model_name = request.model or self.model
        data = await self._post_json(
            self.endpoint(model_name),
            self.build_payload(request),
            params={"key": self.api_key},
        )

        if "candidates" not in data:
            feedback = data.get("promptFeedback", {})
            raise LLMError(
                self.provider_name,
                f"Response has no candidates (block reason: {feedback.get('blockReason', 'unknown')})",
            )

        raw_finish_reason = self._raw_finish_reason(data)
        usage = data.get("usageMetadata", {})
        llm_response = LLMResponse(
            content=self._extract_text(data),
            model=data.get("modelVersion", model_name),
            usage=LLMUsage(
                prompt_tokens=usage.get("promptTokenCount", 0),
                completion_tokens=usage.get("candidatesTokenCount", 0),
            ),
            finish_reason=_FINISH_REASONS.get(raw_finish_reason, "stop"),
            provider="google",
            metadata={"raw_finish_reason": raw_finish_reason},
        )

        self._log_response(llm_response)
        return llm_response

    def build_payload(self, request: LLMRequest) -> dict[str, Any]:
        contents = []
        system_parts = []
        for msg in request.messages:
            if msg.role == "system":
                system_parts.append({"text": msg.content})
            else:
                role = "model" if msg.role == "assistant" else "user"
                contents.append({"role": role, "parts": [{"text": msg.content}]})

        payload: dict[str, Any] = {
            "contents": contents,
            "generationConfig": {
                "temperature": request.temperature,
                "maxOutputTokens": request.max_tokens,
            },
        }
        if system_parts:
            payload["systemInstruction"] = {"parts": system_parts}
        return payload

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        # candidates[0].content.parts[0].text
        candidates = data.get("candidates") or [{}]
        parts = (candidates[0].get("content") or {}).get("parts") or [{}]
        text = parts[0].get("text")
        return text if isinstance(text, str) else ""

    @staticmethod
    def _raw_finish_reason(data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or [{}]
        return str(candidates[0].get("finishReason") or "")
