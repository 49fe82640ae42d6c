"""Unit tests for the local (OpenAI-compatible) provider."""

import json

import httpx
import pytest

from sqlbridge.llm.base import LLMError
from sqlbridge.llm.local import LocalProvider
from sqlbridge.llm.models import LLMRequest

CHAT_REPLY = {
    "model": "llama3.1:8b",
    "choices": [
        {
            "index": 0,
            "message": {"role": "assistant", "content": "SELECT Name FROM Club;"},
            "finish_reason": "stop",
        }
    ],
    "usage": {"prompt_tokens": 80, "completion_tokens": 6, "total_tokens": 86},
}


def make_provider(handler, **kwargs) -> LocalProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LocalProvider(client=client, retry_backoff_seconds=0.001, **kwargs)


class TestLocalProvider:
    """Test chat completion calls."""

    @pytest.mark.asyncio
    async def test_generate(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=CHAT_REPLY)

        provider = make_provider(handler, base_url="http://gpu-box:8000/")

        response = await provider.generate(LLMRequest.from_prompt("list all clubs"))

        assert response.content == "SELECT Name FROM Club;"
        assert response.provider == "local"
        assert response.usage.prompt_tokens == 80
        assert response.finish_reason == "stop"
        assert str(seen[0].url) == "http://gpu-box:8000/v1/chat/completions"
        body = json.loads(seen[0].content)
        assert body["model"] == "llama3.1:8b"
        assert body["messages"] == [{"role": "user", "content": "list all clubs"}]
        assert body["temperature"] == 0.0
        assert body["max_tokens"] == 2000

    @pytest.mark.asyncio
    async def test_length_finish_reason(self):
        reply = {"choices": [{"message": {"content": "SELECT"}, "finish_reason": "length"}]}
        provider = make_provider(lambda request: httpx.Response(200, json=reply))

        response = await provider.generate(LLMRequest.from_prompt("q"))

        assert response.finish_reason == "length"
        assert response.model == "llama3.1:8b"

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        provider = make_provider(lambda request: httpx.Response(200, json={"choices": []}))

        response = await provider.generate(LLMRequest.from_prompt("q"))

        assert response.content == ""

    @pytest.mark.asyncio
    async def test_server_error_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(502, text="bad gateway")

        provider = make_provider(handler, max_retries=1)

        with pytest.raises(LLMError) as exc_info:
            await provider.generate(LLMRequest.from_prompt("q"))

        assert exc_info.value.status_code == 502
        assert exc_info.value.provider == "local"
        assert len(calls) == 2
