"""
LLM Provider Module

HTTP-based LLM providers (Gemini REST API and OpenAI-compatible local
servers) behind one async interface.

Usage:
    from sqlbridge.llm import LLMProviderFactory, LLMRequest
    from sqlbridge.config import get_settings

    provider = LLMProviderFactory.create_default_provider(get_settings().llm)
    response = await provider.generate(LLMRequest.from_prompt("Hello!"))
    print(response.content)
"""

from sqlbridge.llm.base import BaseLLMProvider, LLMError
from sqlbridge.llm.factory import LLMProviderFactory
from sqlbridge.llm.google import GoogleProvider
from sqlbridge.llm.local import LocalProvider
from sqlbridge.llm.models import LLMMessage, LLMRequest, LLMResponse, LLMUsage

__all__ = [
    # Base classes
    "BaseLLMProvider",
    "LLMError",
    # Models
    "LLMMessage",
    "LLMRequest",
    "LLMResponse",
    "LLMUsage",
    # Factory
    "LLMProviderFactory",
    # Providers
    "GoogleProvider",
    "LocalProvider",
]
