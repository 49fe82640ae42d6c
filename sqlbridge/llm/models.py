"""
LLM Request and Response Models

Provider-agnostic pydantic models for LLM interactions.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class LLMMessage(BaseModel):
    """Single message in an LLM conversation."""

    role: Literal["system", "user", "assistant"] = Field(..., description="Message role")
    content: str = Field(..., description="Message content", min_length=1)


class LLMRequest(BaseModel):
    """Request to an LLM provider."""

    messages: list[LLMMessage] = Field(..., description="Conversation messages", min_length=1)
    temperature: float | None = Field(
        None, ge=0.0, le=2.0, description="Sampling temperature (overrides default)"
    )
    max_tokens: int | None = Field(
        None, gt=0, description="Maximum tokens to generate (overrides default)"
    )
    model: str | None = Field(None, description="Specific model to use (overrides default)")

    @classmethod
    def from_prompt(cls, prompt: str, **kwargs: Any) -> "LLMRequest":
        """Single user message request."""
        return cls(messages=[LLMMessage(role="user", content=prompt)], **kwargs)


class LLMUsage(BaseModel):
    """Token usage information."""

    prompt_tokens: int = Field(default=0, ge=0, description="Tokens in the prompt")
    completion_tokens: int = Field(default=0, ge=0, description="Tokens in the completion")

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMResponse(BaseModel):
    """Response from an LLM provider."""

    content: str = Field(..., description="Generated text content")
    model: str = Field(..., description="Model that generated the response")
    usage: LLMUsage = Field(default_factory=LLMUsage, description="Token usage information")
    finish_reason: Literal["stop", "length", "content_filter", "error"] = Field(
        default="stop", description="Reason the generation stopped"
    )
    provider: str = Field(..., description="Provider that handled the request")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Additional provider-specific response data"
    )
