"""Prompt templates and loader."""

from sqlbridge.prompts.loader import PromptLoader

__all__ = ["PromptLoader"]
