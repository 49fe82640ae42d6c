"""
Translation Module

Question to SQL translation: prompt assembly, LLM strategies and SQL
extraction from model replies.
"""

from sqlbridge.translation.extraction import extract_sql
from sqlbridge.translation.prompt_builder import PromptBuilder
from sqlbridge.translation.strategy import BaseTranslationStrategy, TargetedTranslationStrategy
from sqlbridge.translation.translator import SQLTranslator

__all__ = [
    "BaseTranslationStrategy",
    "PromptBuilder",
    "SQLTranslator",
    "TargetedTranslationStrategy",
    "extract_sql",
]
