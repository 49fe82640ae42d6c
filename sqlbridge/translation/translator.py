"""
SQL Translator

Facade used by the CLI: question to SQL through a strategy, and plain
English explanations of SQL through the same LLM provider.
"""

import logging

import httpx

from sqlbridge.llm.base import BaseLLMProvider, LLMError
from sqlbridge.llm.models import LLMRequest
from sqlbridge.translation.strategy import BaseTranslationStrategy

logger = logging.getLogger(__name__)

EXPLAIN_PROMPT = "Explain in plain English what this SQL does, succinctly.\n\n```sql\n{sql}\n```"


class SQLTranslator:
    """
    Translates questions and explains SQL.

    Usage:
        translator = SQLTranslator(strategy, provider)
        sql = await translator.translate("list all clubs")
        text = await translator.explain(sql)
    """

    def __init__(self, strategy: BaseTranslationStrategy, provider: BaseLLMProvider):
        self.strategy = strategy
        self.provider = provider

    async def translate(self, question: str) -> str | None:
        return await self.strategy.translate(question)

    async def explain(self, sql: str) -> str | None:
        """Ask the LLM for a short explanation; None on transport failure."""
        if not sql or not sql.strip():
            return None
        request = LLMRequest.from_prompt(EXPLAIN_PROMPT.format(sql=sql.strip()))
        try:
            response = await self.provider.generate(request)
        except (LLMError, httpx.HTTPError) as e:
            logger.error(f"Explain request failed: {e}")
            return None
        return response.content.strip() or None
