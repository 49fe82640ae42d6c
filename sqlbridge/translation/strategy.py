"""
Translation Strategies

A strategy turns a natural language question into a SQL string (or None).

TargetedTranslationStrategy sends the model only the relevant slice of the
schema: the top ranked tables, their top columns, and the join path between
them. It never raises for bad model output or transport failures; those
produce None so the caller can report "could not translate".
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

import httpx

from sqlbridge.llm.base import BaseLLMProvider, LLMError
from sqlbridge.llm.models import LLMRequest
from sqlbridge.models.schema import Column, Table
from sqlbridge.schema.join_path import JoinPathFinder
from sqlbridge.schema.registry import BuildSchemaFn, SchemaRegistry
from sqlbridge.schema.retriever import SchemaRetriever
from sqlbridge.translation.extraction import extract_sql
from sqlbridge.translation.prompt_builder import PromptBuilder

logger = logging.getLogger(__name__)


class BaseTranslationStrategy(ABC):
    """Interface for question to SQL translation."""

    @abstractmethod
    async def translate(self, question: str) -> str | None:
        """
        Translate a question to SQL.

        Returns:
            The SQL text, or None when no query could be produced
        """
        pass  # pragma: no cover - abstract method


class TargetedTranslationStrategy(BaseTranslationStrategy):
    """
    Retrieval-driven translation.

    Pipeline:
        1. Ensure the schema is loaded (cache or build)
        2. Rank tables, then columns per table
        3. Add name columns for name-lookup tables (e.g., Club.Name, Club.ShortName)
        4. Find the join plan
        5. Build the prompt and send one user message to the LLM
        6. Extract SQL from the reply
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        registry: SchemaRegistry,
        retriever: SchemaRetriever,
        join_path_finder: JoinPathFinder,
        prompt_builder: PromptBuilder,
        build_schema: BuildSchemaFn,
        max_tables: int = 4,
        max_columns_per_table: int = 8,
        name_lookup_tables: Sequence[str] = ("Club", "Competition"),
        name_columns: Sequence[str] = ("Name", "ShortName"),
    ):
        self.provider = provider
        self.registry = registry
        self.retriever = retriever
        self.join_path_finder = join_path_finder
        self.prompt_builder = prompt_builder
        self.build_schema = build_schema
        self.max_tables = max_tables
        self.max_columns_per_table = max_columns_per_table
        self.name_lookup_tables = {name.lower() for name in name_lookup_tables}
        self.name_columns = list(name_columns)

    async def translate(self, question: str) -> str | None:
        if not self.registry.is_loaded:
            await self.registry.load_or_build(self.build_schema)

        tables = self.retriever.get_relevant_tables(question, self.max_tables)
        if not tables:
            logger.info("No relevant tables for question", extra={"question": question})
            return None

        columns_by_full_name: dict[str, list[Column]] = {}
        for table in tables:
            columns = self.retriever.get_relevant_columns(
                table, question, self.max_columns_per_table
            )
            if table.table_name.lower() in self.name_lookup_tables:
                columns = self._with_name_columns(table, columns)
            columns_by_full_name[table.full_name] = columns

        join_plan = self.join_path_finder.find_join_plan(tables)
        prompt = self.prompt_builder.build_prompt(
            question, tables, columns_by_full_name, join_plan
        )

        logger.info(
            f"Translating with {len(tables)} tables and {len(join_plan.joins)} joins",
            extra={
                "tables": [t.full_name for t in tables],
                "prompt_chars": len(prompt),
            },
        )

        try:
            response = await self.provider.generate(LLMRequest.from_prompt(prompt))
        except LLMError as e:
            logger.error(
                f"LLM request failed: {e}",
                extra={"provider": e.provider, "status_code": e.status_code},
            )
            return None
        except httpx.HTTPError as e:
            logger.error(f"LLM transport error: {type(e).__name__}: {e}")
            return None

        sql = extract_sql(response.content)
        if sql is None:
            logger.warning(
                "No SQL found in LLM reply", extra={"reply_chars": len(response.content)}
            )
        return sql

    def _with_name_columns(self, table: Table, columns: list[Column]) -> list[Column]:
        """Append configured name columns the table has but the selection lacks."""
        selected = list(columns)
        present = {c.name.lower() for c in selected}
        for name in self.name_columns:
            column = table.get_column(name)
            if column is not None and column.name.lower() not in present:
                selected.append(column)
                present.add(column.name.lower())
        return selected
