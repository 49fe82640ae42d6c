"""
Schema Retriever

Keyword-based relevance scoring of tables and columns against a question.

Only a small slice of the schema is sent to the LLM, so the retriever
trades recall for prompt size. Scores are additive:

Tables:
    - token equals bare table name: +5
    - token equals full schema.table name: +5
    - synonym key matches a token and maps to the table: +3
    - per column whose name equals a token: +1.25
    - per token found in the table summary: +0.25

Columns:
    - token equals column name: +3
    - per token found in the column summary: +0.25
    - primary key: +0.1, foreign key: +0.2

Ties keep schema (or declared column) order, since ranking uses a stable sort.
"""

import logging
import re

from sqlbridge.models.schema import Column, DatabaseSchema, Table
from sqlbridge.schema.registry import SchemaRegistry

logger = logging.getLogger(__name__)

_TOKEN_PATTERN = re.compile(r"[A-Za-z0-9]+")

TABLE_NAME_WEIGHT = 5.0
FULL_NAME_WEIGHT = 5.0
SYNONYM_WEIGHT = 3.0
TABLE_COLUMN_WEIGHT = 1.25
SUMMARY_WEIGHT = 0.25
COLUMN_NAME_WEIGHT = 3.0
PRIMARY_KEY_WEIGHT = 0.1
FOREIGN_KEY_WEIGHT = 0.2


class SchemaNotLoadedError(Exception):
    """Raised when retrieval is attempted before a schema is loaded."""

    pass


def tokenize(text: str) -> list[str]:
    """
    Split text into alphanumeric tokens longer than one character.

    Underscores are separators, so ``player_id`` yields ``player`` and ``id``.
    """
    text = text.replace("_", " ")
    return [token for token in _TOKEN_PATTERN.findall(text) if len(token) > 1]


def _contains(tokens: list[str], term: str) -> bool:
    target = term.lower()
    return any(token.lower() == target for token in tokens)


def _summary_hits(tokens: list[str], summary: str | None) -> int:
    if not summary or not summary.strip():
        return 0
    haystack = summary.lower()
    return sum(1 for token in tokens if token.lower() in haystack)


class SchemaRetriever:
    """Ranks tables and columns of the registry's schema for a question."""

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry

    def get_relevant_tables(self, question: str, max_tables: int) -> list[Table]:
        """
        Rank tables by relevance to the question.

        Args:
            question: Natural language question
            max_tables: Maximum tables to return (at least 1)

        Returns:
            Tables with a positive score, best first. Empty when nothing matches.

        Raises:
            SchemaNotLoadedError: If the registry holds no schema
        """
        schema = self.registry.schema
        if schema is None:
            raise SchemaNotLoadedError("Schema not loaded")

        tokens = tokenize(question)
        scored: list[tuple[Table, float]] = []
        for table in schema.tables:
            score = self.score_table(schema, table, tokens)
            if score > 0:
                scored.append((table, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        selected = [table for table, _ in scored[: max(1, max_tables)]]

        logger.debug(
            f"Selected {len(selected)} of {len(scored)} candidate tables",
            extra={
                "tables": [t.full_name for t in selected],
                "scores": {t.full_name: s for t, s in scored},
            },
        )
        return selected

    def score_table(self, schema: DatabaseSchema, table: Table, tokens: list[str]) -> float:
        score = 0.0
        if _contains(tokens, table.table_name):
            score += TABLE_NAME_WEIGHT
        if _contains(tokens, f"{table.schema_name}.{table.table_name}"):
            score += FULL_NAME_WEIGHT

        for synonym, canonical in schema.synonyms.items():
            if _contains(tokens, synonym) and canonical.lower() == table.table_name.lower():
                score += SYNONYM_WEIGHT

        for column in table.columns:
            if _contains(tokens, column.name):
                score += TABLE_COLUMN_WEIGHT

        score += SUMMARY_WEIGHT * _summary_hits(tokens, table.summary)
        return score

    def get_relevant_columns(
        self, table: Table, question: str, max_columns_per_table: int
    ) -> list[Column]:
        """
        Pick the top scoring columns of a table, plus all key columns.

        Primary and foreign key columns are always included so the table
        stays joinable even when no key column matches the question.
        """
        tokens = tokenize(question)
        scored: list[tuple[Column, float]] = []
        for column in table.columns:
            score = 0.0
            if _contains(tokens, column.name):
                score += COLUMN_NAME_WEIGHT
            score += SUMMARY_WEIGHT * _summary_hits(tokens, column.summary)
            if column.is_primary_key:
                score += PRIMARY_KEY_WEIGHT
            if column.is_foreign_key:
                score += FOREIGN_KEY_WEIGHT
            scored.append((column, score))

        scored.sort(key=lambda item: item[1], reverse=True)
        top = [column for column, _ in scored[: max(1, max_columns_per_table)]]

        selected: list[Column] = []
        seen: set[str] = set()
        for column in top + table.key_columns():
            key = column.name.lower()
            if key not in seen:
                seen.add(key)
                selected.append(column)
        return selected
