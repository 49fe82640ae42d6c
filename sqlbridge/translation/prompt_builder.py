"""
Prompt Builder

Renders the text-to-SQL prompt from the retrieved schema slice.

The prompt contains, in order: the role instruction, a Context section with
one bullet per table and indented bullets for its selected columns, a Join
path section (one JOIN line per attached table, hop tables included, only
when the plan has joins), the Rules block, and the user question. Prompts
longer than ``max_tokens * 4`` characters are cut at that length; the result
is degraded but still sent.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from sqlbridge.models.schema import Column, JoinPlan, Table
from sqlbridge.prompts.loader import PromptLoader

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
TEMPLATE_PATH = "sql_generator.md"


@dataclass(frozen=True)
class TableContext:
    full_name: str
    summary: str | None
    columns: list[Column]


@dataclass(frozen=True)
class JoinLine:
    table: str
    alias: str
    condition: str


class PromptBuilder:
    """
    Builds size-bounded prompts for SQL translation.

    Usage:
        builder = PromptBuilder(max_tokens=1800, max_tables=4, max_columns_per_table=8)
        prompt = builder.build_prompt(question, tables, columns_by_full_name, join_plan)
    """

    def __init__(
        self,
        max_tokens: int = 1800,
        max_tables: int = 4,
        max_columns_per_table: int = 8,
        max_rows: int = 200,
        loader: PromptLoader | None = None,
        name_lookup_tables: Sequence[str] = ("Club", "Competition"),
        name_columns: Sequence[str] = ("Name", "ShortName"),
    ):
        self.max_tokens = max_tokens
        self.max_tables = max_tables
        self.max_columns_per_table = max_columns_per_table
        self.max_rows = max_rows
        self.loader = loader or PromptLoader()
        self.name_lookup_tables = list(name_lookup_tables)
        self.name_columns = list(name_columns)

    @property
    def max_chars(self) -> int:
        return self.max_tokens * CHARS_PER_TOKEN

    def build_prompt(
        self,
        question: str,
        tables: Sequence[Table],
        columns_by_full_name: Mapping[str, Sequence[Column]],
        join_plan: JoinPlan,
    ) -> str:
        """
        Render the prompt.

        Args:
            question: User question, included verbatim
            tables: Ranked tables; only the first ``max_tables`` are described
            columns_by_full_name: Selected columns keyed by table full name
                (looked up case-insensitively)
            join_plan: Join plan connecting the tables

        Returns:
            Prompt text, at most ``max_tokens * 4`` characters
        """
        columns_lookup = {name.lower(): list(cols) for name, cols in columns_by_full_name.items()}
        contexts = [
            TableContext(
                full_name=table.full_name,
                summary=table.summary,
                columns=columns_lookup.get(table.full_name.lower(), [])[
                    : self.max_columns_per_table
                ],
            )
            for table in tables[: self.max_tables]
        ]

        prompt = self.loader.render(
            TEMPLATE_PATH,
            tables=contexts,
            joins=self._join_lines(join_plan),
            max_rows=self.max_rows,
            name_lookup_tables=self.name_lookup_tables,
            name_columns=self.name_columns,
            question=question,
        )

        if len(prompt) > self.max_chars:
            logger.warning(
                f"Prompt truncated from {len(prompt)} to {self.max_chars} characters",
                extra={"max_tokens": self.max_tokens},
            )
            prompt = prompt[: self.max_chars]
        return prompt

    @staticmethod
    def _join_lines(join_plan: JoinPlan) -> list[JoinLine]:
        return [
            JoinLine(table=step.table.full_name, alias=step.alias, condition=step.condition)
            for step in join_plan.join_steps()
        ]
