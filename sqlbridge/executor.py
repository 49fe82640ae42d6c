"""
Query Executor

Runs validated SELECT statements with a hard row cap and renders results.

Every statement is re-checked by the safety gate, then wrapped so the
database enforces the cap regardless of what LIMIT the model wrote:

    SELECT * FROM (
    <sql>
    ) AS bounded_query LIMIT <n>
"""

import csv
import io
import json
import logging
from typing import Literal

import sqlparse
from rich.table import Table

from sqlbridge.connectors.base import BaseConnector, QueryResult
from sqlbridge.validation.safety import UnsafeSQLError, is_safe_select, strip_comments

logger = logging.getLogger(__name__)

OutputFormat = Literal["table", "csv", "json"]
OUTPUT_FORMATS: tuple[str, ...] = ("table", "csv", "json")


def format_sql(sql: str) -> str:
    """Pretty-print SQL for display."""
    return sqlparse.format(sql, reindent=True, keyword_case="upper").strip()


class QueryExecutor:
    """
    Executes safe SQL through a connector.

    Usage:
        executor = QueryExecutor(connector, max_rows=200)
        result = await executor.execute("SELECT t0.Name FROM public.club AS t0", limit=10)
        console.print(executor.render(result, "table"))
    """

    def __init__(self, connector: BaseConnector, max_rows: int = 200, timeout: int = 30):
        self.connector = connector
        self.max_rows = max_rows
        self.timeout = timeout

    def effective_limit(self, limit: int | None = None) -> int:
        """User limit, capped at max_rows; None or non-positive means max_rows."""
        if limit is None or limit <= 0:
            return self.max_rows
        return min(limit, self.max_rows)

    def bound(self, sql: str, limit: int | None = None) -> str:
        """Wrap a SELECT so at most ``effective_limit(limit)`` rows come back."""
        body = strip_comments(sql).rstrip().rstrip(";").rstrip()
        return f"SELECT * FROM (\n{body}\n) AS bounded_query LIMIT {self.effective_limit(limit)}"

    async def execute(self, sql: str, limit: int | None = None) -> QueryResult:
        """
        Validate and run a query.

        Args:
            sql: SELECT statement
            limit: Optional user row limit (never above max_rows)

        Returns:
            QueryResult from the connector

        Raises:
            UnsafeSQLError: If the SQL fails the safety gate
            QueryError: If the database rejects the query
        """
        verdict = is_safe_select(sql)
        if not verdict.accepted:
            logger.warning(f"Refusing to execute unsafe SQL: {verdict.reason}")
            raise UnsafeSQLError(verdict.reason or "Unsafe SQL.")

        bounded = self.bound(sql, limit)
        await self.connector.connect()
        result = await self.connector.execute(bounded, timeout=self.timeout)
        logger.info(
            f"Query returned {result.row_count} rows in {result.execution_time_ms:.0f}ms",
            extra={"limit": self.effective_limit(limit)},
        )
        return result

    @staticmethod
    def render(result: QueryResult, fmt: OutputFormat = "table") -> Table | str:
        """
        Render a result as a rich Table, CSV text or JSON text.

        Raises:
            ValueError: If the format is unknown
        """
        if fmt == "table":
            table = Table(show_header=True, header_style="bold cyan")
            for column in result.columns:
                table.add_column(column)
            for row in result.rows:
                table.add_row(*["" if row.get(c) is None else str(row.get(c)) for c in result.columns])
            return table

        if fmt == "csv":
            buffer = io.StringIO()
            writer = csv.writer(buffer, lineterminator="\n")
            writer.writerow(result.columns)
            for row in result.rows:
                writer.writerow(["" if row.get(c) is None else row.get(c) for c in result.columns])
            return buffer.getvalue()

        if fmt == "json":
            return json.dumps(result.rows, indent=2, default=str)

        raise ValueError(f"Unknown output format: {fmt}. Use one of {', '.join(OUTPUT_FORMATS)}")
