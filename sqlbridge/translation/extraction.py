"""
SQL extraction from LLM replies.

Models wrap SQL in Markdown fences, end it with a semicolon, or embed it in
prose. Patterns are tried in order and the first match wins.
"""

import re

_FENCED_BLOCK = re.compile(r"```(?:sql)?\s*\n(.*?)```", re.DOTALL | re.IGNORECASE)
_TERMINATED_SELECT = re.compile(r"(SELECT\s+.*?;)", re.DOTALL | re.IGNORECASE)
_PARAGRAPH_SELECT = re.compile(r"(SELECT\s+.*?)(?:\s*$|\n{2,})", re.DOTALL | re.IGNORECASE)
_ANY_SELECT_FROM = re.compile(r"(SELECT\s+.*?FROM\s+[^;]+)", re.DOTALL | re.IGNORECASE)


def extract_sql(text: str | None) -> str | None:
    """
    Pull a SQL statement out of an LLM reply.

    Order:
        1. Fenced code block (```sql or bare ```)
        2. SELECT ... ; (trailing semicolons removed)
        3. SELECT ... up to end of text or a blank line, if it has FROM
        4. SELECT ... FROM ... up to a semicolon or end of text

    Returns:
        The statement, or None when the reply holds no recognizable SQL
    """
    if not text:
        return None

    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()

    match = _TERMINATED_SELECT.search(text)
    if match:
        return match.group(1).strip().rstrip(";")

    match = _PARAGRAPH_SELECT.search(text)
    if match:
        sql = match.group(1).strip()
        if "from" in sql.lower():
            return sql

    match = _ANY_SELECT_FROM.search(text)
    if match:
        return match.group(1).strip()

    return None
