"""
SQL Safety Validator

Rule-based gate deciding whether generated SQL may be executed.

Only a single read-only SELECT statement passes. Checks run in a fixed
order and the first failure determines the reason:

1. Empty input
2. Comments stripped (``/* */`` and ``--``)
3. Must start with SELECT
4. No SELECT ... INTO
5. No temporary tables (``#name`` / ``##name``)
6. No statement separators beyond one trailing semicolon
7. No data-modifying or administrative keywords

NO LLM calls and no database access: the verdict is a pure function of
the text, so validating twice gives the same answer.
"""

import logging
import re
from typing import NamedTuple

logger = logging.getLogger(__name__)

_BLOCK_COMMENT = re.compile(r"/\*[\s\S]*?\*/")
_LINE_COMMENT = re.compile(r"--.*?$", re.MULTILINE)
_LEADING_SELECT = re.compile(r"^\s*SELECT\b", re.IGNORECASE)
_SELECT_INTO = re.compile(r"\bSELECT\b[\s\S]*?\bINTO\b", re.IGNORECASE)
_TEMP_TABLE = re.compile(r"#{1,2}[A-Za-z_]")
_TRAILING_SEMICOLON = re.compile(r";\s*\Z")
_STATEMENT_SEPARATOR = re.compile(r";\s*\S")

DANGEROUS_KEYWORDS = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "MERGE",
    "ALTER",
    "DROP",
    "TRUNCATE",
    "CREATE",
    "EXEC",
    "EXECUTE",
    "GRANT",
    "REVOKE",
    "DENY",
    "USE",
    "RESTORE",
    "BACKUP",
)
_DANGEROUS = re.compile(r"\b(" + "|".join(DANGEROUS_KEYWORDS) + r")\b", re.IGNORECASE)

REASON_EMPTY = "Empty SQL."
REASON_NOT_SELECT = "Only SELECT statements are allowed."
REASON_SELECT_INTO = "SELECT INTO is not allowed."
REASON_TEMP_TABLE = "Temporary tables are not allowed."
REASON_MULTIPLE = "Multiple statements are not allowed."
REASON_DANGEROUS = "Dangerous SQL keywords detected."


class SafetyVerdict(NamedTuple):
    """Outcome of validation; unpacks as ``(accepted, reason)``."""

    accepted: bool
    reason: str | None = None


class UnsafeSQLError(Exception):
    """Raised when SQL that failed validation is handed to the executor."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


def strip_comments(sql: str) -> str:
    """Replace block and line comments with a space and trim."""
    without_blocks = _BLOCK_COMMENT.sub(" ", sql)
    return _LINE_COMMENT.sub(" ", without_blocks).strip()


def is_safe_select(sql: str | None) -> SafetyVerdict:
    """
    Decide whether SQL is a single read-only SELECT.

    Keywords inside string literals are not special-cased, so a literal such
    as ``'DROP'`` is rejected.

    Args:
        sql: Candidate SQL text

    Returns:
        SafetyVerdict(True, None) when accepted, else (False, reason)
    """
    if sql is None or not sql.strip():
        return _reject(REASON_EMPTY)

    cleaned = strip_comments(sql)

    if not _LEADING_SELECT.search(cleaned):
        return _reject(REASON_NOT_SELECT)

    if _SELECT_INTO.search(cleaned):
        return _reject(REASON_SELECT_INTO)

    if _TEMP_TABLE.search(cleaned):
        return _reject(REASON_TEMP_TABLE)

    body = _TRAILING_SEMICOLON.sub("", cleaned, count=1)
    if _STATEMENT_SEPARATOR.search(body):
        return _reject(REASON_MULTIPLE)

    match = _DANGEROUS.search(body)
    if match:
        return _reject(REASON_DANGEROUS, keyword=match.group(1).upper())

    return SafetyVerdict(True, None)


def _reject(reason: str, **fields) -> SafetyVerdict:
    logger.debug(f"Rejected SQL: {reason}", extra=fields)
    return SafetyVerdict(False, reason)
