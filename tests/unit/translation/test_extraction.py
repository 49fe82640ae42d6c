"""Tests for SQL extraction from LLM replies."""

import pytest

from sqlbridge.translation.extraction import extract_sql


class TestFencedBlocks:
    """Test Markdown code fence extraction."""

    def test_sql_fence(self):
        assert extract_sql("```sql\nSELECT Name FROM Club\n```") == "SELECT Name FROM Club"

    def test_bare_fence(self):
        reply = "Here you go:\n```\nSELECT t0.Name\nFROM public.Club AS t0\n```\nEnjoy."
        assert extract_sql(reply) == "SELECT t0.Name\nFROM public.Club AS t0"

    def test_fence_language_is_case_insensitive(self):
        assert extract_sql("```SQL\nSELECT 1 FROM Club;\n```") == "SELECT 1 FROM Club;"

    def test_first_fence_wins(self):
        reply = "```sql\nSELECT a FROM x\n```\n\n```sql\nSELECT b FROM y\n```"
        assert extract_sql(reply) == "SELECT a FROM x"


class TestUnfencedReplies:
    """Test prose and bare SQL replies."""

    def test_terminated_select_drops_semicolon(self):
        reply = "The query is SELECT Name FROM Club WHERE Id = 1; which returns one row."
        assert extract_sql(reply) == "SELECT Name FROM Club WHERE Id = 1"

    def test_select_until_end_of_text(self):
        assert extract_sql("SELECT Name\nFROM Club") == "SELECT Name\nFROM Club"

    def test_select_until_blank_line(self):
        reply = "SELECT Name FROM Club\n\nThis lists every club."
        assert extract_sql(reply) == "SELECT Name FROM Club"

    def test_from_after_blank_line_uses_select_from_span(self):
        # The paragraph before the blank line has no FROM, so the wider match applies
        assert extract_sql("SELECT a\n\nFROM b WHERE x") == "SELECT a\n\nFROM b WHERE x"

    def test_select_from_span_after_prose(self):
        reply = "Try SELECT Name\n\nFROM Club WHERE ShortName = 'HCB'"
        assert extract_sql(reply) == "SELECT Name\n\nFROM Club WHERE ShortName = 'HCB'"

    def test_select_keyword_any_case(self):
        assert extract_sql("select name from club") == "select name from club"


class TestNoSQL:
    """Test replies without SQL."""

    @pytest.mark.parametrize(
        "reply",
        [None, "", "I cannot answer that question.", "Please SELECT a club first."],
    )
    def test_returns_none(self, reply):
        assert extract_sql(reply) is None
