"""Tests for keyword relevance retrieval."""

import pytest

from sqlbridge.schema.registry import SchemaRegistry
from sqlbridge.schema.retriever import SchemaNotLoadedError, SchemaRetriever, tokenize


class TestTokenize:
    """Test question tokenization."""

    def test_splits_on_non_alphanumerics(self):
        assert tokenize("Who won, HCB vs. ZSC?") == ["Who", "won", "HCB", "vs", "ZSC"]

    def test_underscore_is_a_separator(self):
        assert tokenize("player_id") == ["player", "id"]

    def test_drops_single_characters(self):
        assert tokenize("a b cd 1 23") == ["cd", "23"]

    def test_empty(self):
        assert tokenize("") == []


class TestGetRelevantTables:
    """Test table ranking."""

    def test_requires_loaded_schema(self, memory_store):
        retriever = SchemaRetriever(SchemaRegistry(memory_store))
        with pytest.raises(SchemaNotLoadedError):
            retriever.get_relevant_tables("list all clubs", 4)

    def test_summary_match_selects_table(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)

        tables = retriever.get_relevant_tables("list all clubs", 4)

        assert [t.table_name for t in tables] == ["Club"]

    def test_zero_overlap_returns_empty(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)
        assert retriever.get_relevant_tables("xyzzy quux", 4) == []

    def test_table_name_match_ranks_first(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)

        tables = retriever.get_relevant_tables("show every Player", 4)

        assert tables[0].table_name == "Player"

    def test_synonym_match(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)

        tables = retriever.get_relevant_tables("Who won the game between HCB and ZSC", 4)

        assert tables[0].table_name == "CompetitionFixture"

    def test_full_name_scores_twice(self, loaded_registry, hockey_schema):
        retriever = SchemaRetriever(loaded_registry)
        club = hockey_schema.get_table("Club")

        bare = retriever.score_table(hockey_schema, club, ["Club"])
        full = retriever.score_table(hockey_schema, club, ["Club", "public.Club"])

        assert full - bare == 5.0

    def test_column_matches_add_weight(self, loaded_registry, hockey_schema):
        retriever = SchemaRetriever(loaded_registry)
        fixture = hockey_schema.get_table("CompetitionFixture")

        assert retriever.score_table(hockey_schema, fixture, ["HomeScore", "AwayScore"]) == 2.5

    def test_respects_max_tables(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)

        tables = retriever.get_relevant_tables("Club Player Competition Location", 2)

        assert len(tables) == 2

    def test_non_positive_max_tables_returns_one(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)

        tables = retriever.get_relevant_tables("Club Player", 0)

        assert len(tables) == 1

    def test_ties_keep_schema_order(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)

        tables = retriever.get_relevant_tables("ShortName", 4)

        assert [t.table_name for t in tables] == ["Club", "Competition"]

    def test_is_deterministic(self, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)
        question = "Which team won the most games this season?"

        first = retriever.get_relevant_tables(question, 4)
        second = retriever.get_relevant_tables(question, 4)

        assert first == second


class TestGetRelevantColumns:
    """Test column selection."""

    def test_top_columns_plus_keys(self, hockey_schema, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)
        club = hockey_schema.get_table("Club")

        columns = retriever.get_relevant_columns(club, "club name", 1)

        assert [c.name for c in columns] == ["Name", "Id", "AssociationId"]

    def test_keys_not_duplicated(self, hockey_schema, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)
        player = hockey_schema.get_table("Player")

        columns = retriever.get_relevant_columns(player, "ClubId of each player", 8)
        names = [c.name for c in columns]

        assert names[0] == "ClubId"
        assert len(names) == len(set(names)) == 4

    def test_foreign_key_outranks_primary_key_without_matches(self, hockey_schema, loaded_registry):
        retriever = SchemaRetriever(loaded_registry)
        team = hockey_schema.get_table("CompetitionTeam")

        columns = retriever.get_relevant_columns(team, "xyzzy", 3)

        assert [c.name for c in columns] == ["ClubId", "CompetitionSeasonId", "Id"]
