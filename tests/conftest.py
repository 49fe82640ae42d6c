"""
Pytest configuration and shared fixtures.

This module provides fixtures and configuration used across all tests.
"""

import logging
from unittest.mock import AsyncMock

import pytest

from sqlbridge.models.schema import Column, DatabaseSchema, ForeignKey, Table
from sqlbridge.schema.registry import SchemaRegistry

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests (requires a database and API keys)",
    )


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (may require external services)"
    )
    config.addinivalue_line("markers", "unit: mark test as unit test (default)")


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless explicitly enabled."""
    if config.getoption("--run-integration"):
        return
    skip_integration = pytest.mark.skip(
        reason="Integration tests disabled (use --run-integration to enable)."
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    """Capture all log levels in every test."""
    caplog.set_level(logging.DEBUG)
    yield


@pytest.fixture
def disable_logging():
    """
    Disable logging for specific tests.

    Usage:
        def test_something(disable_logging):
            # Logs are disabled here
            pass
    """
    logging.disable(logging.CRITICAL)
    yield
    logging.disable(logging.NOTSET)


# ============================================================================
# Environment and Configuration
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """
    Provide a clean, valid environment for settings.

    Points the cache at a temp directory, stops the working directory's .env
    from leaking in and clears the settings cache around each test.
    """
    from sqlbridge.config import clear_settings_cache

    clear_settings_cache()
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SQLBRIDGE_ENV_SOURCE", "environment")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("LLM_GOOGLE_API_KEY", "test-google-key-1234567890")
    monkeypatch.setenv("SCHEMA_CACHE_DIR", str(tmp_path / "cache"))
    yield
    clear_settings_cache()


@pytest.fixture
def settings(caplog):
    """
    Loaded settings with log capture still attached.

    Loading settings reconfigures root logging with force=True, which drops
    the capture handler, so it is added back here.
    """
    from sqlbridge.config import get_settings

    loaded = get_settings()
    logging.getLogger().addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG)
    return loaded


# ============================================================================
# Schema Helpers
# ============================================================================


def make_table(
    name: str,
    columns: list[tuple[str, str]],
    primary_key: list[str] | None = None,
    foreign_keys: list[tuple[str, list[str], str, list[str]]] | None = None,
    summary: str | None = None,
    schema_name: str = "public",
) -> Table:
    """
    Build a Table from compact tuples.

    Args:
        name: Bare table name
        columns: (column name, data type) pairs
        primary_key: Primary key column names
        foreign_keys: (constraint, from columns, target table, target columns)
        summary: Table summary
        schema_name: Schema of the table and its foreign key targets
    """
    pk = primary_key or []
    fks = [
        ForeignKey(
            name=fk_name,
            from_schema=schema_name,
            from_table=name,
            from_columns=from_cols,
            to_schema=schema_name,
            to_table=to_table,
            to_columns=to_cols,
        )
        for fk_name, from_cols, to_table, to_cols in (foreign_keys or [])
    ]
    fk_columns = {c.lower() for fk in fks for c in fk.from_columns}
    return Table(
        schema_name=schema_name,
        table_name=name,
        columns=[
            Column(
                name=col_name,
                data_type=data_type,
                is_primary_key=col_name in pk,
                is_foreign_key=col_name.lower() in fk_columns,
                summary=f"{col_name} ({data_type})",
            )
            for col_name, data_type in columns
        ],
        primary_key=pk,
        foreign_keys=fks,
        summary=summary,
    )


class MemoryCacheStore:
    """In-memory cache store recording what was saved."""

    def __init__(self, initial: dict[str, bytes] | None = None):
        self.data: dict[str, bytes] = dict(initial or {})
        self.saves = 0

    def load(self, key: str) -> bytes | None:
        return self.data.get(key)

    def save(self, key: str, data: bytes) -> None:
        self.saves += 1
        self.data[key] = data


# ============================================================================
# Common Test Data
# ============================================================================


@pytest.fixture
def hockey_schema() -> DatabaseSchema:
    """Small hockey statistics schema with a connected foreign-key graph."""
    tables = [
        make_table(
            "Association",
            [("Id", "integer"), ("Name", "text")],
            primary_key=["Id"],
            summary="Associations with names and audit fields.",
        ),
        make_table(
            "Club",
            [("Id", "integer"), ("Name", "text"), ("ShortName", "text"), ("AssociationId", "integer")],
            primary_key=["Id"],
            foreign_keys=[("FK_Club_Association", ["AssociationId"], "Association", ["Id"])],
            summary="Clubs with names and association.",
        ),
        make_table(
            "Competition",
            [("Id", "integer"), ("Name", "text"), ("ShortName", "text"), ("AssociationId", "integer")],
            primary_key=["Id"],
            foreign_keys=[("FK_Competition_Association", ["AssociationId"], "Association", ["Id"])],
            summary="Competitions with association, sort order, names.",
        ),
        make_table(
            "CompetitionSeason",
            [("Id", "integer"), ("CompetitionId", "integer"), ("Year", "integer")],
            primary_key=["Id"],
            foreign_keys=[("FK_Season_Competition", ["CompetitionId"], "Competition", ["Id"])],
            summary="Seasons by competition with year, current flag, and round info.",
        ),
        make_table(
            "CompetitionTeam",
            [("Id", "integer"), ("ClubId", "integer"), ("CompetitionSeasonId", "integer")],
            primary_key=["Id"],
            foreign_keys=[
                ("FK_Team_Club", ["ClubId"], "Club", ["Id"]),
                ("FK_Team_Season", ["CompetitionSeasonId"], "CompetitionSeason", ["Id"]),
            ],
            summary="Teams per club per competition season.",
        ),
        make_table(
            "CompetitionFixture",
            [
                ("Id", "integer"),
                ("HomeTeamId", "integer"),
                ("AwayTeamId", "integer"),
                ("HomeScore", "integer"),
                ("AwayScore", "integer"),
            ],
            primary_key=["Id"],
            foreign_keys=[
                ("FK_Fixture_HomeTeam", ["HomeTeamId"], "CompetitionTeam", ["Id"]),
                ("FK_Fixture_AwayTeam", ["AwayTeamId"], "CompetitionTeam", ["Id"]),
            ],
            summary="Matches with home/away teams, season, round, time, scores, result flags.",
        ),
        make_table(
            "Player",
            [("Id", "integer"), ("FirstName", "text"), ("LastName", "text"), ("ClubId", "integer")],
            primary_key=["Id"],
            foreign_keys=[("FK_Player_Club", ["ClubId"], "Club", ["Id"])],
            summary="Players: names, current club.",
        ),
        make_table(
            "Location",
            [("Id", "integer"), ("Address", "text"), ("Latitude", "numeric")],
            primary_key=["Id"],
            summary="Venues/locations with address and coordinates.",
        ),
    ]
    return DatabaseSchema(
        server_name="localhost:5432",
        database_name="hockeystats",
        tables=tables,
        synonyms={
            "team": "CompetitionTeam",
            "match": "CompetitionFixture",
            "game": "CompetitionFixture",
            "season": "CompetitionSeason",
            "player": "Player",
            "club": "Club",
        },
    )


@pytest.fixture
def memory_store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def store_factory():
    """Factory for in-memory cache stores with optional initial content."""
    return MemoryCacheStore


@pytest.fixture
def loaded_registry(hockey_schema, memory_store) -> SchemaRegistry:
    """Registry with the hockey schema installed."""
    registry = SchemaRegistry(memory_store)
    registry._install(hockey_schema)
    return registry


# ============================================================================
# Mock LLM Provider
# ============================================================================


@pytest.fixture
def mock_llm_provider():
    """
    Mock LLM provider.

    Usage:
        def test_strategy(mock_llm_provider):
            mock_llm_provider.set_response("```sql\\nSELECT 1\\n```")
    """
    from sqlbridge.llm.models import LLMResponse, LLMUsage

    class MockLLMProvider:
        def __init__(self):
            self.generate = AsyncMock()
            self.aclose = AsyncMock()

        def set_response(self, response: str):
            """Set the response that generate() will return."""
            self.generate.return_value = LLMResponse(
                content=response,
                model="mock-model",
                usage=LLMUsage(prompt_tokens=1, completion_tokens=1),
                finish_reason="stop",
                provider="mock",
            )

    return MockLLMProvider()


# ============================================================================
# Mock Database Connectors
# ============================================================================


@pytest.fixture
def mock_connector():
    """Mock connector with async metadata and execution methods."""
    connector = AsyncMock()
    connector.server_name = "localhost:5432"
    connector.database = "hockeystats"
    connector.connect = AsyncMock()
    connector.close = AsyncMock()
    connector.execute = AsyncMock()
    connector.list_tables = AsyncMock(return_value=[])
    connector.get_columns = AsyncMock(return_value=[])
    connector.get_primary_key = AsyncMock(return_value=[])
    connector.get_foreign_keys = AsyncMock(return_value=[])
    return connector
