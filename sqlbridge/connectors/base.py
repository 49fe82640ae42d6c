"""
Base Database Connector

Abstract base class for the target database. A connector plays two roles:
metadata provider for the schema builder, and executor for validated SELECTs.

All connectors must implement:
- connect(): Establish connection with connection pooling
- list_tables(): Enumerate base tables as ``schema.table`` names
- get_columns() / get_primary_key() / get_foreign_keys(): Per-table metadata
- execute(): Run a query with a timeout
- close(): Clean up connections and pools
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ============================================================================
# Data Models
# ============================================================================


class ColumnInfo(BaseModel):
    """Information about a database column."""

    name: str = Field(..., description="Column name")
    data_type: str = Field(..., description="Column data type")
    is_nullable: bool = Field(..., description="Whether column can be NULL")
    default_value: str | None = Field(None, description="Default value if any")


class ForeignKeyInfo(BaseModel):
    """A foreign key constraint as reported by the database."""

    name: str = Field(..., description="Constraint name")
    from_schema: str = Field(..., description="Referencing schema")
    from_table: str = Field(..., description="Referencing table")
    from_columns: list[str] = Field(default_factory=list, description="Referencing columns")
    to_schema: str = Field(..., description="Referenced schema")
    to_table: str = Field(..., description="Referenced table")
    to_columns: list[str] = Field(default_factory=list, description="Referenced columns")


class QueryResult(BaseModel):
    """Result from query execution."""

    rows: list[dict[str, Any]] = Field(..., description="Query result rows")
    row_count: int = Field(..., description="Number of rows returned")
    columns: list[str] = Field(..., description="Column names")
    execution_time_ms: float = Field(..., description="Query execution time in ms")


class ConnectorError(Exception):
    """Base exception for connector errors."""

    pass


class ConnectionError(ConnectorError):
    """Error establishing or managing database connection."""

    pass


class QueryError(ConnectorError):
    """Error executing database query."""

    pass


class SchemaError(ConnectorError):
    """Error introspecting database schema."""

    pass


def split_table_name(table: str, default_schema: str = "public") -> tuple[str, str]:
    """Split ``schema.table`` into its parts; bare names get the default schema."""
    if "." in table:
        schema_name, table_name = table.split(".", 1)
        return schema_name, table_name
    return default_schema, table


def unique_column_names(names: list[str]) -> list[str]:
    """Suffix repeated result column names (``name``, ``name_2``) so rows can be keyed by name."""
    used: set[str] = set()
    unique = []
    for name in names:
        candidate, n = name, 1
        while candidate in used:
            n += 1
            candidate = f"{name}_{n}"
        used.add(candidate)
        unique.append(candidate)
    return unique


# ============================================================================
# Base Connector
# ============================================================================


class BaseConnector(ABC):
    """
    Abstract base class for database connectors.

    Usage:
        connector = PostgresConnector(host="localhost", ...)
        async with connector:
            for table in await connector.list_tables():
                columns = await connector.get_columns(table)

            result = await connector.execute("SELECT 1 AS one")
    """

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        pool_size: int = 5,
        timeout: int = 30,
        **kwargs,
    ):
        """
        Initialize connector.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database user
            password: Database password
            pool_size: Connection pool size (default: 5)
            timeout: Query timeout in seconds (default: 30)
            **kwargs: Additional connector-specific parameters
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.pool_size = pool_size
        self.timeout = timeout
        self.kwargs = kwargs

        self._pool = None
        self._connected = False

        logger.info(f"Initialized {self.__class__.__name__} for {host}:{port}/{database}")

    @property
    def server_name(self) -> str:
        """Server identity recorded in schema snapshots."""
        return f"{self.host}:{self.port}"

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish database connection and create connection pool.

        Idempotent: calling it again reuses the existing pool.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    async def list_tables(self) -> list[str]:
        """
        List base tables as ``schema.table`` names.

        Raises:
            SchemaError: If introspection fails
        """
        pass

    @abstractmethod
    async def get_columns(self, table: str) -> list[ColumnInfo]:
        """Columns of a table in ordinal order."""
        pass

    @abstractmethod
    async def get_primary_key(self, table: str) -> list[str]:
        """Primary key column names in key order."""
        pass

    @abstractmethod
    async def get_foreign_keys(self, table: str) -> list[ForeignKeyInfo]:
        """Foreign keys where the table is the referencing side."""
        pass

    @abstractmethod
    async def execute(
        self,
        query: str,
        params: list[Any] | None = None,
        timeout: int | None = None,
    ) -> QueryResult:
        """
        Execute a SQL query.

        Args:
            query: SQL query string (use $1, $2 for parameters)
            params: Query parameters (optional)
            timeout: Query timeout in seconds (overrides default)

        Returns:
            QueryResult with rows, columns, and metadata

        Raises:
            QueryError: If query execution fails
            ConnectionError: If not connected
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close database connection and clean up pool. Safe to call twice."""
        pass

    @property
    def is_connected(self) -> bool:
        """Check if connector is connected."""
        return self._connected

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
        return False

    def __repr__(self) -> str:
        """String representation (never includes credentials)."""
        status = "connected" if self._connected else "disconnected"
        return f"<{self.__class__.__name__} {self.host}:{self.port}/{self.database} ({status})>"
