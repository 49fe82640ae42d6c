"""
Database Connectors Module

Async connectors for the target database. A connector serves as the
metadata provider when building the schema and as the executor for
validated SELECT statements.

Available Connectors:
    - BaseConnector: Abstract base class
    - PostgresConnector: PostgreSQL connector (asyncpg)

Usage:
    from sqlbridge.connectors import create_connector

    connector = create_connector(database_url="postgresql://reader@localhost/hockeystats")

    async with connector:
        tables = await connector.list_tables()
        result = await connector.execute("SELECT 1 AS one")
"""

from sqlbridge.connectors.base import (
    BaseConnector,
    ColumnInfo,
    ConnectionError,
    ConnectorError,
    ForeignKeyInfo,
    QueryError,
    QueryResult,
    SchemaError,
)
from sqlbridge.connectors.factory import create_connector
from sqlbridge.connectors.postgres import PostgresConnector

__all__ = [
    "BaseConnector",
    "PostgresConnector",
    "create_connector",
    "ColumnInfo",
    "ForeignKeyInfo",
    "QueryResult",
    "ConnectorError",
    "ConnectionError",
    "QueryError",
    "SchemaError",
]
