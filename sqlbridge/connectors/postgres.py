"""
PostgreSQL Connector

Async PostgreSQL connector using asyncpg.

Features:
- Connection pooling with asyncpg
- Table, column, primary key and foreign key introspection
  (information_schema and pg_catalog)
- Read-only query execution with a statement timeout

Usage:
    connector = PostgresConnector(
        host="localhost",
        port=5432,
        database="hockeystats",
        user="reader",
        password="secret"
    )

    async with connector:
        tables = await connector.list_tables()
        result = await connector.execute("SELECT count(*) AS n FROM public.club")
"""

import asyncio
import logging
import time
from typing import Any

import asyncpg

from sqlbridge.connectors.base import (
    BaseConnector,
    ColumnInfo,
    ConnectionError,
    ForeignKeyInfo,
    QueryError,
    QueryResult,
    SchemaError,
    split_table_name,
    unique_column_names,
)

logger = logging.getLogger(__name__)


_TABLES_QUERY = """
    SELECT table_schema, table_name
    FROM information_schema.tables
    WHERE table_type = 'BASE TABLE'
    AND table_schema NOT IN ('pg_catalog', 'information_schema')
    ORDER BY table_schema, table_name
"""

_COLUMNS_QUERY = """
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default
    FROM information_schema.columns
    WHERE table_schema = $1 AND table_name = $2
    ORDER BY ordinal_position
"""

_PRIMARY_KEY_QUERY = """
    SELECT a.attname
    FROM pg_index i
    CROSS JOIN LATERAL unnest(i.indkey) WITH ORDINALITY AS k(attnum, ord)
    JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = k.attnum
    WHERE i.indrelid = format('%I.%I', $1::text, $2::text)::regclass
    AND i.indisprimary
    ORDER BY k.ord
"""

_FOREIGN_KEYS_QUERY = """
    SELECT
        c.conname AS name,
        src_ns.nspname AS from_schema,
        src.relname AS from_table,
        ARRAY(
            SELECT a.attname
            FROM unnest(c.conkey) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = k.attnum
            ORDER BY k.ord
        ) AS from_columns,
        dst_ns.nspname AS to_schema,
        dst.relname AS to_table,
        ARRAY(
            SELECT a.attname
            FROM unnest(c.confkey) WITH ORDINALITY AS k(attnum, ord)
            JOIN pg_attribute a ON a.attrelid = c.confrelid AND a.attnum = k.attnum
            ORDER BY k.ord
        ) AS to_columns
    FROM pg_constraint c
    JOIN pg_class src ON src.oid = c.conrelid
    JOIN pg_namespace src_ns ON src_ns.oid = src.relnamespace
    JOIN pg_class dst ON dst.oid = c.confrelid
    JOIN pg_namespace dst_ns ON dst_ns.oid = dst.relnamespace
    WHERE c.contype = 'f'
    AND src_ns.nspname = $1
    AND src.relname = $2
    ORDER BY c.conname
"""


class PostgresConnector(BaseConnector):
    """
    PostgreSQL database connector using asyncpg.

    Queries run inside read-only transactions, so even SQL that slipped past
    validation cannot modify data.
    """

    async def connect(self) -> None:
        """
        Establish connection to PostgreSQL and create connection pool.

        Raises:
            ConnectionError: If connection fails
        """
        if self._connected and self._pool:
            logger.debug("Already connected, skipping connection")
            return

        try:
            logger.info(f"Connecting to PostgreSQL at {self.host}:{self.port}/{self.database}")

            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                min_size=1,
                max_size=self.pool_size,
                command_timeout=self.timeout,
                **self.kwargs,
            )

            async with self._pool.acquire() as conn:
                version = await conn.fetchval("SELECT version()")
                logger.info(f"Connected to PostgreSQL: {version.split(',')[0]}")

            self._connected = True

        except asyncpg.PostgresError as e:
            logger.error(f"PostgreSQL connection failed: {e}")
            raise ConnectionError(f"Failed to connect to PostgreSQL: {e}") from e
        except OSError as e:
            logger.error(f"PostgreSQL unreachable: {e}")
            raise ConnectionError(f"Connection error: {e}") from e

    async def list_tables(self) -> list[str]:
        rows = await self._fetch_metadata(_TABLES_QUERY)
        tables = [f"{row['table_schema']}.{row['table_name']}" for row in rows]
        logger.debug(f"Found {len(tables)} base tables")
        return tables

    async def get_columns(self, table: str) -> list[ColumnInfo]:
        schema_name, table_name = split_table_name(table)
        rows = await self._fetch_metadata(_COLUMNS_QUERY, schema_name, table_name)
        return [
            ColumnInfo(
                name=row["column_name"],
                data_type=row["data_type"],
                is_nullable=row["is_nullable"] == "YES",
                default_value=row["column_default"],
            )
            for row in rows
        ]

    async def get_primary_key(self, table: str) -> list[str]:
        schema_name, table_name = split_table_name(table)
        rows = await self._fetch_metadata(_PRIMARY_KEY_QUERY, schema_name, table_name)
        return [row["attname"] for row in rows]

    async def get_foreign_keys(self, table: str) -> list[ForeignKeyInfo]:
        schema_name, table_name = split_table_name(table)
        rows = await self._fetch_metadata(_FOREIGN_KEYS_QUERY, schema_name, table_name)
        return [
            ForeignKeyInfo(
                name=row["name"],
                from_schema=row["from_schema"],
                from_table=row["from_table"],
                from_columns=list(row["from_columns"]),
                to_schema=row["to_schema"],
                to_table=row["to_table"],
                to_columns=list(row["to_columns"]),
            )
            for row in rows
        ]

    async def _fetch_metadata(self, query: str, *args: Any) -> list[asyncpg.Record]:
        if not self._connected or not self._pool:
            raise ConnectionError("Not connected to database. Call connect() first.")

        try:
            async with self._pool.acquire() as conn:
                return await conn.fetch(query, *args, timeout=self.timeout)
        except asyncpg.PostgresError as e:
            logger.error(f"Schema introspection failed: {e}")
            raise SchemaError(f"Failed to introspect schema: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error(f"Schema introspection timed out after {self.timeout}s")
            raise SchemaError(f"Schema introspection timeout ({self.timeout}s)") from e

    async def execute(
        self,
        query: str,
        params: list[Any] | None = None,
        timeout: int | None = None,
    ) -> QueryResult:
        """
        Execute a SQL query in a read-only transaction.

        Args:
            query: SQL query (use $1, $2, ... for parameters)
            params: Query parameters
            timeout: Query timeout in seconds (overrides default)

        Returns:
            QueryResult with rows and metadata

        Raises:
            QueryError: If query fails
            ConnectionError: If not connected
        """
        if not self._connected or not self._pool:
            raise ConnectionError("Not connected to database. Call connect() first.")

        start_time = time.perf_counter()
        query_timeout = timeout or self.timeout

        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction(readonly=True):
                    await conn.execute(f"SET LOCAL statement_timeout = {int(query_timeout * 1000)}")
                    statement = await conn.prepare(query)
                    columns = unique_column_names(
                        [attr.name for attr in statement.get_attributes()]
                    )
                    rows = await statement.fetch(*(params or []))

            # Records zip positionally; dict(record) would collapse repeated names
            result_rows = [dict(zip(columns, row)) for row in rows]
            execution_time_ms = (time.perf_counter() - start_time) * 1000

            logger.debug(
                f"Query executed in {execution_time_ms:.2f}ms, "
                f"returned {len(result_rows)} rows"
            )

            return QueryResult(
                rows=result_rows,
                row_count=len(result_rows),
                columns=columns,
                execution_time_ms=execution_time_ms,
            )

        except asyncpg.QueryCanceledError as e:
            logger.error(f"Query timed out after {query_timeout}s: {query[:100]}...")
            raise QueryError(f"Query timeout ({query_timeout}s)") from e
        except asyncio.TimeoutError as e:
            logger.error(f"Query exceeded client timeout of {query_timeout}s: {query[:100]}...")
            raise QueryError(f"Query timeout ({query_timeout}s)") from e
        except asyncpg.PostgresError as e:
            logger.error(f"Query failed: {e}\nQuery: {query[:200]}...")
            raise QueryError(f"Query execution failed: {e}") from e

    async def close(self) -> None:
        """Close connection pool. Safe to call multiple times."""
        if not self._pool:
            logger.debug("No connection pool to close")
            return

        try:
            await self._pool.close()
            logger.info("PostgreSQL connection closed")
        finally:
            self._pool = None
            self._connected = False
