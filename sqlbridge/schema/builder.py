"""
Schema Builder

Builds a DatabaseSchema snapshot by introspecting the target database and
enriching it with hints: a table allow-list, micro-summaries for tables and
columns, and user-facing synonyms.

Hints file format (YAML):

    allowed_tables: [Club, Competition, CompetitionFixture]
    table_summaries:
      Club: Clubs with names and association.
    column_summaries:
      Club.ShortName: Abbreviated club code, e.g. 'HCB'.
    synonyms:
      team: CompetitionTeam
      game: CompetitionFixture
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from sqlbridge.connectors.base import BaseConnector, ColumnInfo, split_table_name
from sqlbridge.models.schema import Column, DatabaseSchema, ForeignKey, Table

logger = logging.getLogger(__name__)


class SchemaHints(BaseModel):
    """Curated enrichment applied on top of introspected metadata."""

    allowed_tables: list[str] = Field(
        default_factory=list, description="Bare or schema-qualified names; empty allows all"
    )
    table_summaries: dict[str, str] = Field(default_factory=dict)
    column_summaries: dict[str, str] = Field(
        default_factory=dict, description="Keyed by 'table.column'"
    )
    synonyms: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path | None) -> "SchemaHints":
        """Load hints from YAML; a missing path yields empty hints."""
        if path is None:
            return cls()
        hints_path = Path(path).expanduser()
        if not hints_path.exists():
            logger.warning(f"Schema hints file not found: {hints_path}")
            return cls()

        data = yaml.safe_load(hints_path.read_text(encoding="utf-8")) or {}
        hints = cls.model_validate(data)
        logger.info(
            f"Loaded schema hints from {hints_path}",
            extra={
                "allowed_tables": len(hints.allowed_tables),
                "synonyms": len(hints.synonyms),
            },
        )
        return hints

    def allows(self, schema_name: str, table_name: str) -> bool:
        if not self.allowed_tables:
            return True
        names = {table_name.lower(), f"{schema_name}.{table_name}".lower()}
        return any(allowed.lower() in names for allowed in self.allowed_tables)

    def table_summary(self, schema_name: str, table_name: str) -> str | None:
        return _lookup(self.table_summaries, f"{schema_name}.{table_name}", table_name)

    def column_summary(self, schema_name: str, table_name: str, column_name: str) -> str | None:
        return _lookup(
            self.column_summaries,
            f"{schema_name}.{table_name}.{column_name}",
            f"{table_name}.{column_name}",
        )


def _lookup(mapping: dict[str, str], *keys: str) -> str | None:
    lowered = {k.lower(): v for k, v in mapping.items()}
    for key in keys:
        value = lowered.get(key.lower())
        if value:
            return value
    return None


def default_table_summary(table_name: str, column_names: list[str]) -> str:
    return "Table with columns: " + ", ".join(column_names)


def default_column_summary(column: ColumnInfo) -> str:
    return f"{column.name} ({column.data_type})"


class SchemaBuilder:
    """
    Introspects a database through a connector and produces a snapshot.

    Usage:
        builder = SchemaBuilder(connector, SchemaHints.load("schema_hints.yaml"))
        schema = await builder.build()

        # As the registry's build function
        await registry.load_or_build(builder.build)
    """

    def __init__(
        self,
        connector: BaseConnector,
        hints: SchemaHints | None = None,
        default_schema: str = "public",
    ):
        self.connector = connector
        self.hints = hints or SchemaHints()
        self.default_schema = default_schema

    async def build(self) -> DatabaseSchema:
        """
        Build the schema snapshot.

        Foreign keys referencing tables outside the allow-list are dropped so
        the join graph only spans tables the model may see.

        Raises:
            SchemaError: If introspection fails
        """
        await self.connector.connect()

        names = [
            split_table_name(name, self.default_schema)
            for name in await self.connector.list_tables()
        ]
        selected = [(s, t) for s, t in names if self.hints.allows(s, t)]
        selected_keys = {f"{s}.{t}".lower() for s, t in selected}
        logger.info(f"Introspecting {len(selected)} of {len(names)} tables")

        tables = []
        for schema_name, table_name in selected:
            tables.append(await self._build_table(schema_name, table_name, selected_keys))

        schema = DatabaseSchema(
            server_name=self.connector.server_name,
            database_name=self.connector.database,
            tables=tables,
            synonyms=self.hints.synonyms,
        )
        logger.info(
            f"Built schema with {len(schema.tables)} tables",
            extra={
                "database": schema.database_name,
                "foreign_keys": sum(len(t.foreign_keys) for t in schema.tables),
            },
        )
        return schema

    async def _build_table(
        self, schema_name: str, table_name: str, selected_keys: set[str]
    ) -> Table:
        full_name = f"{schema_name}.{table_name}"
        column_infos = await self.connector.get_columns(full_name)
        primary_key = await self.connector.get_primary_key(full_name)

        foreign_keys = []
        for fk in await self.connector.get_foreign_keys(full_name):
            if f"{fk.to_schema}.{fk.to_table}".lower() not in selected_keys:
                logger.debug(f"Dropping foreign key {fk.name}: {fk.to_table} not selected")
                continue
            foreign_keys.append(ForeignKey(**fk.model_dump()))

        pk_names = {name.lower() for name in primary_key}
        fk_names = {name.lower() for fk in foreign_keys for name in fk.from_columns}
        columns = [
            Column(
                name=info.name,
                data_type=info.data_type,
                is_nullable=info.is_nullable,
                is_primary_key=info.name.lower() in pk_names,
                is_foreign_key=info.name.lower() in fk_names,
                summary=self.hints.column_summary(schema_name, table_name, info.name)
                or default_column_summary(info),
            )
            for info in column_infos
        ]

        summary = self.hints.table_summary(schema_name, table_name) or default_table_summary(
            table_name, [c.name for c in columns]
        )
        return Table(
            schema_name=schema_name,
            table_name=table_name,
            columns=columns,
            primary_key=primary_key,
            foreign_keys=foreign_keys,
            summary=summary,
        )
