"""
Schema Models

Pydantic models describing the database schema that drives retrieval,
join planning and prompt assembly.

A DatabaseSchema is built once (introspection or cache load) and then
treated as an immutable snapshot. JoinPlans are created per question.
"""

from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def join_full_name(schema_name: str, table_name: str) -> str:
    """Return ``schema.table``, or the bare table name when schema is blank."""
    if not schema_name or not schema_name.strip():
        return table_name
    return f"{schema_name}.{table_name}"


class Column(BaseModel):
    """A column owned by a table."""

    name: str = Field(..., min_length=1, description="Column name")
    data_type: str = Field(default="", description="Declared data type")
    is_nullable: bool = Field(default=True, description="Whether column can be NULL")
    is_primary_key: bool = Field(default=False, description="Part of the primary key")
    is_foreign_key: bool = Field(default=False, description="Part of a foreign key")
    summary: str | None = Field(None, description="Human-readable column summary")

    model_config = ConfigDict(frozen=True)


class ForeignKey(BaseModel):
    """
    Foreign key relationship.

    The owning table is always the referencing (from) side. Columns map
    positionally: from_columns[i] references to_columns[i].
    """

    name: str = Field(..., description="Constraint name")
    from_schema: str = Field(default="public", description="Referencing schema")
    from_table: str = Field(..., description="Referencing table")
    from_columns: list[str] = Field(default_factory=list, description="Referencing columns")
    to_schema: str = Field(default="public", description="Referenced schema")
    to_table: str = Field(..., description="Referenced table")
    to_columns: list[str] = Field(default_factory=list, description="Referenced columns")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_column_pairs(self) -> "ForeignKey":
        """Composite keys must pair up positionally."""
        if len(self.from_columns) != len(self.to_columns):
            raise ValueError(
                f"Foreign key '{self.name}' has {len(self.from_columns)} referencing "
                f"columns but {len(self.to_columns)} referenced columns"
            )
        return self

    @property
    def from_full_name(self) -> str:
        return join_full_name(self.from_schema, self.from_table)

    @property
    def to_full_name(self) -> str:
        return join_full_name(self.to_schema, self.to_table)


class Table(BaseModel):
    """A table with its columns, primary key and outgoing foreign keys."""

    schema_name: str = Field(default="public", description="Schema namespace")
    table_name: str = Field(..., min_length=1, description="Bare table name")
    columns: list[Column] = Field(default_factory=list, description="Ordered columns")
    primary_key: list[str] = Field(default_factory=list, description="Primary key column names")
    foreign_keys: list[ForeignKey] = Field(
        default_factory=list, description="Foreign keys where this table is the referencing side"
    )
    summary: str | None = Field(None, description="Micro-summary used for relevance scoring")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_key_columns(self) -> "Table":
        """Key column names must refer to owned columns."""
        owned = {column.name.lower() for column in self.columns}
        for name in self.primary_key:
            if name.lower() not in owned:
                raise ValueError(
                    f"Primary key column '{name}' is not a column of {self.full_name}"
                )
        for fk in self.foreign_keys:
            for name in fk.from_columns:
                if name.lower() not in owned:
                    raise ValueError(
                        f"Foreign key '{fk.name}' column '{name}' is not a column of "
                        f"{self.full_name}"
                    )
        return self

    @property
    def full_name(self) -> str:
        return join_full_name(self.schema_name, self.table_name)

    def get_column(self, name: str) -> Column | None:
        """Find an owned column by name (case-insensitive)."""
        target = name.lower()
        for column in self.columns:
            if column.name.lower() == target:
                return column
        return None

    def key_columns(self) -> list[Column]:
        """Primary and foreign key columns in declared order."""
        return [c for c in self.columns if c.is_primary_key or c.is_foreign_key]


class DatabaseSchema(BaseModel):
    """
    Snapshot of a database schema.

    Tables are unique by full name (case-insensitive). Synonym keys are
    stored lower-cased so lookups are case-insensitive.
    """

    server_name: str = Field(default="", description="Server identity")
    database_name: str = Field(default="", description="Database name")
    tables: list[Table] = Field(default_factory=list, description="Tables in the schema")
    synonyms: dict[str, str] = Field(
        default_factory=dict,
        description="User-facing alias -> canonical bare table name",
    )

    model_config = ConfigDict(frozen=True)

    @field_validator("synonyms")
    @classmethod
    def normalize_synonyms(cls, v: dict[str, str]) -> dict[str, str]:
        """Lower-case synonym keys; first definition of a key wins."""
        normalized: dict[str, str] = {}
        for key, value in v.items():
            normalized.setdefault(key.lower(), value)
        return normalized

    @model_validator(mode="after")
    def validate_unique_tables(self) -> "DatabaseSchema":
        seen: set[str] = set()
        for table in self.tables:
            key = table.full_name.lower()
            if key in seen:
                raise ValueError(f"Duplicate table in schema: {table.full_name}")
            seen.add(key)
        return self

    def get_table(self, name: str) -> Table | None:
        """Resolve a table by bare or full name (case-insensitive)."""
        target = name.lower()
        for table in self.tables:
            if table.table_name.lower() == target or table.full_name.lower() == target:
                return table
        return None

    def table_by_full_name(self, full_name: str) -> Table | None:
        target = full_name.lower()
        for table in self.tables:
            if table.full_name.lower() == target:
                return table
        return None

    def resolve_synonym(self, term: str) -> str | None:
        return self.synonyms.get(term.lower())


class JoinEdge(BaseModel):
    """
    A foreign-key hop used to connect two tables.

    Identity is (from table, to table, constraint name), compared
    case-insensitively, so edges found via different paths deduplicate.
    """

    from_table: Table
    to_table: Table
    foreign_key: ForeignKey

    model_config = ConfigDict(frozen=True)

    @property
    def identity(self) -> tuple[str, str, str]:
        return (
            self.from_table.full_name.lower(),
            self.to_table.full_name.lower(),
            self.foreign_key.name.lower(),
        )

    @property
    def is_reversed(self) -> bool:
        """True when the edge walks the foreign key from the referenced side."""
        fk = self.foreign_key
        return (
            self.from_table.full_name.lower() == fk.to_full_name.lower()
            and self.to_table.full_name.lower() == fk.from_full_name.lower()
            and fk.from_full_name.lower() != fk.to_full_name.lower()
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JoinEdge):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)


class JoinStep(BaseModel):
    """One ``JOIN <table> AS <alias> ON <condition>`` of a join plan."""

    table: Table
    alias: str
    condition: str

    model_config = ConfigDict(frozen=True)


class JoinPlan(BaseModel):
    """Ordered tables plus the edges that connect them."""

    tables: list[Table] = Field(default_factory=list)
    joins: list[JoinEdge] = Field(default_factory=list)

    def aliases(self, alias_prefix: str = "t") -> dict[str, str]:
        """
        Positional aliases keyed by lower-cased full name.

        Selected tables get t0, t1, ... in order; tables reached only as
        intermediate hops get the next free aliases in edge order.
        """
        alias_map: dict[str, str] = {}
        for table in self._tables_in_alias_order():
            key = table.full_name.lower()
            if key not in alias_map:
                alias_map[key] = f"{alias_prefix}{len(alias_map)}"
        return alias_map

    def on_clauses(self, alias_prefix: str = "t") -> list[str]:
        """One equality conjunction per join edge, e.g. ``t0.ClubId = t1.Id``."""
        alias_map = self.aliases(alias_prefix)
        clauses = []
        for edge in self.joins:
            fk = edge.foreign_key
            left = alias_map[edge.from_table.full_name.lower()]
            right = alias_map[edge.to_table.full_name.lower()]
            if edge.is_reversed:
                left, right = right, left
            parts = [
                f"{left}.{from_col} = {right}.{to_col}"
                for from_col, to_col in zip(fk.from_columns, fk.to_columns)
            ]
            clauses.append(" AND ".join(parts))
        return clauses

    def _tables_in_alias_order(self) -> Iterator[Table]:
        yield from self.tables
        for edge in self.joins:
            yield edge.from_table
            yield edge.to_table

    def join_steps(self, alias_prefix: str = "t") -> list[JoinStep]:
        """
        The JOIN clauses of the plan in attach order.

        Starting from the first table, each edge that touches the joined set
        attaches its other end, so hop tables appear before the tables they
        lead to. Every attached table gets exactly one step carrying the ON
        clause of its edge.
        """
        if not self.tables or not self.joins:
            return []

        alias_map = self.aliases(alias_prefix)
        pending = list(zip(self.joins, self.on_clauses(alias_prefix)))
        joined = {self.tables[0].full_name.lower()}
        steps = []
        while pending:
            for index, (edge, clause) in enumerate(pending):
                ends = {edge.from_table.full_name.lower(), edge.to_table.full_name.lower()}
                if ends & joined:
                    break
            else:
                break
            del pending[index]
            for table in (edge.from_table, edge.to_table):
                key = table.full_name.lower()
                if key not in joined:
                    joined.add(key)
                    steps.append(JoinStep(table=table, alias=alias_map[key], condition=clause))
        return steps
