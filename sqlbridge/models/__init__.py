"""
SQLBridge Models Module

Pydantic models for the schema snapshot and join planning.

Available Models:
    - Column: Column metadata owned by a table
    - ForeignKey: Referencing -> referenced column mapping
    - Table: Table with columns, primary key and foreign keys
    - DatabaseSchema: Immutable snapshot of tables and synonyms
    - JoinEdge: Foreign-key hop between two tables
    - JoinPlan: Ordered tables plus connecting edges

Usage:
    from sqlbridge.models import DatabaseSchema, Table, Column
"""

from sqlbridge.models.schema import (
    Column,
    DatabaseSchema,
    ForeignKey,
    JoinEdge,
    JoinPlan,
    Table,
    join_full_name,
)

__all__ = [
    "Column",
    "DatabaseSchema",
    "ForeignKey",
    "JoinEdge",
    "JoinPlan",
    "Table",
    "join_full_name",
]
