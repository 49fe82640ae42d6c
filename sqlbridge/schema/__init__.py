"""
Schema Module

Schema caching, relevance retrieval and join planning.

Components:
    - SchemaRegistry: Load-or-build cache of the active schema snapshot
    - SchemaBuilder: Introspects the database and applies schema hints
    - SchemaRetriever: Keyword scoring of tables and columns
    - JoinPathFinder: Shortest foreign-key join paths between tables
"""

from sqlbridge.schema.builder import SchemaBuilder, SchemaHints
from sqlbridge.schema.join_path import JoinPathFinder
from sqlbridge.schema.registry import CacheStore, FileCacheStore, SchemaRegistry
from sqlbridge.schema.retriever import SchemaNotLoadedError, SchemaRetriever, tokenize

__all__ = [
    "CacheStore",
    "FileCacheStore",
    "JoinPathFinder",
    "SchemaBuilder",
    "SchemaHints",
    "SchemaNotLoadedError",
    "SchemaRegistry",
    "SchemaRetriever",
    "tokenize",
]
