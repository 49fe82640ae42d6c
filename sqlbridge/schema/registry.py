"""
Schema Registry

Load-or-build cache of the DatabaseSchema snapshot.

The registry owns the single active snapshot for the process. Installing a
new snapshot is one reference assignment, so concurrent readers always see
either the old or the new schema, never a partial one.

Usage:
    registry = SchemaRegistry(FileCacheStore(Path("~/.sqlbridge/cache")))
    schema = await registry.load_or_build(build_schema)
    club = registry.get_table("Club")
"""

import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from sqlbridge.models.schema import DatabaseSchema, Table

logger = logging.getLogger(__name__)

BuildSchemaFn = Callable[[], Awaitable[DatabaseSchema]]


class CacheStore(Protocol):
    """Durable key-value storage for serialized schema snapshots."""

    def load(self, key: str) -> bytes | None: ...

    def save(self, key: str, data: bytes) -> None: ...


class FileCacheStore:
    """Cache store backed by ``<root>/<key>.json`` files."""

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser()

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def load(self, key: str) -> bytes | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read schema cache {path}: {e}")
            return None

    def save(self, key: str, data: bytes) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


class SchemaRegistry:
    """
    Holds the active schema snapshot and its cache artifact.

    Attributes:
        store: Cache store used to persist snapshots
        key: Cache key of the snapshot
    """

    def __init__(self, store: CacheStore, key: str = "schema-registry"):
        self.store = store
        self.key = key
        self._schema: DatabaseSchema | None = None

    @property
    def schema(self) -> DatabaseSchema | None:
        """Active snapshot, or None before the first load."""
        return self._schema

    @property
    def is_loaded(self) -> bool:
        return self._schema is not None

    async def load_or_build(self, build_fn: BuildSchemaFn) -> DatabaseSchema:
        """
        Load the cached schema, or build and persist a new one.

        A missing, corrupt or unreadable cache artifact falls back to
        ``build_fn``. Errors raised by ``build_fn`` propagate and leave the
        active snapshot untouched.

        Args:
            build_fn: Async callable introspecting the database

        Returns:
            The active DatabaseSchema
        """
        cached = self._load_cached()
        if cached is not None:
            logger.info(
                f"Loaded schema from cache ({len(cached.tables)} tables)",
                extra={"cache_key": self.key, "database": cached.database_name},
            )
            self._install(cached)
            return cached

        return await self.rebuild(build_fn)

    async def rebuild(self, build_fn: BuildSchemaFn) -> DatabaseSchema:
        """Build a fresh snapshot, persist it and make it active."""
        logger.info("Building schema from database", extra={"cache_key": self.key})
        built = await build_fn()
        self.save(built)
        self._install(built)
        return built

    def save(self, schema: DatabaseSchema) -> None:
        """Persist a snapshot unconditionally."""
        payload = schema.model_dump_json(indent=2).encode("utf-8")
        self.store.save(self.key, payload)
        logger.debug(f"Saved schema snapshot ({len(payload)} bytes)", extra={"cache_key": self.key})

    def get_table(self, name: str) -> Table | None:
        """Resolve a table by bare or ``schema.table`` name, case-insensitive."""
        schema = self._schema
        if schema is None:
            return None
        return schema.get_table(name)

    def get_tables(self) -> tuple[Table, ...]:
        schema = self._schema
        if schema is None:
            return ()
        return tuple(schema.tables)

    def _install(self, schema: DatabaseSchema) -> None:
        self._schema = schema

    def _load_cached(self) -> DatabaseSchema | None:
        try:
            data = self.store.load(self.key)
        except OSError as e:
            logger.warning(f"Schema cache unavailable, rebuilding: {e}")
            return None
        if not data:
            return None
        try:
            return DatabaseSchema.model_validate_json(data)
        except (ValidationError, ValueError) as e:
            logger.warning(
                f"Ignoring invalid schema cache '{self.key}': {e}",
                extra={"cache_key": self.key},
            )
            return None
