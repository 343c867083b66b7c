from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional, Protocol, Sequence, Tuple

from nql.metrics import schema_cache_events_total
from nql.types import SchemaSnapshot

log = logging.getLogger(__name__)

DEFAULT_SCHEMA_TTL_SEC = 300.0
DEFAULT_EXCLUDE_PREFIXES: Tuple[str, ...] = ("pg_", "sql_", "_prisma_", "sqlite_")


class SchemaSource(Protocol):
    def introspect(
        self, *, namespace: str, exclude_prefixes: Sequence[str]
    ) -> SchemaSnapshot:
        """Return {table: TableSchema} for user-queryable tables, in store order."""


class SchemaCache:
    """
    Single-slot TTL cache for the schema snapshot.

    The snapshot reference is replaced with one assignment, so concurrent
    refreshes are last-writer-wins and readers never see a partial snapshot.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_SCHEMA_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[Tuple[float, SchemaSnapshot]] = None

    def get(self) -> Optional[SchemaSnapshot]:
        """Return the cached snapshot if present and younger than the TTL."""
        entry = self._entry
        if entry is None:
            schema_cache_events_total.labels(hit="false").inc()
            return None

        ts, snapshot = entry
        if self._clock() - ts < self.ttl:
            schema_cache_events_total.labels(hit="true").inc()
            return snapshot

        schema_cache_events_total.labels(hit="false").inc()
        return None

    def put(self, snapshot: SchemaSnapshot) -> None:
        self._entry = (self._clock(), snapshot)

    def age(self) -> Optional[float]:
        entry = self._entry
        return None if entry is None else self._clock() - entry[0]

    def clear(self) -> None:
        self._entry = None


class SchemaProvider:
    """Introspects the store on cache miss and serves the snapshot until expiry."""

    def __init__(
        self,
        source: SchemaSource,
        cache: SchemaCache | None = None,
        *,
        namespace: str = "public",
        exclude_prefixes: Sequence[str] = DEFAULT_EXCLUDE_PREFIXES,
    ) -> None:
        self.source = source
        self.cache = cache or SchemaCache()
        self.namespace = namespace
        self.exclude_prefixes = tuple(exclude_prefixes)

    def get_schema(self) -> SchemaSnapshot:
        cached = self.cache.get()
        if cached is not None:
            return cached

        # Introspection errors propagate: no stale fallback.
        raw = self.source.introspect(
            namespace=self.namespace, exclude_prefixes=self.exclude_prefixes
        )
        snapshot: SchemaSnapshot = {
            table: spec
            for table, spec in raw.items()
            if not table.startswith(self.exclude_prefixes)
        }
        self.cache.put(snapshot)
        log.info(
            "Schema snapshot refreshed",
            extra={"tables": len(snapshot), "namespace": self.namespace},
        )
        return snapshot


def schema_to_prompt(schema: SchemaSnapshot) -> str:
    """One `table(col1, col2, ...)` line per table, in snapshot order."""
    return "\n".join(
        f"{table}({', '.join(spec.columns)})" for table, spec in schema.items()
    )


def restrict_schema(
    schema: SchemaSnapshot, hints: Optional[Iterable[str]]
) -> SchemaSnapshot:
    """Keep only hinted tables; no hints means the full schema."""
    wanted = {h for h in (hints or []) if h}
    if not wanted:
        return schema
    return {table: spec for table, spec in schema.items() if table in wanted}
