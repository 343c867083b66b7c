from typing import Any, Dict, List, Protocol, Sequence

from nql.types import SchemaSnapshot


class DBAdapter(Protocol):
    """Read-only database adapter: schema source + query executor."""

    name: str
    dialect: str

    def introspect(
        self, *, namespace: str, exclude_prefixes: Sequence[str]
    ) -> SchemaSnapshot:
        """Return {table: TableSchema(columns, types)} in the store's natural order."""

    def execute(self, sql: str) -> List[Dict[str, Any]]:
        """Execute a SELECT query and return its rows as ordered column→value dicts."""

    def ping(self) -> None:
        """Raise if the store is unreachable."""
