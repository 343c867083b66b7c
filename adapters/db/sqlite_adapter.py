import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, List, Sequence

from adapters.db.base import DBAdapter
from nql.types import SchemaSnapshot, TableSchema

log = logging.getLogger(__name__)

DEFAULT_STATEMENT_TIMEOUT_MS = 15000
# progress handler granularity, in SQLite VM instructions
_PROGRESS_STEPS = 1000


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SQLiteAdapter(DBAdapter):
    name = "sqlite"
    dialect = "sqlite"

    def __init__(
        self, path: str, *, statement_timeout_ms: int = DEFAULT_STATEMENT_TIMEOUT_MS
    ):
        # resolve absolute path for safety
        self.path = Path(path).resolve()
        self.statement_timeout_ms = int(statement_timeout_ms)
        log.info("SQLiteAdapter initialized with DB path: %s", self.path)

    def _connect(self) -> sqlite3.Connection:
        if not self.path.exists():
            raise FileNotFoundError(f"SQLite DB does not exist: {self.path}")
        # use proper SQLite URI (not .as_uri())
        conn = sqlite3.connect(f"file:{self.path}?mode=ro", uri=True, timeout=3)
        conn.execute("PRAGMA query_only = ON;")
        return conn

    def introspect(
        self, *, namespace: str = "main", exclude_prefixes: Sequence[str] = ()
    ) -> SchemaSnapshot:
        conn = self._connect()
        try:
            cur = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
            )
            tables = [t[0] for t in cur.fetchall() if t and t[0]]

            snapshot: SchemaSnapshot = {}
            for t in tables:
                if any(t.startswith(p) for p in exclude_prefixes):
                    continue
                info = conn.execute(f"PRAGMA table_info({_quote_ident(t)});").fetchall()
                cols = [c[1] for c in info if c and len(c) >= 3]
                if cols:
                    snapshot[t] = TableSchema(
                        columns=cols, types=[c[2] or "" for c in info]
                    )
            return snapshot
        finally:
            conn.close()

    def execute(self, sql: str) -> List[Dict[str, Any]]:
        conn = self._connect()
        deadline = time.monotonic() + self.statement_timeout_ms / 1000.0
        # non-zero return aborts the running statement with OperationalError
        conn.set_progress_handler(
            lambda: 1 if time.monotonic() > deadline else 0, _PROGRESS_STEPS
        )
        try:
            log.debug("Executing SQL: %s", sql.strip().replace("\n", " "))
            cur = conn.execute(sql)
            if cur.description is None:
                return []
            cols = [desc[0] for desc in cur.description]
            rows = [dict(zip(cols, r)) for r in cur.fetchall()]
            log.info("Query executed successfully. Returned %d rows.", len(rows))
            return rows
        finally:
            conn.close()

    def ping(self) -> None:
        conn = self._connect()
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
