import sqlite3

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from nql.errors.exceptions import ExecutionError
from nql.executor import Executor

RUNAWAY_SQL = (
    "WITH RECURSIVE c(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM c) "
    "SELECT count(*) FROM c"
)


class FakeDB:
    name = "fake"
    dialect = "sqlite"

    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.executed = []

    def execute(self, sql):
        self.executed.append(sql)
        if self.error:
            raise self.error
        return self.rows


def test_executor_returns_fields_from_first_row():
    db = FakeDB(rows=[{"label": "2025-01", "sales": 10}, {"label": "2025-02", "sales": 12}])
    r = Executor(db).run("SELECT label, sales FROM t LIMIT 1000")
    assert r.ok
    assert r.data.fields == ["label", "sales"]
    assert len(r.data.rows) == 2
    assert r.trace.stage == "execute"
    assert r.trace.row_count == 2


def test_executor_wraps_db_errors():
    db = FakeDB(error=RuntimeError("relation does not exist"))
    with pytest.raises(ExecutionError) as ei:
        Executor(db).run("SELECT * FROM t LIMIT 1000")
    assert ei.value.sql == "SELECT * FROM t LIMIT 1000"
    assert ei.value.detail == "relation does not exist"
    assert ei.value.http_status == 400


# ---------------------------------------------------------------------------
# SQLite adapter
# ---------------------------------------------------------------------------


def test_sqlite_introspect_lists_tables_and_columns(demo_db):
    schema = SQLiteAdapter(demo_db).introspect(namespace="main", exclude_prefixes=())
    assert list(schema) == ["customers", "expenses", "sales"]
    assert schema["customers"].columns == ["id", "name", "created_at"]
    assert schema["sales"].types == ["TEXT", "REAL"]


def test_sqlite_introspect_excludes_prefixes(demo_db):
    schema = SQLiteAdapter(demo_db).introspect(exclude_prefixes=("cust",))
    assert "customers" not in schema


def test_sqlite_execute_returns_dict_rows(demo_db):
    rows = SQLiteAdapter(demo_db).execute(
        "SELECT month, amount FROM sales ORDER BY month LIMIT 2"
    )
    assert rows == [
        {"month": "2025-01", "amount": 1000.0},
        {"month": "2025-02", "amount": 1100.0},
    ]


def test_sqlite_session_is_read_only(demo_db):
    with pytest.raises(sqlite3.OperationalError):
        SQLiteAdapter(demo_db).execute("DELETE FROM sales")


def test_sqlite_statement_timeout_interrupts_runaway_query(demo_db):
    adapter = SQLiteAdapter(demo_db, statement_timeout_ms=50)
    with pytest.raises(sqlite3.OperationalError):
        adapter.execute(RUNAWAY_SQL)


def test_sqlite_missing_file(tmp_path):
    adapter = SQLiteAdapter(str(tmp_path / "missing.db"))
    with pytest.raises(FileNotFoundError):
        adapter.ping()
