import logging
import time

from adapters.db.base import DBAdapter
from nql.errors.exceptions import ExecutionError
from nql.types import ExecutionResult, StageResult, StageTrace

log = logging.getLogger(__name__)


class Executor:
    """Runs a guarded SELECT on the store and shapes the rows."""

    name = "execute"

    def __init__(self, db: DBAdapter):
        self.db = db

    def run(self, sql: str) -> StageResult:
        t0 = time.perf_counter()
        try:
            rows = self.db.execute(sql)
        except Exception as e:
            log.warning(
                "Query execution failed",
                extra={"error_type": type(e).__name__, "sql_length": len(sql or "")},
            )
            raise ExecutionError(
                "Query execution failed", detail=str(e), sql=sql
            ) from e

        # fields come from the first row; zero rows means no fields
        fields = list(rows[0].keys()) if rows else []
        trace = StageTrace(
            stage=self.name,
            duration_ms=(time.perf_counter() - t0) * 1000,
            summary="ok",
            sql_length=len(sql or ""),
            row_count=len(rows),
            notes={"col_count": len(fields), "adapter": getattr(self.db, "name", "")},
        )
        return StageResult(
            ok=True, data=ExecutionResult(fields=fields, rows=rows), trace=trace
        )
