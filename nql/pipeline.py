from __future__ import annotations

import logging
import time
from typing import Iterable, List, Optional

from adapters.metrics.base import Metrics
from adapters.metrics.noop import NoOpMetrics
from nql.charts import resolve_chart_spec
from nql.errors.exceptions import NQLError
from nql.executor import Executor
from nql.planner import Planner
from nql.prompts import templates as T
from nql.types import AskResult, AvailabilityInfo, ExecutionResult, Plan

log = logging.getLogger(__name__)


class Pipeline:
    """
    NQL pipeline:
      planner (schema → prompt → completion → extract → safety → validate)
      → executor → chart resolution.
    """

    def __init__(
        self,
        *,
        planner: Planner,
        executor: Executor,
        metrics: Metrics | None = None,
    ):
        self.planner = planner
        self.executor = executor
        self.metrics: Metrics = metrics or NoOpMetrics()

    @staticmethod
    def _normalize_traces(traces: List[dict]) -> List[dict]:
        norm: List[dict] = []
        for t in traces:
            entry = {
                "stage": str(t.get("stage", "unknown")),
                "duration_ms": round(float(t.get("duration_ms") or 0.0), 3),
                "summary": t.get("summary") or "",
                "notes": t.get("notes") or {},
            }
            for key in ("token_in", "token_out", "cost_usd", "sql_length", "row_count"):
                if t.get(key) is not None:
                    entry[key] = t[key]
            norm.append(entry)
        return norm

    def plan(
        self,
        *,
        question: str,
        language: str = "en",
        availability: Optional[AvailabilityInfo] = None,
        table_hints: Optional[Iterable[str]] = None,
    ) -> Plan:
        return self.planner.plan(
            question=question,
            language=language,
            availability=availability,
            table_hints=table_hints,
        )

    def ask(
        self,
        *,
        question: str,
        language: str = "en",
        table_hints: Optional[Iterable[str]] = None,
        availability: Optional[AvailabilityInfo] = None,
    ) -> AskResult:
        t_all0 = time.perf_counter()
        traces: List[dict] = []
        try:
            plan = self.planner.draft(
                question=question,
                language=language,
                availability=availability,
                table_hints=table_hints,
                traces=traces,
            )

            t0 = time.perf_counter()
            try:
                r = self.executor.run(plan.sql)
            except NQLError as e:
                dt = (time.perf_counter() - t0) * 1000.0
                self.metrics.observe_stage_duration_ms(stage="execute", dt_ms=dt)
                self.metrics.inc_stage_call(stage="execute", ok=False)
                self.metrics.inc_stage_error(stage="execute", error_code=e.code.value)
                raise
        except Exception:
            self.metrics.inc_pipeline_run(mode="ask", status="error")
            raise

        dt = (time.perf_counter() - t0) * 1000.0
        self.metrics.observe_stage_duration_ms(stage="execute", dt_ms=dt)
        self.metrics.inc_stage_call(stage="execute", ok=True)
        if r.trace is not None:
            traces.append(dict(r.trace.__dict__))
        result: ExecutionResult = r.data

        lang = T.normalize_language(language)
        chart = resolve_chart_spec(
            plan.chart_spec, result.fields, default_title=T.DEFAULT_CHART_TITLE[lang]
        )

        self.metrics.inc_pipeline_run(mode="ask", status="ok")
        log.info(
            "Ask completed",
            extra={
                "rows": len(result.rows),
                "duration_ms": round((time.perf_counter() - t_all0) * 1000.0, 1),
            },
        )
        return AskResult(
            explanation=plan.summary or T.DEFAULT_EXPLANATION[lang],
            ask_back=plan.ask_back,
            sql=plan.sql,
            fields=result.fields,
            rows=result.rows,
            chart_spec=chart,
            caveats=plan.caveats,
            traces=self._normalize_traces(traces),
        )
