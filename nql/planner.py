from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from adapters.llm.base import CompletionService
from adapters.metrics.base import Metrics
from adapters.metrics.noop import NoOpMetrics
from nql.errors.codes import ErrorCode
from nql.errors.exceptions import (
    InputError,
    NQLError,
    PlanParseError,
    UnsafeQueryError,
)
from nql.extract import build_plan, extract_plan
from nql.prompts import build_prompt
from nql.safety import DEFAULT_ROW_CEILING, Safety
from nql.schema import SchemaProvider, restrict_schema, schema_to_prompt
from nql.types import AvailabilityInfo, Plan, SchemaSnapshot, StageResult, StageTrace
from nql.validator import Validator

__all__ = ["Planner"]

log = logging.getLogger(__name__)


class Planner:
    """
    Plan stages shared by both request modes:
      schema → prompt → completion → extract → safety → validate.

    Every stage appends one trace dict to the caller's list and reports to
    Metrics; the first failing stage raises a typed NQLError.
    """

    def __init__(
        self,
        *,
        llm: CompletionService,
        schema_provider: SchemaProvider,
        safety: Safety | None = None,
        validator: Validator | None = None,
        metrics: Metrics | None = None,
        temperature: float = 0.2,
        json_mode: bool = True,
        row_ceiling: int = DEFAULT_ROW_CEILING,
    ) -> None:
        self.llm = llm
        self.schema_provider = schema_provider
        self.safety = safety or Safety(row_ceiling=row_ceiling)
        self.validator = validator or Validator()
        self.metrics: Metrics = metrics or NoOpMetrics()
        self.temperature = temperature
        self.json_mode = json_mode
        self.row_ceiling = row_ceiling

    # ---------------------------- helpers ----------------------------
    def _record(
        self,
        traces: List[dict],
        *,
        stage: str,
        t0: float,
        ok: bool,
        error_code: Optional[ErrorCode] = None,
        trace: Optional[StageTrace] = None,
        **notes: Any,
    ) -> None:
        dt = (time.perf_counter() - t0) * 1000.0
        self.metrics.observe_stage_duration_ms(stage=stage, dt_ms=dt)
        self.metrics.inc_stage_call(stage=stage, ok=ok)
        if not ok and error_code is not None:
            self.metrics.inc_stage_error(stage=stage, error_code=error_code.value)

        if trace is not None:
            entry = dict(trace.__dict__)
            entry["stage"] = stage
        else:
            entry = {
                "stage": stage,
                "duration_ms": dt,
                "summary": "ok" if ok else "failed",
                "notes": dict(notes) if notes else None,
            }
        traces.append(entry)

    def _stage_failed(
        self, traces: List[dict], stage: str, t0: float, r: StageResult
    ) -> None:
        self._record(
            traces,
            stage=stage,
            t0=t0,
            ok=False,
            error_code=r.error_code,
            trace=r.trace,
        )

    def _usage_trace(self, t0: float) -> StageTrace:
        usage: Dict[str, Any] = {}
        get_usage = getattr(self.llm, "get_last_usage", None)
        if callable(get_usage):
            usage = get_usage() or {}
        return StageTrace(
            stage="completion",
            duration_ms=(time.perf_counter() - t0) * 1000.0,
            summary="ok",
            notes={"provider": getattr(self.llm, "PROVIDER_ID", "unknown")},
            token_in=usage.get("prompt_tokens"),
            token_out=usage.get("completion_tokens"),
            cost_usd=usage.get("cost_usd"),
        )

    # ---------------------------- stages ----------------------------
    def load_schema(self, traces: List[dict]) -> SchemaSnapshot:
        t0 = time.perf_counter()
        try:
            schema = self.schema_provider.get_schema()
        except Exception:
            self._record(traces, stage="schema", t0=t0, ok=False)
            raise
        self._record(traces, stage="schema", t0=t0, ok=True, tables=len(schema))
        return schema

    def draft(
        self,
        *,
        question: str,
        language: str = "en",
        availability: Optional[AvailabilityInfo] = None,
        table_hints: Optional[Iterable[str]] = None,
        traces: Optional[List[dict]] = None,
    ) -> Plan:
        """Produce a guarded, validated Plan. The returned sql is ready to run."""
        traces = traces if traces is not None else []
        if not question or not question.strip():
            raise InputError("Question must not be empty")

        schema = self.load_schema(traces)
        scoped = restrict_schema(schema, table_hints)

        # prompt
        t0 = time.perf_counter()
        prompt = build_prompt(
            question.strip(),
            language,
            schema_to_prompt(scoped),
            availability,
            row_ceiling=self.row_ceiling,
        )
        self._record(
            traces,
            stage="prompt",
            t0=t0,
            ok=True,
            tables=len(scoped),
            prompt_chars=len(prompt.user),
        )

        # completion
        t0 = time.perf_counter()
        try:
            completion = self.llm.complete(
                system=prompt.system,
                user=prompt.user,
                temperature=self.temperature,
                json_mode=self.json_mode,
            )
        except NQLError as e:
            self._record(traces, stage="completion", t0=t0, ok=False, error_code=e.code)
            raise
        self._record(
            traces, stage="completion", t0=t0, ok=True, trace=self._usage_trace(t0)
        )

        # extract
        t0 = time.perf_counter()
        r = extract_plan(completion)
        if not r.ok:
            self._stage_failed(traces, "extract", t0, r)
            kind = (r.trace.notes or {}).get("kind") if r.trace else None
            log.warning("Plan extraction failed", extra={"kind": kind})
            raise PlanParseError(
                "Could not parse a plan from the completion",
                detail="; ".join(r.error or []),
                extra={"kind": kind},
            )
        plan = build_plan(r.data)
        self._record(traces, stage="extract", t0=t0, ok=True, trace=r.trace)

        if not plan.sql:
            raise UnsafeQueryError(
                "The plan does not contain a SQL query", code=ErrorCode.NO_SQL
            )

        # safety
        t0 = time.perf_counter()
        r = self.safety.run(sql=plan.sql)
        if not r.ok:
            self._stage_failed(traces, "safety", t0, r)
            raise UnsafeQueryError(
                "; ".join(r.error or ["SQL not allowed"]),
                code=r.error_code or ErrorCode.SQL_NOT_ALLOWED,
                extra={"sql": plan.sql},
            )
        guarded = r.data["sql"]
        self._record(traces, stage="safety", t0=t0, ok=True, trace=r.trace)

        # validate
        t0 = time.perf_counter()
        r = self.validator.run(sql=guarded, schema=schema)
        if not r.ok:
            self._stage_failed(traces, "validate", t0, r)
            raise UnsafeQueryError(
                "; ".join(r.error or ["SQL not allowed"]),
                code=r.error_code or ErrorCode.SQL_NOT_ALLOWED,
                extra={"sql": guarded},
            )
        self._record(traces, stage="validate", t0=t0, ok=True, trace=r.trace)

        return replace(plan, sql=guarded)

    def plan(
        self,
        *,
        question: str,
        language: str = "en",
        availability: Optional[AvailabilityInfo] = None,
        table_hints: Optional[Iterable[str]] = None,
        traces: Optional[List[dict]] = None,
    ) -> Plan:
        """Plan-only mode: draft without executing."""
        try:
            plan = self.draft(
                question=question,
                language=language,
                availability=availability,
                table_hints=table_hints,
                traces=traces,
            )
        except Exception:
            self.metrics.inc_pipeline_run(mode="plan", status="error")
            raise
        self.metrics.inc_pipeline_run(mode="plan", status="ok")
        return plan
