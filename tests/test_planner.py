import json

import pytest

from adapters.db.sqlite_adapter import SQLiteAdapter
from nql.errors.codes import ErrorCode
from nql.errors.exceptions import (
    InputError,
    PlanParseError,
    UnsafeQueryError,
    UpstreamTransportError,
)
from nql.planner import Planner
from nql.schema import SchemaProvider
from nql.types import AvailabilityInfo


class RecordingMetrics:
    def __init__(self):
        self.calls = []
        self.errors = []
        self.runs = []

    def observe_stage_duration_ms(self, *, stage, dt_ms):
        pass

    def inc_pipeline_run(self, *, mode, status):
        self.runs.append((mode, status))

    def inc_stage_call(self, *, stage, ok):
        self.calls.append((stage, ok))

    def inc_stage_error(self, *, stage, error_code):
        self.errors.append((stage, error_code))


def _planner(demo_db, llm, metrics=None):
    provider = SchemaProvider(SQLiteAdapter(demo_db))
    return Planner(llm=llm, schema_provider=provider, metrics=metrics)


def _plan(**fields):
    return json.dumps(fields)


def test_plan_returns_guarded_sql_and_traces(demo_db, fake_llm):
    llm = fake_llm(
        _plan(
            summary="Monthly sales",
            sql="SELECT month, amount FROM sales;",
            chartSpec={"type": "line", "x": "month", "y": ["amount"]},
        )
    )
    traces = []
    plan = _planner(demo_db, llm).draft(question="monthly sales", traces=traces)

    assert plan.sql == "SELECT month, amount FROM sales LIMIT 1000"
    assert plan.summary == "Monthly sales"
    assert [t["stage"] for t in traces] == [
        "schema",
        "prompt",
        "completion",
        "extract",
        "safety",
        "validate",
    ]
    completion = traces[2]
    assert completion["token_in"] == 11
    assert completion["token_out"] == 7


def test_completion_call_settings(demo_db, fake_llm):
    llm = fake_llm(_plan(summary="s", sql="SELECT 1 FROM sales"))
    _planner(demo_db, llm).plan(question="q", language="es")

    call = llm.calls[0]
    assert call["temperature"] == 0.2
    assert call["json_mode"] is True
    assert call["user"].startswith("Esquema:\n")
    assert "sales(month, amount)" in call["user"]


def test_table_hints_restrict_prompt_schema(demo_db, fake_llm):
    llm = fake_llm(_plan(summary="s", sql="SELECT month FROM sales"))
    _planner(demo_db, llm).draft(question="q", table_hints=["sales"])

    user = llm.calls[0]["user"]
    assert "sales(month, amount)" in user
    assert "expenses(" not in user
    assert "customers(" not in user


def test_availability_reaches_prompt(demo_db, fake_llm):
    llm = fake_llm(_plan(summary="s", sql="SELECT month FROM sales"))
    availability = AvailabilityInfo(periods={"sales": ["2025-01", "2025-02"]})
    _planner(demo_db, llm).plan(question="q", availability=availability)
    assert "- sales: 2025-01, 2025-02" in llm.calls[0]["user"]


def test_empty_question_is_input_error(demo_db, fake_llm):
    llm = fake_llm("{}")
    with pytest.raises(InputError):
        _planner(demo_db, llm).plan(question="   ")
    assert llm.calls == []


def test_unparseable_completion_raises_parse_error(demo_db, fake_llm):
    metrics = RecordingMetrics()
    with pytest.raises(PlanParseError) as ei:
        _planner(demo_db, fake_llm("no json here"), metrics).plan(question="q")

    assert ei.value.code == ErrorCode.LLM_PARSE_ERROR
    assert ei.value.extra["kind"] == "no_json"
    assert ("extract", "llm_parse_error") in metrics.errors
    assert metrics.runs == [("plan", "error")]


def test_plan_without_sql_is_no_sql(demo_db, fake_llm):
    with pytest.raises(UnsafeQueryError) as ei:
        _planner(demo_db, fake_llm(_plan(summary="no idea"))).plan(question="q")
    assert ei.value.code == ErrorCode.NO_SQL
    assert ei.value.http_status == 400


def test_mutation_is_blocked_by_safety(demo_db, fake_llm):
    llm = fake_llm(_plan(summary="s", sql="DROP TABLE sales"))
    with pytest.raises(UnsafeQueryError) as ei:
        _planner(demo_db, llm).plan(question="q")
    assert ei.value.code == ErrorCode.SQL_NOT_ALLOWED


def test_unknown_table_is_blocked_by_validator(demo_db, fake_llm):
    llm = fake_llm(_plan(summary="s", sql="SELECT * FROM ghosts"))
    with pytest.raises(UnsafeQueryError) as ei:
        _planner(demo_db, llm).plan(question="q")
    assert ei.value.code == ErrorCode.UNKNOWN_TABLE
    assert ei.value.extra["sql"] == "SELECT * FROM ghosts LIMIT 1000"


def test_upstream_errors_propagate_unchanged(demo_db, fake_llm):
    err = UpstreamTransportError("boom", code=ErrorCode.LLM_TIMEOUT)
    metrics = RecordingMetrics()
    with pytest.raises(UpstreamTransportError) as ei:
        _planner(demo_db, fake_llm(error=err), metrics).plan(question="q")
    assert ei.value is err
    assert ("completion", False) in metrics.calls


def test_successful_plan_counts_run(demo_db, fake_llm):
    metrics = RecordingMetrics()
    llm = fake_llm(_plan(summary="s", sql="SELECT month FROM sales"))
    _planner(demo_db, llm, metrics).plan(question="q")
    assert metrics.runs == [("plan", "ok")]
    assert ("validate", True) in metrics.calls
