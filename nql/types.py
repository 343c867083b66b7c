from dataclasses import dataclass, field
from typing import Any, Dict, Optional, List

from nql.errors.codes import ErrorCode


# =====================
# Schema
# =====================


@dataclass(frozen=True)
class TableSchema:
    columns: List[str]
    types: List[str] = field(default_factory=list)


# table name -> columns, in the store's natural (insertion) order
SchemaSnapshot = Dict[str, TableSchema]


@dataclass(frozen=True)
class AvailabilityInfo:
    """Which calendar periods actually hold rows, per logical dataset."""

    periods: Dict[str, List[str]] = field(default_factory=dict)
    notes: Optional[str] = None


# =====================
# Plan / chart
# =====================

CHART_TYPES = ("line", "bar", "area", "pie")


@dataclass(frozen=True)
class ChartSpec:
    type: Optional[str] = None
    x: str = ""
    y: List[str] = field(default_factory=list)
    title: Optional[str] = None
    stack: Optional[bool] = None
    labels: Optional[Dict[str, str]] = None


@dataclass(frozen=True)
class Plan:
    summary: str
    sql: str
    chart_spec: ChartSpec
    caveats: str = ""
    ask_back: Optional[str] = None


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ExecutionResult:
    fields: List[str]
    rows: List[Dict[str, Any]]


# =====================
# Tracing / Observability
# =====================


@dataclass(frozen=True)
class StageTrace:
    stage: str
    duration_ms: float
    summary: str = ""
    notes: Optional[Dict[str, Any]] = None

    # Optional observability fields
    token_in: Optional[int] = None
    token_out: Optional[int] = None
    cost_usd: Optional[float] = None

    sql_length: Optional[int] = None
    row_count: Optional[int] = None


# =====================
# Stage-level contract
# =====================


@dataclass(frozen=True)
class StageResult:
    ok: bool

    data: Optional[Any] = None
    trace: Optional[StageTrace] = None

    # Human-readable error messages (debug / UI only)
    error: Optional[List[str]] = None

    # === Contract-level semantics ===
    error_code: Optional[ErrorCode] = None


# =====================
# Final pipeline result
# =====================


@dataclass(frozen=True)
class AskResult:
    """
    Final domain result of the plan-and-execute path.
    Adapters (HTTP/CLI) should serialize this to dict/JSON at the boundary.
    """

    explanation: str
    ask_back: Optional[str]
    sql: str
    fields: List[str]
    rows: List[Dict[str, Any]]
    chart_spec: ChartSpec
    caveats: str = ""

    # Observability
    traces: List[Dict[str, Any]] = field(default_factory=list)
