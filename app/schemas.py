from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AvailabilityModel(BaseModel):
    periods: Dict[str, List[str]] = Field(default_factory=dict)
    notes: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class AskRequest(BaseModel):
    question: str = Field(..., min_length=1)
    lang: str = "en"
    tableHints: Optional[List[str]] = None
    availability: Optional[AvailabilityModel] = None

    model_config = ConfigDict(extra="ignore")


class PlanRequest(BaseModel):
    question: str = Field(..., min_length=1)
    lang: str = "en"
    tableHints: Optional[List[str]] = None
    availability: Optional[AvailabilityModel] = None

    model_config = ConfigDict(extra="ignore")


class ChartSpecModel(BaseModel):
    type: Optional[str] = None
    x: str = ""
    y: List[str] = Field(default_factory=list)
    title: Optional[str] = None
    stack: Optional[bool] = None
    labels: Optional[Dict[str, str]] = None


class TraceModel(BaseModel):
    stage: str
    duration_ms: float
    summary: str = ""
    notes: Dict[str, Any] | None = None
    token_in: int | None = None
    token_out: int | None = None
    cost_usd: float | None = None
    sql_length: int | None = None
    row_count: int | None = None


class AskResponse(BaseModel):
    explanation: str
    askBack: Optional[str] = None
    sql: str
    fields: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    chartSpec: ChartSpecModel
    caveats: str = ""
    traces: List[TraceModel] = Field(default_factory=list)


class PlanResponse(BaseModel):
    summary: str
    caveats: str = ""
    sql: str
    chartSpec: ChartSpecModel
    askBack: Optional[str] = None


class SchemaResponse(BaseModel):
    tables: Dict[str, List[str]] = Field(default_factory=dict)
    schema_text: str = ""


class ErrorResponse(BaseModel):
    error: str
    message: str
    detail: Optional[str] = None
    sql: Optional[str] = None
