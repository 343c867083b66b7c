from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_ask_service
from app.schemas import (
    AskRequest,
    AskResponse,
    AvailabilityModel,
    PlanRequest,
    PlanResponse,
    SchemaResponse,
)
from app.services.ask_service import AskService
from nql.charts import chart_spec_to_dict
from nql.types import AvailabilityInfo

logger = logging.getLogger(__name__)

router = APIRouter()


# -------------------------------
# Helpers
# -------------------------------


def _availability(model: Optional[AvailabilityModel]) -> Optional[AvailabilityInfo]:
    if model is None:
        return None
    return AvailabilityInfo(periods=dict(model.periods), notes=model.notes)


def _split_tables(raw: Optional[str]) -> List[str]:
    return [t.strip() for t in (raw or "").split(",") if t.strip()]


# -------------------------------
# Endpoints
# -------------------------------


@router.post("/ask", name="ask_handler", response_model=AskResponse)
def ask_handler(
    request: AskRequest,
    svc: AskService = Depends(get_ask_service),
) -> Dict[str, Any]:
    result = svc.ask(
        question=request.question,
        language=request.lang,
        table_hints=request.tableHints,
        availability=_availability(request.availability),
    )
    logger.debug("ask handled", extra={"rows": len(result.rows)})
    return {
        "explanation": result.explanation,
        "askBack": result.ask_back,
        "sql": result.sql,
        "fields": result.fields,
        "rows": result.rows,
        "chartSpec": chart_spec_to_dict(result.chart_spec),
        "caveats": result.caveats,
        "traces": result.traces,
    }


@router.post("/plan", name="plan_handler", response_model=PlanResponse)
def plan_handler(
    request: PlanRequest,
    svc: AskService = Depends(get_ask_service),
) -> Dict[str, Any]:
    plan = svc.plan(
        question=request.question,
        language=request.lang,
        table_hints=request.tableHints,
        availability=_availability(request.availability),
    )
    return {
        "summary": plan.summary,
        "caveats": plan.caveats,
        "sql": plan.sql,
        "chartSpec": chart_spec_to_dict(plan.chart_spec),
        "askBack": plan.ask_back,
    }


@router.get("/schema", name="schema_handler", response_model=SchemaResponse)
def schema_handler(
    tables: Optional[str] = Query(default=None),
    svc: AskService = Depends(get_ask_service),
) -> Dict[str, Any]:
    snapshot, text = svc.schema(_split_tables(tables))
    return {
        "tables": {name: list(spec.columns) for name, spec in snapshot.items()},
        "schema_text": text,
    }
