from __future__ import annotations

import json
import re
import time
from typing import Any, Dict, Optional

from nql.charts import normalize_chart_spec
from nql.errors.codes import ErrorCode
from nql.types import Plan, StageResult, StageTrace

# ```json\n{...}\n``` (any or no language tag)
_WRAPPING_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*(?P<body>.*?)\s*```$", re.DOTALL)
_FENCED_JSON_RE = re.compile(r"```[a-zA-Z]*\s*(?P<body>.*?)\s*```", re.DOTALL)

NO_JSON = "no_json"
MALFORMED_JSON = "malformed_json"


def _ms(t0: float) -> float:
    return (time.perf_counter() - t0) * 1000.0


def find_json_text(completion: str) -> Optional[str]:
    """
    Stage 1: the fenced body when fences wrap the completion, the trimmed
    completion when it already opens as JSON, else the first fenced block
    found in surrounding prose.
    """
    text = (completion or "").strip()
    m = _WRAPPING_FENCE_RE.match(text)
    if m:
        return m.group("body").strip() or None
    if text.startswith(("{", "[")):
        return text
    m = _FENCED_JSON_RE.search(text)
    if m:
        text = m.group("body").strip()
    return text or None


def extract_plan(completion: str) -> StageResult:
    """
    Parse a completion into the raw plan object.

    Never raises: failures come back as ok=False with notes.kind set to
    "no_json" (nothing JSON-like) or "malformed_json" (parse failure or a
    non-object value).
    """
    t0 = time.perf_counter()

    text = find_json_text(completion)
    if text is None or "{" not in text:
        return StageResult(
            ok=False,
            error=["No JSON object found in the completion"],
            error_code=ErrorCode.LLM_PARSE_ERROR,
            trace=StageTrace(
                stage="extract", duration_ms=_ms(t0), notes={"kind": NO_JSON}
            ),
        )

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        return StageResult(
            ok=False,
            error=[f"Malformed JSON: {e}"],
            error_code=ErrorCode.LLM_PARSE_ERROR,
            trace=StageTrace(
                stage="extract",
                duration_ms=_ms(t0),
                notes={"kind": MALFORMED_JSON, "excerpt": text[:200]},
            ),
        )

    if not isinstance(parsed, dict):
        return StageResult(
            ok=False,
            error=[f"Expected a JSON object, got {type(parsed).__name__}"],
            error_code=ErrorCode.LLM_PARSE_ERROR,
            trace=StageTrace(
                stage="extract", duration_ms=_ms(t0), notes={"kind": MALFORMED_JSON}
            ),
        )

    return StageResult(
        ok=True,
        data=parsed,
        trace=StageTrace(
            stage="extract",
            duration_ms=_ms(t0),
            notes={"keys": sorted(parsed.keys())},
        ),
    )


def _text(raw: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        val = raw.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""


def build_plan(raw: Dict[str, Any]) -> Plan:
    """Map the raw plan object onto a Plan, accepting legacy key spellings."""
    chart = raw.get("chartSpec")
    if chart is None:
        chart = raw.get("chart")
    return Plan(
        summary=_text(raw, "summary", "rationale"),
        caveats=_text(raw, "caveats"),
        sql=_text(raw, "sql"),
        chart_spec=normalize_chart_spec(chart),
        ask_back=_text(raw, "askBack", "ask_back") or None,
    )
