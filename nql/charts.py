from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Optional

from nql.types import CHART_TYPES, ChartSpec

DEFAULT_CHART_TYPE = "bar"


def normalize_chart_spec(raw: Any) -> ChartSpec:
    """
    Coerce a model-proposed chart object into a ChartSpec.
    Fields with an unexpected shape are dropped, never guessed.
    """
    if not isinstance(raw, dict):
        return ChartSpec()

    kind = raw.get("type")
    x = raw.get("x")
    y = raw.get("y")
    title = raw.get("title")
    stack = raw.get("stack")
    labels = raw.get("labels")

    return ChartSpec(
        type=kind if kind in CHART_TYPES else None,
        x=x if isinstance(x, str) else "",
        y=[c for c in y if isinstance(c, str)] if isinstance(y, list) else [],
        title=title if isinstance(title, str) and title else None,
        stack=stack if isinstance(stack, bool) else None,
        labels=(
            {k: v for k, v in labels.items() if isinstance(v, str)}
            if isinstance(labels, dict)
            else None
        ),
    )


def resolve_chart_spec(
    spec: ChartSpec, fields: List[str], *, default_title: Optional[str] = None
) -> ChartSpec:
    """
    Align x/y with the columns the query actually returned.

    x not in fields → fields[0]; y filtered to fields, and when nothing
    survives → the (up to) two columns after x.
    """
    x = spec.x if spec.x in fields else (fields[0] if fields else "")
    y = [c for c in spec.y if c in fields]
    if not y:
        y = fields[1:3]

    labels: Optional[Dict[str, str]] = None
    if spec.labels:
        labels = {k: v for k, v in spec.labels.items() if k in fields} or None

    return replace(
        spec,
        type=spec.type or DEFAULT_CHART_TYPE,
        x=x,
        y=y,
        title=spec.title or default_title,
        labels=labels,
    )


def chart_spec_to_dict(spec: ChartSpec) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": spec.type, "x": spec.x, "y": list(spec.y)}
    if spec.title is not None:
        out["title"] = spec.title
    if spec.stack is not None:
        out["stack"] = spec.stack
    if spec.labels is not None:
        out["labels"] = dict(spec.labels)
    return out
