from __future__ import annotations

import re
import time
from typing import Pattern

from nql.errors.codes import ErrorCode
from nql.metrics import safety_blocks_total, safety_checks_total
from nql.types import StageResult, StageTrace


# ------------------------- Zero-width & basic regexes -------------------------

_ZERO_WIDTH = [
    "\u200b",
    "\u200c",
    "\u200d",
    "\ufeff",
    "\u2060",
    "\u180e",
    "\u200e",
    "\u200f",
]
_ZERO_WIDTH_RE = re.compile("|".join(map(re.escape, _ZERO_WIDTH)))

_LINE_COMMENT_RE = re.compile(r"--[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)

# Markdown code fences: ```sql\n ... \n```
_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\n(?P<body>.*)\n```\s*$", re.DOTALL)

_SELECT_HEAD_RE = re.compile(r"^select\b", re.IGNORECASE)

BANNED_KEYWORDS = (
    "insert",
    "update",
    "delete",
    "merge",
    "alter",
    "create",
    "drop",
    "truncate",
    "grant",
    "revoke",
    "call",
    "do",
    "copy",
    "vacuum",
    "analyze",
)

# Strict forbidden keywords (word boundaries)
_FORBIDDEN: Pattern[str] = re.compile(
    r"\b(" + "|".join(BANNED_KEYWORDS) + r")\b", re.IGNORECASE
)

# LIMIT n | LIMIT offset, count | LIMIT ALL (n OFFSET m needs no special case)
_LIMIT_RE = re.compile(
    r"\blimit\s+(?:(?P<all>all)\b|(?:(?P<offset>\d+)\s*,\s*)?(?P<count>\d+)\b)",
    re.IGNORECASE,
)

# Quoted literals and identifiers; blanked before scanning for clauses
_QUOTED_RE = re.compile(r"""'(?:[^']|'')*'|"(?:[^"]|"")*"|`[^`]*`""")

STATEMENT_SEPARATOR = ";"
DEFAULT_ROW_CEILING = 1000


def _ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


def strip_comments(sql: str) -> str:
    sql = _BLOCK_COMMENT_RE.sub("", sql)
    sql = _LINE_COMMENT_RE.sub("", sql)
    return sql


def forbidden_keyword(sql: str) -> str | None:
    """Return the first banned keyword found as a whole word, if any."""
    m = _FORBIDDEN.search(sql)
    return m.group(0).lower() if m else None


def is_select_only(sql: str) -> bool:
    """
    True iff, after removing comments, the statement starts with SELECT,
    carries no statement separator and no mutating keyword.
    """
    body = strip_comments(sql or "").strip()
    if STATEMENT_SEPARATOR in body:
        return False
    if forbidden_keyword(body):
        return False
    return bool(_SELECT_HEAD_RE.match(body))


def guard_sql(sql: str, *, strict: bool = False) -> str:
    """
    Remove zero-width chars, markdown fences, comments, surrounding whitespace
    and trailing separators.

    With strict=True, everything after the first separator is dropped, keeping
    only the first statement of a malformed multi-statement completion.
    """
    if not sql:
        return ""
    body = _ZERO_WIDTH_RE.sub("", sql)
    m = _FENCE_RE.match(body)
    if m:
        body = m.group("body")
    body = strip_comments(body).strip()
    if strict and STATEMENT_SEPARATOR in body:
        body = body.split(STATEMENT_SEPARATOR, 1)[0]
    return body.rstrip().rstrip(STATEMENT_SEPARATOR).rstrip()


def mask_quoted(sql: str) -> str:
    """Blank out quoted text; offsets stay aligned with the input."""
    return _QUOTED_RE.sub(lambda m: " " * len(m.group(0)), sql)


def _is_outer_clause(masked: str, end: int) -> bool:
    """A LIMIT followed by an unmatched ')' belongs to a subquery."""
    depth = 0
    for ch in masked[end:]:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                return False
    return True


def force_limit(sql: str, max_rows: int = DEFAULT_ROW_CEILING) -> str:
    """
    Bound the outer row count:
      - LIMIT n with n <= max_rows → unchanged
      - LIMIT n with n >  max_rows → rewritten to LIMIT max_rows
      - LIMIT a, b                 → b is the count; a (offset) is kept
      - LIMIT ALL                  → rewritten to LIMIT max_rows
      - no outer LIMIT             → ' LIMIT max_rows' appended
    """
    masked = mask_quoted(sql)
    outer = None
    for m in _LIMIT_RE.finditer(masked):
        if _is_outer_clause(masked, m.end()):
            outer = m

    if outer is None:
        return f"{sql.rstrip()} LIMIT {max_rows}"

    if outer.group("all") is None and int(outer.group("count")) <= max_rows:
        return sql
    offset = outer.group("offset")
    bound = f"{offset}, {max_rows}" if offset is not None else str(max_rows)
    return f"{sql[: outer.start()]}LIMIT {bound}{sql[outer.end():]}"


class Safety:
    """
    Read-only guard stage: sanitize, require a single SELECT without mutating
    keywords, then force the row ceiling.
    """

    name = "safety"

    def __init__(self, row_ceiling: int = DEFAULT_ROW_CEILING) -> None:
        self.row_ceiling = row_ceiling

    def _block(self, t0: float, reason: str, message: str) -> StageResult:
        safety_blocks_total.labels(reason=reason).inc()
        safety_checks_total.labels(ok="false").inc()
        return StageResult(
            ok=False,
            error=[message],
            error_code=ErrorCode.SQL_NOT_ALLOWED,
            trace=StageTrace(
                stage=self.name,
                duration_ms=_ms(t0),
                summary="blocked",
                notes={"reason": reason},
            ),
        )

    def check(self, sql: str) -> StageResult:
        t0 = time.perf_counter()

        if not sql or not sql.strip():
            return self._block(t0, "empty_sql", "Empty SQL")

        body = guard_sql(sql)

        if STATEMENT_SEPARATOR in body:
            return self._block(
                t0, "multiple_statements", "Multiple statements are not allowed"
            )

        tok = forbidden_keyword(body)
        if tok:
            return self._block(t0, "forbidden_keyword", f"Forbidden: {tok}")

        if not is_select_only(body):
            return self._block(t0, "non_select", "Only SELECT statements are allowed")

        guarded = force_limit(body, self.row_ceiling)

        safety_checks_total.labels(ok="true").inc()
        return StageResult(
            ok=True,
            data={"sql": guarded},
            trace=StageTrace(
                stage=self.name,
                duration_ms=_ms(t0),
                summary="ok",
                sql_length=len(guarded),
                notes={
                    "original_len": len(sql),
                    "limit_forced": guarded != body,
                    "row_ceiling": self.row_ceiling,
                },
            ),
        )

    def run(self, *, sql: str) -> StageResult:
        return self.check(sql)
