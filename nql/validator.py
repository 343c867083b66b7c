from __future__ import annotations

import re
import time
from typing import Any, List, Protocol, Set, cast

import sqlglot
from sqlglot import exp

from nql.metrics import validator_checks_total
from nql.safety import STATEMENT_SEPARATOR, forbidden_keyword
from nql.types import SchemaSnapshot, StageResult, StageTrace, ValidationResult
from nql.errors.codes import ErrorCode

_IDENT_PART = r'(?:"[^"]+"|`[^`]+`|[a-z0-9_]+)'
_FROM_JOIN_RE = re.compile(
    r"\b(?:from|join)\s+(" + _IDENT_PART + r"(?:\s*\.\s*" + _IDENT_PART + r")*)",
    re.IGNORECASE,
)
_IDENT_PART_RE = re.compile(_IDENT_PART, re.IGNORECASE)

# FROM used inside expressions, not as a table reference
_EXPR_FROM_RES = [
    re.compile(r"\b(extract|substring|trim|overlay)\s*\(([^()]*?)\bfrom\b", re.IGNORECASE),
    re.compile(r"\bdistinct\s+from\b", re.IGNORECASE),
]


class SQLValidator(Protocol):
    name: str

    def validate(self, sql: str, schema: SchemaSnapshot) -> ValidationResult: ...


def _mask_expression_from(sql: str) -> str:
    sql = _EXPR_FROM_RES[0].sub(lambda m: f"{m.group(1)}({m.group(2)} ", sql)
    return _EXPR_FROM_RES[1].sub("distinct ", sql)


def referenced_tables(sql: str) -> List[str]:
    """
    Identifiers right after FROM/JOIN, unquoted and stripped of any schema
    qualifier. Deliberately lexical: subqueries and CTE bodies that do not
    follow this shape are not extracted.
    """
    out: List[str] = []
    for m in _FROM_JOIN_RE.finditer(_mask_expression_from(sql)):
        parts = _IDENT_PART_RE.findall(m.group(1))
        if not parts:
            continue
        name = parts[-1].strip('"`')
        if name and name not in out:
            out.append(name)
    return out


def _known_tables(schema: SchemaSnapshot) -> Set[str]:
    return {t.lower() for t in schema}


class LexicalValidator:
    """Regex-level allow-list check over FROM/JOIN targets."""

    name = "lexical"

    def validate(self, sql: str, schema: SchemaSnapshot) -> ValidationResult:
        s = (sql or "").strip()
        lowered = s.lower()
        if not lowered.startswith("select"):
            return ValidationResult(ok=False, reason="Only SELECT is allowed")
        if STATEMENT_SEPARATOR in lowered:
            return ValidationResult(
                ok=False, reason="Multiple statements are not allowed"
            )
        tok = forbidden_keyword(lowered)
        if tok:
            return ValidationResult(ok=False, reason=f'Mutation not allowed: "{tok}"')

        known = _known_tables(schema)
        for table in referenced_tables(s):
            if table.lower() not in known:
                return ValidationResult(ok=False, reason=f'Unknown table "{table}"')
        return ValidationResult(ok=True)


_MUTATING_NODE_NAMES = {
    "insert",
    "update",
    "delete",
    "merge",
    "create",
    "drop",
    "alter",
    "altertable",
    "truncatetable",
    "grant",
    "revoke",
    "command",
}


class SqlglotValidator:
    """
    Parser-backed validator behind the same contract as LexicalValidator.
    Table references come from the AST, so subqueries and joins of any
    formatting are covered; CTE names are not treated as tables.
    """

    name = "sqlglot"

    def __init__(self, dialect: str = "postgres") -> None:
        self.dialect = dialect

    def validate(self, sql: str, schema: SchemaSnapshot) -> ValidationResult:
        s = (sql or "").strip()
        try:
            trees: list[Any] = [
                t for t in sqlglot.parse(s, read=self.dialect) if t is not None
            ]
        except Exception as e:
            return ValidationResult(ok=False, reason=f"Parse error: {e}")

        if len(trees) != 1:
            return ValidationResult(
                ok=False, reason="Multiple statements are not allowed"
            )
        root = cast(exp.Expression, trees[0])
        if not isinstance(root, (exp.Select, exp.Union)) or not s.lower().startswith(
            "select"
        ):
            return ValidationResult(ok=False, reason="Only SELECT is allowed")

        for node in root.walk():
            kind = type(node).__name__.lower()
            if kind in _MUTATING_NODE_NAMES:
                return ValidationResult(
                    ok=False, reason=f'Mutation not allowed: "{kind}"'
                )

        cte_names = {cte.alias_or_name.lower() for cte in root.find_all(exp.CTE)}
        known = _known_tables(schema)
        for table in root.find_all(exp.Table):
            name = table.name
            if not name or name.lower() in cte_names:
                continue
            if name.lower() not in known:
                return ValidationResult(ok=False, reason=f'Unknown table "{name}"')
        return ValidationResult(ok=True)


_DEFAULT_VALIDATOR = LexicalValidator()


def validate_sql(
    sql: str, schema: SchemaSnapshot, validator: SQLValidator | None = None
) -> ValidationResult:
    return (validator or _DEFAULT_VALIDATOR).validate(sql, schema)


class Validator:
    """Pipeline stage wrapping a SQLValidator."""

    name = "validate"

    def __init__(self, validator: SQLValidator | None = None) -> None:
        self.validator = validator or _DEFAULT_VALIDATOR

    def run(self, *, sql: str, schema: SchemaSnapshot) -> StageResult:
        t0 = time.perf_counter()
        res = self.validator.validate(sql, schema)
        validator_checks_total.labels(
            validator=self.validator.name, ok=("true" if res.ok else "false")
        ).inc()

        trace = StageTrace(
            stage=self.name,
            duration_ms=(time.perf_counter() - t0) * 1000.0,
            summary="ok" if res.ok else "failed",
            notes={"validator": self.validator.name, "reason": res.reason},
        )
        if res.ok:
            return StageResult(ok=True, data={"sql": sql}, trace=trace)

        code = (
            ErrorCode.UNKNOWN_TABLE
            if (res.reason or "").startswith("Unknown table")
            else ErrorCode.SQL_NOT_ALLOWED
        )
        return StageResult(
            ok=False, error=[res.reason or "invalid_sql"], error_code=code, trace=trace
        )
