from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from nql.errors.codes import ErrorCode
from nql.errors.mapper import map_error


@dataclass
class NQLError(Exception):
    """Base class for domain-level errors raised by the planning pipeline."""

    message: str
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    detail: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    @property
    def http_status(self) -> int:
        return map_error(self.code)[0]

    @property
    def retryable(self) -> bool:
        return map_error(self.code)[1]


# 4xx
@dataclass
class InputError(NQLError):
    code: ErrorCode = ErrorCode.BAD_REQUEST


@dataclass
class UnsafeQueryError(NQLError):
    code: ErrorCode = ErrorCode.SQL_NOT_ALLOWED


@dataclass
class ExecutionError(NQLError):
    code: ErrorCode = ErrorCode.SQL_EXEC_ERROR
    sql: Optional[str] = None


# 5xx-ish
@dataclass
class ConfigurationError(NQLError):
    code: ErrorCode = ErrorCode.CONFIG_ERROR


@dataclass
class UpstreamTransportError(NQLError):
    code: ErrorCode = ErrorCode.LLM_HTTP_ERROR
    status: Optional[int] = None


@dataclass
class PlanParseError(NQLError):
    code: ErrorCode = ErrorCode.LLM_PARSE_ERROR
