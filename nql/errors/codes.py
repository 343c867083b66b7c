from enum import Enum


class ErrorCode(str, Enum):
    # --- Caller / configuration ---
    BAD_REQUEST = "bad_request"
    LLM_DISABLED = "llm_disabled"
    CONFIG_ERROR = "config_error"

    # --- Completion service ---
    LLM_HTTP_ERROR = "llm_http_error"
    LLM_UNREACHABLE = "llm_unreachable"
    LLM_TIMEOUT = "llm_timeout"
    LLM_PARSE_ERROR = "llm_parse_error"

    # --- Safety / validation ---
    NO_SQL = "no_sql"
    SQL_NOT_ALLOWED = "sql_not_allowed"
    UNKNOWN_TABLE = "unknown_table"

    # --- Executor / DB ---
    SQL_EXEC_ERROR = "sql_exec_error"

    # --- Internal ---
    INTERNAL_ERROR = "internal_error"
