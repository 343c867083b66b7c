from nql.errors.codes import ErrorCode

ERROR_MAP = {
    ErrorCode.BAD_REQUEST: (400, False),
    ErrorCode.LLM_DISABLED: (500, False),
    ErrorCode.CONFIG_ERROR: (500, False),
    ErrorCode.LLM_HTTP_ERROR: (502, True),
    ErrorCode.LLM_UNREACHABLE: (502, True),
    ErrorCode.LLM_TIMEOUT: (500, True),
    ErrorCode.LLM_PARSE_ERROR: (500, False),
    ErrorCode.NO_SQL: (400, False),
    ErrorCode.SQL_NOT_ALLOWED: (400, False),
    ErrorCode.UNKNOWN_TABLE: (400, False),
    ErrorCode.SQL_EXEC_ERROR: (400, False),
    ErrorCode.INTERNAL_ERROR: (500, False),
}


def map_error(code: ErrorCode | None) -> tuple[int, bool]:
    if code is None:
        return (500, False)
    return ERROR_MAP.get(code, (500, False))
