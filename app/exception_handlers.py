from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from nql.errors.codes import ErrorCode
from nql.errors.exceptions import ExecutionError, NQLError

log = logging.getLogger(__name__)

RETRY_AFTER_SEC = "2"


def _request_id(request: Request) -> str:
    return request.headers.get("X-Request-ID") or str(uuid.uuid4())


def error_payload(exc: NQLError) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": exc.code.value, "message": exc.message}
    if exc.detail:
        payload["detail"] = exc.detail
    sql = exc.sql if isinstance(exc, ExecutionError) else exc.extra.get("sql")
    if sql:
        payload["sql"] = sql
    return payload


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers for the FastAPI application."""

    @app.exception_handler(NQLError)
    async def nql_error_handler(request: Request, exc: NQLError) -> JSONResponse:
        request_id = _request_id(request)
        status = exc.http_status
        log.log(
            logging.ERROR if status >= 500 else logging.INFO,
            "Request failed: %s",
            exc.code.value,
            extra={"request_id": request_id, "status": status},
        )

        headers = {"X-Request-ID": request_id}
        if exc.retryable:
            headers["Retry-After"] = RETRY_AFTER_SEC

        return JSONResponse(
            status_code=status, content=error_payload(exc), headers=headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{loc}: {first.get('msg')}" if loc else "Invalid request body"
        return JSONResponse(
            status_code=400,
            content={"error": ErrorCode.BAD_REQUEST.value, "message": message},
            headers={"X-Request-ID": _request_id(request)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = _request_id(request)
        log.exception("Unhandled error", extra={"request_id": request_id})
        return JSONResponse(
            status_code=500,
            content={
                "error": ErrorCode.INTERNAL_ERROR.value,
                "message": "Internal server error",
            },
            headers={"X-Request-ID": request_id},
        )
