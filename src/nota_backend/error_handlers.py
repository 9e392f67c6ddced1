"""Uniform error rendering.

Every failure leaves the API as `{error, message, request_id, details}`.
`error` is a stable machine code: upload rejections use their reason
(`invalid_extension`, `file_too_large`, ...), everything else is derived
from the status code.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from nota_backend.schemas_common import ErrorResponse

logger = logging.getLogger(__name__)

_STATUS_ERROR_CODES: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    413: "payload_too_large",
    415: "unsupported_media_type",
    422: "validation_error",
}


def _error_code(status_code: int, details: object | None) -> str:
    if isinstance(details, dict):
        reason = cast(dict[str, Any], details).get("reason")
        if isinstance(reason, str) and reason:
            return reason.lower()
    return _STATUS_ERROR_CODES.get(status_code, f"http_{status_code}")


def _split_detail(detail: object) -> tuple[str, object | None]:
    # Services raise with detail={"message": str, "details": object}; auth
    # dependencies raise with a bare string.
    if isinstance(detail, dict):
        msg = cast(dict[str, Any], detail).get("message")
        if isinstance(msg, str):
            return msg, detail.get("details")
        return "error", detail
    return str(detail), None


def _field_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        out.append({"field": ".".join(loc) or "request", "message": str(err.get("msg", ""))})
    return out


def _render(
    status_code: int, payload: ErrorResponse, headers: Mapping[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(payload, exclude_none=True),
        headers=headers,
    )


async def _http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message, details = _split_detail(http_exc.detail)
    if http_exc.status_code in (413, 415):
        logger.info(
            "upload rejected status=%s details=%s path=%s",
            http_exc.status_code,
            details,
            request.url.path,
        )

    payload = ErrorResponse(
        error=_error_code(http_exc.status_code, details),
        message=message,
        request_id=getattr(request.state, "request_id", None),
        details=details,
    )
    return _render(http_exc.status_code, payload, getattr(http_exc, "headers", None))


async def _validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    fields = _field_errors(cast(RequestValidationError, exc))
    message = "; ".join(f"{f['field']}: {f['message']}" for f in fields) or "invalid request"
    payload = ErrorResponse(
        error="validation_error",
        message=message,
        request_id=getattr(request.state, "request_id", None),
        details=fields,
    )
    return _render(422, payload)


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    logger.exception(
        "unhandled exception request_id=%s method=%s path=%s",
        request_id,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    payload = ErrorResponse(
        error="internal_error",
        message="Internal server error",
        request_id=request_id,
    )
    return _render(500, payload)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
