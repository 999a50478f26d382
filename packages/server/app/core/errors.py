"""
Dependency engine error taxonomy and its HTTP mapping.

- ValidationError: caller-fixable rule violation (self-dependency, duplicate, cycle)
- NotFoundError: referenced task or dependency does not exist
- StorageError: backing store failure; details are logged, never returned
- OperationCancelled: a store call or lock acquisition ran past its timeout

HTTP and request validation errors share the same {"error": {...}} envelope.
"""

from __future__ import annotations

from typing import Literal, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskgraph_shared.schemas.common import ErrorBody, ErrorResponse

log = structlog.get_logger()

ValidationRule = Literal["self-dependency", "duplicate", "cycle"]

_RULE_CODES = {
    "self-dependency": "SELF_DEPENDENCY",
    "duplicate": "DUPLICATE_DEPENDENCY",
    "cycle": "CIRCULAR_DEPENDENCY",
}


class GraphError(Exception):
    """Base class for dependency engine errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def public_message(self) -> str:
        return self.message


class ValidationError(GraphError):
    status_code = 409

    def __init__(self, rule: ValidationRule, message: str) -> None:
        super().__init__(message)
        self.rule = rule
        self.code = _RULE_CODES[rule]


class NotFoundError(GraphError):
    status_code = 404
    code = "NOT_FOUND"


class StorageError(GraphError):
    status_code = 503
    code = "STORAGE_UNAVAILABLE"

    def public_message(self) -> str:
        return "The dependency store is unavailable. Please try again."


class OperationCancelled(GraphError):
    status_code = 504
    code = "OPERATION_CANCELLED"


_HTTP_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _envelope(status: int, code: str, message: str, rule: Optional[str] = None) -> dict:
    body = ErrorResponse(error=ErrorBody(code=code, message=message, status=status, rule=rule))
    return body.model_dump(exclude_none=True)


async def graph_error_handler(request: Request, exc: GraphError) -> JSONResponse:
    if isinstance(exc, StorageError):
        log.error("storage.error", path=request.url.path, detail=exc.message)
    elif isinstance(exc, OperationCancelled):
        log.warning("operation.cancelled", path=request.url.path, detail=exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.status_code, exc.code, exc.public_message(), getattr(exc, "rule", None)),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(
            exc.status_code, _HTTP_CODES.get(exc.status_code, "HTTP_ERROR"), str(exc.detail)
        ),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content=_envelope(422, "INVALID_REQUEST", problems or "Invalid request"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GraphError, graph_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
