"""Typed failures surfaced by every operation.

Each failure is an ``HTTPException`` so FastAPI renders it directly, and
carries a ``kind`` from the fixed taxonomy so callers can branch on it
without parsing messages:

    not_found     referenced entity absent
    unauthorized  caller lacks the required role or ownership
    validation    malformed or missing input
    conflict      duplicate unique key / state already reached
    server_fault  unexpected storage or backing-service failure
"""

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from libs.common.logging import get_logger

logger = get_logger(__name__)


class DomainError(HTTPException):
    kind = "server_fault"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFoundError(DomainError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedError(DomainError):
    kind = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationFailed(DomainError):
    kind = "validation"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(DomainError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ServerFault(DomainError):
    kind = "server_fault"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": exc.kind, "detail": exc.detail},
    )


async def _storage_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"kind": ServerFault.kind, "detail": "Server Error"},
    )


_KIND_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: ValidationFailed.kind,
    status.HTTP_401_UNAUTHORIZED: UnauthorizedError.kind,
    status.HTTP_403_FORBIDDEN: UnauthorizedError.kind,
    status.HTTP_404_NOT_FOUND: NotFoundError.kind,
    status.HTTP_405_METHOD_NOT_ALLOWED: NotFoundError.kind,
    status.HTTP_409_CONFLICT: ConflictError.kind,
}


async def _http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Framework-raised errors (bad bearer token, unknown route) in the same shape."""
    kind = _KIND_BY_STATUS.get(exc.status_code, ServerFault.kind)
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": kind, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        # Drop the leading "body" / "query" / "path" segment
        field = ".".join(loc[1:]) or ".".join(loc)
        errors.append({"field": field, "message": error["msg"]})

    detail = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "kind": ValidationFailed.kind,
            "detail": detail or "Invalid request",
            "errors": errors,
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, _storage_error_handler)
