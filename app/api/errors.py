"""FastAPI exception handlers for domain errors."""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from structlog import get_logger

from app.core.config import settings
from app.core.errors import DomainError

logger = get_logger()

# Domain error code -> HTTP status
ERROR_STATUS_MAP = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_STATE_TRANSITION": status.HTTP_409_CONFLICT,
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "EXTERNAL_SERVICE_ERROR": status.HTTP_502_BAD_GATEWAY,
    "DATABASE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "DOMAIN_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_body(
    request: Request, code: str, message: str, details: Any = None
) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": getattr(request.state, "request_id", None),
    }
    if details:
        error["details"] = jsonable_encoder(details)
    return {"error": error}


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Render a domain exception as {"error": {code, message, request_id}}.

    Rejected transitions and missing records are expected outcomes, so they
    log at WARNING. Context is returned as "details" only when
    expose_error_details is enabled.
    """
    http_status = ERROR_STATUS_MAP.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.warning(
        "domain_error_handled",
        error_code=exc.code,
        http_status=http_status,
        message=exc.message,
        context=exc.context,
        path=request.url.path,
    )

    details = exc.context if settings.expose_error_details else None

    return JSONResponse(
        status_code=http_status,
        content=_error_body(request, exc.code, exc.message, details),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTPException in the same envelope, with code HTTP_<status>."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, f"HTTP_{exc.status_code}", str(exc.detail)),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Render request body/query validation failures.

    Unknown pipeline statuses, dispositions and job order statuses are
    rejected here by the closed enums on the request models.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "VALIDATION_ERROR", "Invalid request data", exc.errors()),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected exceptions with a stack trace and return a generic 500."""
    logger.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "INTERNAL_ERROR", "An unexpected error occurred"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain, HTTP, validation and catch-all handlers."""
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)  # type: ignore[arg-type]
