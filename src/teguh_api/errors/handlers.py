"""FastAPI exception handlers."""

import logging
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from teguh_api.errors.exceptions import (
    QuotaExceededError,
    TeguhAPIError,
    TooManyRequestsError,
)
from teguh_api.models.responses import QuotaBlock
from teguh_api.services.responder import Responder
from teguh_api.utils.timeutils import start_of_day

logger = logging.getLogger(__name__)


def create_error_response(
    request: Request,
    error_code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
    quota: QuotaBlock | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    responder: Responder = request.app.state.responder
    envelope = responder.error(
        code=error_code,
        message=message,
        details=details,
        request_id=request_id,
        quota=quota,
    )
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(mode="json"),
    )


async def teguh_exception_handler(
    request: Request,
    exc: TeguhAPIError,
) -> JSONResponse:
    """Handle TeguhAPIError and subclasses."""
    request_id = getattr(request.state, "request_id", None)

    if exc.status_code >= 500:
        logger.error(
            "API error: %s - %s",
            exc.error_code,
            exc.message,
            extra={"request_id": request_id},
        )
    else:
        logger.warning(
            "API error: %s - %s",
            exc.error_code,
            exc.message,
            extra={"request_id": request_id, "details": exc.details},
        )

    quota = None
    if isinstance(exc, QuotaExceededError):
        quota = QuotaBlock(
            daily_limit=exc.limit,
            remaining=exc.remaining,
            reset_date=exc.reset_date,
        )

    response = create_error_response(
        request,
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        quota=quota,
    )

    if isinstance(exc, QuotaExceededError):
        response.headers["X-RateLimit-Limit"] = str(exc.limit)
        response.headers["X-RateLimit-Remaining"] = str(exc.remaining)
        response.headers["X-RateLimit-Reset"] = str(int(start_of_day(exc.reset_date).timestamp()))
    if isinstance(exc, TooManyRequestsError):
        response.headers["Retry-After"] = str(exc.retry_after)

    return response


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = []
    for error in exc.errors():
        loc = ".".join(str(x) for x in error["loc"])
        errors.append({"field": loc, "message": error["msg"], "type": error["type"]})

    logger.warning(
        "Validation error",
        extra={"request_id": getattr(request.state, "request_id", None), "errors": errors},
    )

    return create_error_response(
        request,
        error_code="VALIDATION_ERROR",
        message="Validation failed",
        status_code=400,
        details={"errors": errors},
    )


HTTP_ERROR_CODES = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Handle framework HTTP errors such as unmatched routes."""
    message = "Page Not Found" if exc.status_code == 404 else str(exc.detail)
    response = create_error_response(
        request,
        error_code=HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
        message=message,
        status_code=exc.status_code,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={"request_id": getattr(request.state, "request_id", None)},
    )

    return create_error_response(
        request,
        error_code="INTERNAL_ERROR",
        message="Internal server error",
        status_code=500,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(TeguhAPIError, teguh_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, validation_exception_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        StarletteHTTPException, http_exception_handler  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, generic_exception_handler)
