# app/core/handlers.py

from fastapi import Request
from fastapi.exceptions import RequestValidationError

from fastapi.responses import JSONResponse

from app.core.error_codes import INTERNAL_UNHANDLED, REQ_VALIDATION_FAILED
from app.core.exceptions import AppError
from app.core.logging import get_logger
from app.core.middleware import REQUEST_ID_HEADER
from app.models.error_models import ErrorResponse, ErrorDetail, field_errors_from

logger = get_logger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER, "")


async def app_error_handler(request: Request, exc: AppError):
    request_id = _request_id(request)
    logger.info("{} {} failed: {} ({})", request.method, request.url.path, exc.code, exc.message)

    error_response = ErrorResponse(
        request_id=request_id,
        ok=False,
        error=ErrorDetail.from_app_error(exc),
    )

    return JSONResponse(
        status_code=exc.http_status,
        content=error_response.model_dump(),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    field_errors = field_errors_from(exc.errors())
    logger.info("{} {} rejected: {} field error(s)", request.method, request.url.path, len(field_errors))

    error_response = ErrorResponse(
        request_id=request_id,
        ok=False,
        error=ErrorDetail(
            code=REQ_VALIDATION_FAILED,
            message="Request validation failed",
            details={"field_errors": [e.model_dump() for e in field_errors]},
            retryable=False,
        ),
    )

    return JSONResponse(
        status_code=422,
        content=error_response.model_dump(),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = _request_id(request)
    logger.opt(exception=exc).error("Unhandled error on {} {}", request.method, request.url.path)

    error_response = ErrorResponse(
        request_id=request_id,
        ok=False,
        error=ErrorDetail(
            code=INTERNAL_UNHANDLED,
            message="Internal server error",
            retryable=False,
        ),
    )

    # runs outside the request-id middleware, so the header is set here
    return JSONResponse(
        status_code=500,
        content=error_response.model_dump(),
        headers={REQUEST_ID_HEADER: request_id} if request_id else None,
    )
