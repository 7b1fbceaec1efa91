# app/core/middleware.py
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Attach a request id to request.state and echo it in the response header.

    A client-supplied x-request-id is reused as is.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.debug(
            "{} {} -> {} ({:.1f} ms) request_id={}",
            request.method, request.url.path, response.status_code, elapsed_ms, request_id,
        )
        return response
