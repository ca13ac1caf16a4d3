"""Request tracing middleware for the contract pricing service."""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.services.logging_config import current_request_id

logger = logging.getLogger("contract-pricing.middleware")

SKIP_LOG_PATHS = {"/health"}
REQUEST_ID_HEADER = "X-Request-ID"


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Per request:
    - take the caller's X-Request-ID, or mint a uuid4 when absent
    - bind it for the duration of the request so service logs carry it
    - echo it back with the X-Process-Time header (milliseconds)
    - log one "request completed" line, except for health probes
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = current_request_id.set(request_id)
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        finally:
            current_request_id.reset(token)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(elapsed_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "http_method": request.method,
                    "http_path": request.url.path,
                    "http_status": response.status_code,
                    "request_id": request_id,
                    "duration_ms": elapsed_ms,
                },
            )
        return response
