"""HTTP middleware applied to every route."""

import time

from fastapi import Request, Response

from ..utils.logging import get_logger
from .errors import INTERNAL_ERROR_MESSAGE, error_response
from .metrics import active_requests, error_count, request_count, request_duration

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


class CORSMiddleware:
    """Permissive cross-origin headers; OPTIONS is answered directly.

    Exceptions no handler claimed are turned into the 500 envelope here so
    they still get JSON and the CORS headers.
    """

    async def __call__(self, request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "Unhandled error",
                    exc_info=True,
                    extra={
                        "path": request.url.path,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
                error_count.labels(error_type=type(e).__name__).inc()
                response = error_response(500, INTERNAL_ERROR_MESSAGE)
        response.headers.update(CORS_HEADERS)
        return response


class AccessLogMiddleware:
    """Log every request and collect request metrics."""

    async def __call__(self, request: Request, call_next):
        active_requests.inc()
        start_time = time.time()
        path = request.url.path
        status = 500

        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            active_requests.dec()
            duration = time.time() - start_time
            request_duration.labels(method=request.method, endpoint=path).observe(duration)
            request_count.labels(method=request.method, endpoint=path, status=status).inc()

            logger.info(
                "Request processed",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": status,
                    "duration_ms": round(duration * 1000, 2),
                },
            )
