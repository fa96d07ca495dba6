import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request, correlated by X-Request-ID"""

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get("X-Request-ID", str(uuid4()))
        request.state.request_id = request_id

        log_context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as e:
            log_context.update({
                "error": str(e),
                "error_type": e.__class__.__name__,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2)
            })
            logger.error("Request failed", extra=log_context, exc_info=True)
            raise

        log_context.update({
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - start_time) * 1000, 2)
        })
        response.headers["X-Request-ID"] = request_id
        logger.info("Request completed", extra=log_context)
        return response
