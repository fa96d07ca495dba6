import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from isyourdayok.core.exceptions.handler import ErrorResponseBuilder, ServiceErrorCode
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.infra.config.settings import get_settings

logger = get_logger(__name__)

WINDOW = timedelta(minutes=1)
EXEMPT_PATHS = {"/api/v1/health", "/", "/docs", "/redoc", "/openapi.json"}


class RateLimiter:
    """Sliding one-minute window per (endpoint, client IP)"""

    def __init__(self, endpoint_limits: Optional[Dict[str, int]] = None, default_limit: Optional[int] = None):
        settings = get_settings()
        self.endpoint_limits = endpoint_limits if endpoint_limits is not None else {
            "/api/v1/auth/challenge": settings.RATE_LIMIT_AUTH_CHALLENGE,
            "/api/v1/auth/verify": settings.RATE_LIMIT_AUTH_VERIFY,
            "/api/v1/auth/refresh": settings.RATE_LIMIT_AUTH_REFRESH,
            "/api/v1/achievements/mint": settings.RATE_LIMIT_MINT,
        }
        self.default_limit = default_limit if default_limit is not None else settings.RATE_LIMIT_DEFAULT
        self.requests: Dict[str, Dict[str, List[datetime]]] = {}

    def limit_for(self, endpoint: str) -> int:
        return self.endpoint_limits.get(endpoint, self.default_limit)

    def hit(self, ip: str, endpoint: str) -> Tuple[bool, int, int, datetime]:
        """
        Count a request unless the window is full.
        Returns: (is_limited, current_count, limit, reset_time)
        """
        now = datetime.now(timezone.utc)
        limit = self.limit_for(endpoint)

        per_ip = self.requests.setdefault(endpoint, {})
        recent = [ts for ts in per_ip.get(ip, []) if now - ts < WINDOW]
        per_ip[ip] = recent

        reset_time = (recent[0] if recent else now) + WINDOW
        if len(recent) >= limit:
            return True, len(recent), limit, reset_time

        recent.append(now)
        return False, len(recent), limit, reset_time


class RateLimitMiddleware(BaseHTTPMiddleware):

    def __init__(self, app, rate_limiter: Optional[RateLimiter] = None):
        super().__init__(app)
        self.rate_limiter = rate_limiter or RateLimiter()

    @staticmethod
    def _get_client_ip(request: Request) -> str:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS" or request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        ip = self._get_client_ip(request)
        endpoint = request.url.path
        is_limited, current_count, limit, reset_time = self.rate_limiter.hit(ip, endpoint)

        if is_limited:
            retry_after = max(1, int((reset_time - datetime.now(timezone.utc)).total_seconds()))
            logger.warning(
                "Rate limit exceeded",
                extra={"client_ip": ip, "endpoint": endpoint, "count": current_count, "limit": limit}
            )
            body = ErrorResponseBuilder.build_error_response(
                ServiceErrorCode.RATE_LIMIT_EXCEEDED,
                f"Rate limit exceeded. Maximum {limit} requests per minute.",
                details={"limit": limit, "retry_after": retry_after}
            )
            return Response(
                content=json.dumps(body),
                media_type="application/json",
                status_code=429,
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(int(reset_time.timestamp())),
                }
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - current_count))
        response.headers["X-RateLimit-Reset"] = str(int(reset_time.timestamp()))
        return response
