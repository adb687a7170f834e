"""Rate limiting middleware"""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sso_broker.core.config import settings
from sso_broker.core.dependencies import get_client_ip
from sso_broker.services.rate_limiter import bucket_for_path, rate_limiter

PUBLIC_PATHS = ("/", "/health", "/docs", "/openapi.json", "/redoc")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP fixed-window rate limiting"""

    async def dispatch(self, request: Request, call_next):
        if not settings.enable_rate_limiting or request.url.path in PUBLIC_PATHS:
            return await call_next(request)

        ip_address = get_client_ip(request)

        # Skip rate limiting for localhost in development
        if settings.is_development and ip_address in ("127.0.0.1", "localhost", "::1"):
            return await call_next(request)

        verdict = await rate_limiter.hit(ip_address, bucket_for_path(request.url.path))

        if not verdict.allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "error_code": "RateLimitExceeded",
                    "message": "Too many requests. Please try again later.",
                    "details": {"retry_after": verdict.retry_after},
                },
                headers={
                    "X-RateLimit-Limit": str(verdict.limit),
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(verdict.retry_after),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(verdict.limit)
        response.headers["X-RateLimit-Remaining"] = str(verdict.remaining)

        return response
