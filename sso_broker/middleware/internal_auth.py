"""Shared-key authentication for first-party endpoints"""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from sso_broker.core.config import logger, settings
from sso_broker.utils.crypto import constant_time_compare

# Endpoints that act on behalf of a user and are only called by first-party apps
INTERNAL_PATH_PREFIXES = ("/sso/", "/oauth/authorize/decision")


class InternalAuthMiddleware(BaseHTTPMiddleware):
    """Requires ``X-Internal-Auth`` on first-party-only paths"""

    async def dispatch(self, request: Request, call_next):
        if not request.url.path.startswith(INTERNAL_PATH_PREFIXES):
            return await call_next(request)

        auth = request.headers.get("x-internal-auth")
        if not auth or not constant_time_compare(auth, settings.internal_api_key):
            logger.warning(
                f"Unauthorized internal call: {request.method} {request.url.path}",
                extra={"path": request.url.path, "has_header": auth is not None},
            )
            return JSONResponse(status_code=401, content={"detail": "unauthorized"})

        return await call_next(request)
