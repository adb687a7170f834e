"""Middleware modules"""

from sso_broker.middleware.internal_auth import InternalAuthMiddleware
from sso_broker.middleware.logging import StructuredLoggingMiddleware
from sso_broker.middleware.rate_limit import RateLimitMiddleware

__all__ = ["InternalAuthMiddleware", "RateLimitMiddleware", "StructuredLoggingMiddleware"]
