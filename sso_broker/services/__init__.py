"""Service modules"""

from sso_broker.services.access_token_service import access_token_service
from sso_broker.services.audit_service import audit_service
from sso_broker.services.authorization_code_service import authorization_code_service
from sso_broker.services.brute_force_protection import brute_force_protection
from sso_broker.services.oauth_client_service import oauth_client_service
from sso_broker.services.rate_limiter import rate_limiter
from sso_broker.services.sso_service import sso_service
from sso_broker.services.user_service import user_service

__all__ = [
    "sso_service",
    "authorization_code_service",
    "access_token_service",
    "oauth_client_service",
    "user_service",
    "audit_service",
    "rate_limiter",
    "brute_force_protection",
]
