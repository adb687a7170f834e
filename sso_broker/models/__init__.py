"""Database models"""

from sso_broker.models.access_token import OAuthAccessToken
from sso_broker.models.audit_log import AuditLog
from sso_broker.models.authorization_code import OAuthAuthorizationCode
from sso_broker.models.database import Base, build_engine, close_db, get_db, init_db
from sso_broker.models.oauth_client import OAuthClient
from sso_broker.models.sso_token import SsoToken
from sso_broker.models.user import User

__all__ = [
    "Base",
    "build_engine",
    "get_db",
    "init_db",
    "close_db",
    "User",
    "OAuthClient",
    "SsoToken",
    "OAuthAuthorizationCode",
    "OAuthAccessToken",
    "AuditLog",
]
