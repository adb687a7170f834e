"""Token store repositories"""

from sso_broker.repositories.access_token_repository import AccessTokenRepository
from sso_broker.repositories.authorization_code_repository import AuthorizationCodeRepository
from sso_broker.repositories.oauth_client_repository import OAuthClientRepository
from sso_broker.repositories.sso_token_repository import SsoTokenRepository

__all__ = [
    "SsoTokenRepository",
    "AuthorizationCodeRepository",
    "AccessTokenRepository",
    "OAuthClientRepository",
]
