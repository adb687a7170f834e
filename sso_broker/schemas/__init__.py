"""Pydantic schemas"""

from sso_broker.schemas.oauth import (
    AccessTokenInfo,
    AuthorizeDecision,
    AuthorizeDecisionResponse,
    AuthorizeRequest,
    ClientInfo,
    ConsentResponse,
    ErrorResponse,
    GrantType,
    IssuedCode,
    OAuthClientCreate,
    OAuthClientResponse,
    ScopeInfo,
    TokenPair,
    TokenResponse,
    TokenTypeHint,
)
from sso_broker.schemas.sso import (
    EXTERNAL_TARGET,
    IssuedSsoToken,
    PlusSetupMetadata,
    RedeemedSsoToken,
    SchoolConnectMetadata,
    SsoMetadata,
    SsoRedeemRequest,
    SsoRedeemResponse,
    SsoTokenCreate,
)
from sso_broker.schemas.user import UserProfile, UserSync

__all__ = [
    # OAuth
    "GrantType",
    "TokenTypeHint",
    "AuthorizeRequest",
    "AuthorizeDecision",
    "AuthorizeDecisionResponse",
    "ClientInfo",
    "ConsentResponse",
    "ScopeInfo",
    "IssuedCode",
    "TokenPair",
    "TokenResponse",
    "AccessTokenInfo",
    "ErrorResponse",
    "OAuthClientCreate",
    "OAuthClientResponse",
    # SSO
    "EXTERNAL_TARGET",
    "SsoMetadata",
    "SchoolConnectMetadata",
    "PlusSetupMetadata",
    "SsoTokenCreate",
    "IssuedSsoToken",
    "SsoRedeemRequest",
    "RedeemedSsoToken",
    "SsoRedeemResponse",
    # User
    "UserSync",
    "UserProfile",
]
