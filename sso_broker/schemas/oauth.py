"""OAuth schemas"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class GrantType(str, Enum):
    """OAuth2 grant types accepted at the token endpoint"""

    AUTHORIZATION_CODE = "authorization_code"
    REFRESH_TOKEN = "refresh_token"


class TokenTypeHint(str, Enum):
    """Revocation hint (RFC 7009)"""

    ACCESS_TOKEN = "access_token"
    REFRESH_TOKEN = "refresh_token"


class AuthorizeRequest(BaseModel):
    """Validated authorize request"""

    client_id: str
    redirect_uri: str
    response_type: str = "code"
    scope: str
    state: str | None = None
    pass_through: list[tuple[str, str]] = Field(default_factory=list)


class ScopeInfo(BaseModel):
    """Consent-screen entry for a requested scope"""

    scope: str
    description: str | None
    recognized: bool
    sensitive: bool


class ClientInfo(BaseModel):
    """Public client details shown on the consent screen"""

    client_id: str
    name: str
    description: str | None = None
    logo_url: str | None = None
    website_url: str | None = None


class ConsentResponse(BaseModel):
    """Everything the consent UI needs to render the approval prompt"""

    client: ClientInfo
    redirect_uri: str
    scope: str
    scopes: list[ScopeInfo]
    requires_review: bool
    state: str | None = None
    pass_through: list[tuple[str, str]] = Field(default_factory=list)


class AuthorizeDecision(BaseModel):
    """User's consent decision, submitted by the first-party consent UI"""

    user_id: str = Field(..., min_length=1, max_length=36)
    client_id: str = Field(..., min_length=1)
    redirect_uri: str = Field(..., min_length=1)
    response_type: str = "code"
    scope: str | None = None
    state: str | None = None
    approved: bool
    pass_through: list[tuple[str, str]] = Field(default_factory=list)


class AuthorizeDecisionResponse(BaseModel):
    """Where to send the browser next"""

    redirect_url: str


class IssuedCode(BaseModel):
    """Freshly issued authorization code"""

    code: str
    expires_at: datetime


class TokenPair(BaseModel):
    """Pair of access and refresh tokens"""

    id: str
    access_token: str
    refresh_token: str
    expires_in: int
    scope: str
    user_id: str
    client_id: str


class TokenResponse(BaseModel):
    """Token endpoint success body (exchange and refresh)"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    scope: str
    user_id: str

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.expires_in,
            scope=pair.scope,
            user_id=pair.user_id,
        )


class AccessTokenInfo(BaseModel):
    """Result of validating an access token"""

    valid: bool = True
    user_id: str
    client_id: str
    scope: str
    expires_at: datetime

    @property
    def scopes(self) -> set[str]:
        return set(self.scope.split())


class ErrorResponse(BaseModel):
    """Structured error body"""

    error_code: str
    message: str
    details: dict = Field(default_factory=dict)


class OAuthClientCreate(BaseModel):
    """Schema for registering an OAuth client"""

    client_id: str = Field(..., min_length=3, max_length=255)
    client_secret: str | None = Field(None, min_length=16, max_length=72)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    redirect_uris: list[str] = Field(..., min_length=1)
    allowed_scopes: str = Field("profile", min_length=1)
    logo_url: str | None = None
    website_url: str | None = None
    is_active: bool = True


class OAuthClientResponse(BaseModel):
    """Schema for OAuth client response (never includes the secret)"""

    id: str
    client_id: str
    name: str
    description: str | None
    redirect_uris: list[str]
    allowed_scopes: str
    logo_url: str | None
    website_url: str | None
    is_active: bool

    model_config = {"from_attributes": True}
