"""SSO schemas"""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from sso_broker.schemas.user import UserProfile

EXTERNAL_TARGET = "external"


class SchoolConnectMetadata(BaseModel):
    """School-management system connecting to a wallet account"""

    kind: Literal["school_connect"] = "school_connect"
    version: Literal[1] = 1
    school_id: str = Field(..., min_length=1, max_length=255)
    school_name: str | None = None
    subdomain: str | None = None
    origin_url: str | None = None
    is_new_connection: bool = False


class PlusSetupMetadata(BaseModel):
    """Hand-off into the business (Plus) onboarding flow"""

    kind: Literal["plus_setup"] = "plus_setup"
    version: Literal[1] = 1
    business_source: Literal["existing", "new"] | None = None
    business_id: str | None = None


SsoMetadata = Annotated[
    Union[SchoolConnectMetadata, PlusSetupMetadata],
    Field(discriminator="kind"),
]

sso_metadata_adapter: TypeAdapter = TypeAdapter(SsoMetadata)


class SsoTokenCreate(BaseModel):
    """Request to issue a one-time SSO token"""

    user_id: str = Field(..., min_length=1, max_length=36)
    source_app: str = Field(..., min_length=1, max_length=64)
    target_app: str = Field(..., min_length=1, max_length=64)
    expiry_minutes: int | None = Field(None, gt=0, le=60)
    redirect_path: str | None = Field(None, max_length=2048)
    tier: str | None = Field(None, max_length=64)
    client_id: str | None = None
    scope: str | None = None
    metadata: SsoMetadata | None = None


class IssuedSsoToken(BaseModel):
    """Freshly issued SSO token (the only time the plain token is visible)"""

    token: str
    expires_at: datetime
    redirect_url: str | None = None


class SsoRedeemRequest(BaseModel):
    """Request to redeem an SSO token"""

    token: str = Field(..., min_length=1)


class RedeemedSsoToken(BaseModel):
    """Identity and routing hints bound to a redeemed token"""

    valid: bool = True
    user_id: str
    source_app: str
    target_app: str
    redirect_path: str | None = None
    tier: str | None = None
    client_id: str | None = None
    scope: str | None = None
    metadata: SsoMetadata | None = None


class SsoRedeemResponse(RedeemedSsoToken):
    """Redeem response with the profile needed for session bootstrap"""

    user: UserProfile | None = None
