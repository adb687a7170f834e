"""FastAPI dependencies"""

from typing import Annotated

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.core.errors import InvalidOrRevokedAccessToken
from sso_broker.models.database import get_db
from sso_broker.schemas.oauth import AccessTokenInfo
from sso_broker.services.access_token_service import access_token_service

# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_client_ip(request: Request) -> str:
    """Get client IP address, honouring proxy headers"""
    # Check X-Forwarded-For header (for proxies)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Get first IP in the chain
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


class RequestContext:
    """Caller details recorded in the audit trail"""

    def __init__(self, request: Request):
        self.ip_address = get_client_ip(request)
        self.user_agent = request.headers.get("User-Agent")


async def require_access_token(
    db: DBSession,
    authorization: Annotated[str | None, Header()] = None,
) -> AccessTokenInfo:
    """Resolve ``Authorization: Bearer <token>`` to a valid access token"""
    if not authorization:
        raise InvalidOrRevokedAccessToken()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidOrRevokedAccessToken()

    return await access_token_service.validate_access_token(db, token.strip())


ClientContext = Annotated[RequestContext, Depends(RequestContext)]
BearerToken = Annotated[AccessTokenInfo, Depends(require_access_token)]
