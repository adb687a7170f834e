"""Authorization code repository"""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.models.authorization_code import OAuthAuthorizationCode


class AuthorizationCodeRepository:
    """Store access for OAuth authorization codes"""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def add(self, code: OAuthAuthorizationCode) -> OAuthAuthorizationCode:
        self._db.add(code)
        await self._db.flush()
        return code

    async def find_by_hash(self, code_hash: str) -> OAuthAuthorizationCode | None:
        result = await self._db.execute(
            select(OAuthAuthorizationCode)
            .where(OAuthAuthorizationCode.code_hash == code_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def consume(
        self,
        code_hash: str,
        client_id: str,
        redirect_uri: str,
        now: datetime,
    ) -> OAuthAuthorizationCode | None:
        """
        Mark a code used if it is unused, unexpired and bound to this
        client and redirect URI

        Returns:
            The consumed code, or None when nothing matched
        """
        result = await self._db.execute(
            update(OAuthAuthorizationCode)
            .where(
                OAuthAuthorizationCode.code_hash == code_hash,
                OAuthAuthorizationCode.client_id == client_id,
                OAuthAuthorizationCode.redirect_uri == redirect_uri,
                OAuthAuthorizationCode.used_at.is_(None),
                OAuthAuthorizationCode.expires_at > now,
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.find_by_hash(code_hash)

    async def delete_expired(self, now: datetime) -> int:
        """Delete codes past expiry, used or not"""
        result = await self._db.execute(
            delete(OAuthAuthorizationCode)
            .where(OAuthAuthorizationCode.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
