"""SSO token repository"""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.models.sso_token import SsoToken


class SsoTokenRepository:
    """Store access for one-time SSO tokens"""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def add(self, token: SsoToken) -> SsoToken:
        self._db.add(token)
        await self._db.flush()
        return token

    async def find_by_hash(self, token_hash: str) -> SsoToken | None:
        result = await self._db.execute(
            select(SsoToken)
            .where(SsoToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def consume(self, token_hash: str, now: datetime) -> SsoToken | None:
        """
        Mark a token used if, and only if, it is unused and unexpired

        A single conditional UPDATE decides the outcome, so of several
        concurrent callers at most one sees an affected row.

        Returns:
            The consumed token, or None when nothing was redeemable
        """
        result = await self._db.execute(
            update(SsoToken)
            .where(
                SsoToken.token_hash == token_hash,
                SsoToken.used_at.is_(None),
                SsoToken.expires_at > now,
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.find_by_hash(token_hash)

    async def delete_expired(self, now: datetime) -> int:
        """Delete tokens past expiry, used or not"""
        result = await self._db.execute(
            delete(SsoToken)
            .where(SsoToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
