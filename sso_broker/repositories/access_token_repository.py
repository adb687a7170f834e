"""Access/refresh token repository"""

from datetime import datetime

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.models.access_token import OAuthAccessToken


class AccessTokenRepository:
    """Store access for access/refresh token pairs"""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def add(self, token: OAuthAccessToken) -> OAuthAccessToken:
        self._db.add(token)
        await self._db.flush()
        return token

    async def find_by_access_hash(self, access_hash: str) -> OAuthAccessToken | None:
        result = await self._db.execute(
            select(OAuthAccessToken)
            .where(OAuthAccessToken.access_token_hash == access_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def find_by_refresh_hash(
        self,
        refresh_hash: str,
        client_id: str | None = None,
    ) -> OAuthAccessToken | None:
        query = select(OAuthAccessToken).where(
            OAuthAccessToken.refresh_token_hash == refresh_hash
        )
        if client_id is not None:
            query = query.where(OAuthAccessToken.client_id == client_id)
        result = await self._db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def has_successor(self, pair_id: str) -> bool:
        """Whether a rotation replaced this pair"""
        result = await self._db.execute(
            select(OAuthAccessToken.id).where(OAuthAccessToken.parent_id == pair_id).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def revoke_for_rotation(
        self,
        refresh_hash: str,
        client_id: str,
        now: datetime,
    ) -> OAuthAccessToken | None:
        """
        Revoke the pair owning a refresh token if it is still active

        Returns:
            The revoked pair, or None when no active pair matched
        """
        result = await self._db.execute(
            update(OAuthAccessToken)
            .where(
                OAuthAccessToken.refresh_token_hash == refresh_hash,
                OAuthAccessToken.client_id == client_id,
                OAuthAccessToken.revoked_at.is_(None),
                OAuthAccessToken.refresh_expires_at > now,
            )
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.find_by_refresh_hash(refresh_hash, client_id)

    async def revoke(
        self,
        now: datetime,
        access_hash: str | None = None,
        refresh_hash: str | None = None,
    ) -> OAuthAccessToken | None:
        """
        Revoke a pair by either of its tokens

        Already revoked pairs keep their original ``revoked_at``.

        Returns:
            The pair, or None when the token is unknown
        """
        if access_hash is not None:
            criterion = OAuthAccessToken.access_token_hash == access_hash
        elif refresh_hash is not None:
            criterion = OAuthAccessToken.refresh_token_hash == refresh_hash
        else:
            raise ValueError("access_hash or refresh_hash is required")

        await self._db.execute(
            update(OAuthAccessToken)
            .where(criterion, OAuthAccessToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(
            select(OAuthAccessToken)
            .where(criterion)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def delete_expired(self, now: datetime, revoked_before: datetime) -> int:
        """
        Delete pairs nobody can use any more

        Active pairs go once both the access and the refresh token have
        expired. Revoked pairs are kept for audit until they have expired
        and were revoked before ``revoked_before``.
        """
        result = await self._db.execute(
            delete(OAuthAccessToken)
            .where(
                OAuthAccessToken.expires_at <= now,
                or_(
                    and_(
                        OAuthAccessToken.revoked_at.is_(None),
                        OAuthAccessToken.refresh_expires_at <= now,
                    ),
                    and_(
                        OAuthAccessToken.revoked_at.is_not(None),
                        OAuthAccessToken.revoked_at <= revoked_before,
                    ),
                ),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
