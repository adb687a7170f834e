"""OAuth client repository"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.models.oauth_client import OAuthClient


class OAuthClientRepository:
    """Read access to the client registry"""

    def __init__(self, db: AsyncSession):
        self._db = db

    async def add(self, client: OAuthClient) -> OAuthClient:
        self._db.add(client)
        await self._db.flush()
        return client

    async def get_by_client_id(self, client_id: str) -> OAuthClient | None:
        result = await self._db.execute(
            select(OAuthClient).where(OAuthClient.client_id == client_id)
        )
        return result.scalar_one_or_none()
