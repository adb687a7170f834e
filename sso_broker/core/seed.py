"""Database seeding with default data"""

from sso_broker.core.config import logger, settings
from sso_broker.models.database import async_session_maker
from sso_broker.repositories import OAuthClientRepository
from sso_broker.schemas.oauth import OAuthClientCreate
from sso_broker.services.oauth_client_service import oauth_client_service

DEFAULT_CLIENTS = [
    OAuthClientCreate(
        client_id="school-portal",
        name="School Portal",
        description="School-management system integration",
        redirect_uris=["https://school.example/callback/"],
        allowed_scopes="profile email school:connect student:sync fee:pay",
        website_url="https://school.example",
    ),
]


async def seed_default_clients(session_factory=async_session_maker) -> list[tuple[str, str]]:
    """
    Register the default OAuth clients that do not exist yet

    Returns:
        (client_id, plain secret) for every client created
    """
    created = []
    async with session_factory() as db:
        for client_data in DEFAULT_CLIENTS:
            if await OAuthClientRepository(db).get_by_client_id(client_data.client_id):
                logger.debug(f"OAuth client already exists: {client_data.client_id}")
                continue

            data = client_data.model_copy(
                update={"client_secret": settings.default_client_secret or None}
            )
            client, secret = await oauth_client_service.create_client(db, data)
            created.append((client.client_id, secret))

            if settings.default_client_secret:
                logger.info(f"✓ OAuth client created: {client.client_id}")
            else:
                logger.warning("=" * 80)
                logger.warning(f"Generated secret for OAuth client {client.client_id}:")
                logger.warning(f"Client Secret: {secret}")
                logger.warning("PLEASE SAVE THIS SECRET - IT WILL NOT BE SHOWN AGAIN!")
                logger.warning("=" * 80)

    return created
