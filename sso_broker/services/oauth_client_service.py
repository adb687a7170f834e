"""OAuth Client service"""

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.core import scopes
from sso_broker.core.config import logger
from sso_broker.core.errors import (
    InactiveClient,
    InvalidClientCredentials,
    InvalidRequest,
    InvalidScope,
    RedirectMismatch,
    UnknownClient,
    translate_store_errors,
)
from sso_broker.models.oauth_client import OAuthClient
from sso_broker.repositories import OAuthClientRepository
from sso_broker.schemas.oauth import OAuthClientCreate
from sso_broker.utils.crypto import generate_secret, hash_secret, verify_secret
from sso_broker.utils.validators import (
    validate_client_id,
    validate_redirect_uri,
    validate_scope,
)

# Verified against when the client id is unknown so that unknown and
# known-but-wrong-secret take the same time.
_DUMMY_SECRET_HASH = hash_secret("unknown-client-placeholder")


@dataclass
class ScopeCheck:
    """Outcome of checking a requested scope against a client"""

    scope: str
    granted: list[str]
    unrecognized: list[str] = field(default_factory=list)

    @property
    def requires_review(self) -> bool:
        return bool(self.unrecognized)


class OAuthClientService:
    """Service for the OAuth client registry"""

    @translate_store_errors
    async def create_client(
        self,
        db: AsyncSession,
        client_data: OAuthClientCreate,
    ) -> tuple[OAuthClient, str]:
        """
        Register a new OAuth client

        Args:
            db: Database session
            client_data: Client creation data

        Returns:
            Tuple of (created client, plain client secret). The plain secret
            is only available here.

        Raises:
            InvalidRequest: If the client already exists or data is malformed
        """
        is_valid, error = validate_client_id(client_data.client_id)
        if not is_valid:
            raise InvalidRequest(error, details={"client_id": client_data.client_id})

        for uri in client_data.redirect_uris:
            is_valid, error = validate_redirect_uri(uri)
            if not is_valid:
                raise InvalidRequest(error, details={"redirect_uri": uri})

        repository = OAuthClientRepository(db)
        if await repository.get_by_client_id(client_data.client_id):
            raise InvalidRequest(
                f"Client with client_id '{client_data.client_id}' already exists",
                details={"client_id": client_data.client_id},
            )

        client_secret = client_data.client_secret or generate_secret()

        client = OAuthClient(
            client_id=client_data.client_id,
            client_secret_hash=hash_secret(client_secret),
            name=client_data.name,
            description=client_data.description,
            redirect_uris=list(client_data.redirect_uris),
            allowed_scopes=client_data.allowed_scopes,
            logo_url=client_data.logo_url,
            website_url=client_data.website_url,
            is_active=client_data.is_active,
        )
        await repository.add(client)
        await db.commit()

        logger.info(f"OAuth client created: {client.client_id}")

        return client, client_secret

    @translate_store_errors
    async def get_by_client_id(
        self,
        db: AsyncSession,
        client_id: str,
    ) -> OAuthClient | None:
        """Get OAuth client by client_id"""
        return await OAuthClientRepository(db).get_by_client_id(client_id)

    async def get_active_client(self, db: AsyncSession, client_id: str) -> OAuthClient:
        """
        Get an active client

        Raises:
            UnknownClient: No client with this id
            InactiveClient: Client exists but is disabled
        """
        client = await self.get_by_client_id(db, client_id)
        if not client:
            logger.warning(f"Client validation failed: client not found ({client_id})")
            raise UnknownClient(client_id)

        if not client.is_active:
            logger.warning(f"Client validation failed: client inactive ({client_id})")
            raise InactiveClient(client_id)

        return client

    async def validate_client(
        self,
        db: AsyncSession,
        client_id: str,
        redirect_uri: str,
    ) -> OAuthClient:
        """
        Check a client id and redirect URI against the registry

        The redirect URI must appear verbatim in the allow-list: no prefix,
        wildcard or trailing-slash tolerance.

        Args:
            db: Database session
            client_id: Client ID
            redirect_uri: Redirect URI presented by the caller

        Returns:
            The active client

        Raises:
            UnknownClient, InactiveClient, RedirectMismatch
        """
        client = await self.get_active_client(db, client_id)

        if redirect_uri not in (client.redirect_uris or []):
            logger.warning(
                f"Client validation failed: redirect URI not registered ({client_id})",
                extra={"client_id": client_id, "redirect_uri": redirect_uri},
            )
            raise RedirectMismatch(client_id, redirect_uri)

        logger.debug(f"Client validated: {client_id}")
        return client

    async def authenticate_client(
        self,
        db: AsyncSession,
        client_id: str,
        client_secret: str,
    ) -> OAuthClient:
        """
        Authenticate a client by its secret (server-to-server calls only)

        Raises:
            InvalidClientCredentials: Unknown, inactive, or wrong secret
        """
        client = await self.get_by_client_id(db, client_id)

        if not client:
            verify_secret(client_secret or "", _DUMMY_SECRET_HASH)
            logger.warning(f"Client authentication failed: client not found ({client_id})")
            raise InvalidClientCredentials()

        if not verify_secret(client_secret, client.client_secret_hash):
            logger.warning(f"Client authentication failed: invalid secret ({client_id})")
            raise InvalidClientCredentials()

        if not client.is_active:
            logger.warning(f"Client authentication failed: client inactive ({client_id})")
            raise InvalidClientCredentials()

        return client

    def check_scope(
        self,
        client: OAuthClient,
        requested_scope: str | None,
    ) -> ScopeCheck:
        """
        Validate and normalize a requested scope

        Recognized scopes must be permitted for the client. Unrecognized
        scopes carry no capability; they are kept and flagged for review.

        Args:
            client: OAuth client
            requested_scope: Requested scope (space-separated), defaults to ``profile``

        Returns:
            ScopeCheck with the normalized scope string

        Raises:
            InvalidRequest: Malformed scope token
            InvalidScope: A recognized scope outside the client's permitted set
        """
        is_valid, error = validate_scope(requested_scope or "")
        if not is_valid:
            raise InvalidRequest(error, details={"scope": requested_scope})

        requested = scopes.split_scope(requested_scope)
        allowed = client.scope_set

        not_permitted = [s for s in requested if scopes.is_recognized(s) and s not in allowed]
        if not_permitted:
            logger.warning(
                f"Invalid scopes requested: {not_permitted} for client {client.client_id}"
            )
            raise InvalidScope(client.client_id, not_permitted)

        unrecognized = [s for s in requested if not scopes.is_recognized(s)]
        if unrecognized:
            logger.info(
                f"Unrecognized scopes passed through for review: {unrecognized} "
                f"(client {client.client_id})"
            )

        return ScopeCheck(
            scope=" ".join(requested),
            granted=requested,
            unrecognized=unrecognized,
        )


# Global instance
oauth_client_service = OAuthClientService()
