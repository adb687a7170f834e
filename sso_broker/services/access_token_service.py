"""Access/refresh token manager"""

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.core.config import logger, settings
from sso_broker.core.errors import (
    ExpiredRefreshToken,
    ExpiredToken,
    InvalidOrRevokedAccessToken,
    InvalidOrRevokedRefreshToken,
    InvalidRequest,
    translate_store_errors,
)
from sso_broker.models.access_token import OAuthAccessToken
from sso_broker.repositories import AccessTokenRepository
from sso_broker.schemas.oauth import AccessTokenInfo, TokenPair, TokenTypeHint
from sso_broker.services.audit_service import audit_service
from sso_broker.services.oauth_client_service import oauth_client_service
from sso_broker.utils import clock
from sso_broker.utils.crypto import generate_token, hash_token
from sso_broker.utils.validators import validate_lifetime


class AccessTokenService:
    """Issues, validates, rotates and revokes access/refresh token pairs"""

    async def issue_token_pair(
        self,
        db: AsyncSession,
        client_id: str,
        user_id: str,
        scope: str,
        expiry_seconds: int | None = None,
        parent_id: str | None = None,
    ) -> TokenPair:
        """
        Mint a new access/refresh token pair

        The pair is flushed into the caller's transaction; the caller
        commits.

        Args:
            db: Database session
            client_id: OAuth client ID
            user_id: User ID
            scope: Granted scope (space-separated)
            expiry_seconds: Access token lifetime (default 3600)
            parent_id: Pair this one replaces during rotation

        Returns:
            TokenPair with the plain token values
        """
        expires_in = settings.access_token_lifetime if expiry_seconds is None else expiry_seconds
        is_valid, error = validate_lifetime(expires_in, "expiry_seconds")
        if not is_valid:
            raise InvalidRequest(error, details={"expiry_seconds": expiry_seconds})

        access_token = generate_token(32)
        refresh_token = generate_token(32)
        now = clock.utc_now()

        pair = await AccessTokenRepository(db).add(
            OAuthAccessToken(
                access_token_hash=hash_token(access_token),
                refresh_token_hash=hash_token(refresh_token),
                client_id=client_id,
                user_id=user_id,
                scope=scope,
                expires_at=now + timedelta(seconds=expires_in),
                refresh_expires_at=now + timedelta(seconds=settings.refresh_token_lifetime),
                parent_id=parent_id,
                created_at=now,
            )
        )

        logger.debug(
            f"Token pair issued: user={user_id}, client={client_id}",
            extra={"user_id": user_id, "client_id": client_id, "scope": scope},
        )

        return TokenPair(
            id=pair.id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=expires_in,
            scope=scope,
            user_id=user_id,
            client_id=client_id,
        )

    @translate_store_errors
    async def validate_access_token(self, db: AsyncSession, token: str) -> AccessTokenInfo:
        """
        Validate an access token presented to a resource server

        Read-only: never mutates the store.

        Raises:
            InvalidOrRevokedAccessToken: Unknown or revoked
            ExpiredToken: Past expiry
        """
        pair = await AccessTokenRepository(db).find_by_access_hash(hash_token(token))

        if pair is None or pair.revoked_at is not None:
            raise InvalidOrRevokedAccessToken()

        if clock.ensure_utc(pair.expires_at) <= clock.utc_now():
            raise ExpiredToken("Access token expired")

        return AccessTokenInfo(
            user_id=pair.user_id,
            client_id=pair.client_id,
            scope=pair.scope,
            expires_at=clock.ensure_utc(pair.expires_at),
        )

    @translate_store_errors
    async def refresh(
        self,
        db: AsyncSession,
        refresh_token: str,
        client_id: str,
        client_secret: str,
    ) -> TokenPair:
        """
        Rotate a refresh token

        Revoking the old pair and inserting the new one happen in a single
        transaction. If the new pair cannot be committed the revocation is
        rolled back and the old pair stays valid.

        Raises:
            InvalidClientCredentials: Client authentication failed
            InvalidOrRevokedRefreshToken: Unknown, other client, or already rotated
            ExpiredRefreshToken: Unrevoked pair past its refresh expiry
        """
        await oauth_client_service.authenticate_client(db, client_id, client_secret)

        refresh_hash = hash_token(refresh_token)
        repository = AccessTokenRepository(db)
        now = clock.utc_now()

        try:
            old_pair = await repository.revoke_for_rotation(refresh_hash, client_id, now)
            if old_pair is None:
                await db.rollback()
                await self._raise_refresh_failure(db, repository, refresh_hash, client_id, now)

            new_pair = await self.issue_token_pair(
                db,
                client_id=client_id,
                user_id=old_pair.user_id,
                scope=old_pair.scope,
                parent_id=old_pair.id,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Refresh token rotated: user={new_pair.user_id}, client={client_id}",
            extra={"user_id": new_pair.user_id, "client_id": client_id},
        )

        return new_pair

    async def _raise_refresh_failure(self, db, repository, refresh_hash, client_id, now):
        """
        Classify a failed rotation; the lookups never change state

        Only a token whose pair was already rotated counts as reuse. A pair
        revoked through the revocation endpoint has no successor.
        """
        existing = await repository.find_by_refresh_hash(refresh_hash, client_id)

        if existing is not None and existing.revoked_at is None:
            if clock.ensure_utc(existing.refresh_expires_at) <= now:
                raise ExpiredRefreshToken()

        if existing is not None and await repository.has_successor(existing.id):
            logger.warning(
                f"SECURITY: refresh token reuse: {refresh_hash[:16]}..., "
                f"user_id={existing.user_id}, client_id={client_id}"
            )
            await audit_service.log_security_incident(
                db,
                "refresh_token_reuse",
                user_id=existing.user_id,
                client_id=client_id,
                event_data={"pair_id": existing.id},
            )

        raise InvalidOrRevokedRefreshToken()

    @translate_store_errors
    async def revoke(
        self,
        db: AsyncSession,
        token: str,
        token_type_hint: TokenTypeHint | str | None = None,
    ) -> bool:
        """
        Revoke a pair by its access token (or its refresh token)

        Idempotent: revoking twice keeps the first ``revoked_at``.

        Args:
            db: Database session
            token: Access or refresh token
            token_type_hint: Which kind to look up first

        Returns:
            True if the token exists (revoked now or earlier)
        """
        token_hash = hash_token(token)
        repository = AccessTokenRepository(db)
        now = clock.utc_now()

        if token_type_hint == TokenTypeHint.REFRESH_TOKEN:
            order = ("refresh_hash", "access_hash")
        else:
            order = ("access_hash", "refresh_hash")

        pair = None
        for field_name in order:
            pair = await repository.revoke(now, **{field_name: token_hash})
            if pair is not None:
                break

        await db.commit()

        if pair is None:
            logger.debug(f"Revocation of unknown token: {token_hash[:16]}...")
            return False

        logger.info(
            f"Token pair revoked: user={pair.user_id}, client={pair.client_id}",
            extra={"user_id": pair.user_id, "client_id": pair.client_id},
        )
        return True


# Global instance
access_token_service = AccessTokenService()
