"""SSO token broker for cross-domain login between first-party apps"""

from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.core.config import logger, settings
from sso_broker.core.errors import (
    ExpiredToken,
    InvalidOrUsedToken,
    InvalidRequest,
    UnknownApplication,
    translate_store_errors,
)
from sso_broker.models.sso_token import SsoToken
from sso_broker.repositories import SsoTokenRepository
from sso_broker.schemas.sso import (
    EXTERNAL_TARGET,
    IssuedSsoToken,
    RedeemedSsoToken,
    sso_metadata_adapter,
)
from sso_broker.services.audit_service import audit_service
from sso_broker.services.oauth_client_service import oauth_client_service
from sso_broker.utils import clock
from sso_broker.utils.crypto import generate_token, hash_token
from sso_broker.utils.validators import validate_lifetime, validate_redirect_path


class SsoService:
    """Issues and redeems one-time cross-domain session-bootstrap tokens"""

    def build_redirect_url(
        self,
        target_app: str,
        token: str,
        redirect_path: str | None = None,
    ) -> str:
        """
        Build ``{target_app_sso_url}?token=...&redirect=...``

        Raises:
            UnknownApplication: If the target is not a registered app
        """
        app = settings.sso_apps.get(target_app)
        if app is None or not app.enabled:
            raise UnknownApplication(target_app)

        params = {"token": token}
        if redirect_path:
            params["redirect"] = redirect_path

        return f"{app.sso_url(settings.is_development)}?{urlencode(params)}"

    @translate_store_errors
    async def issue(
        self,
        db: AsyncSession,
        user_id: str,
        source_app: str,
        target_app: str,
        expiry_minutes: int | None = None,
        redirect_path: str | None = None,
        tier: str | None = None,
        client_id: str | None = None,
        scope: str | None = None,
        metadata=None,
    ) -> IssuedSsoToken:
        """
        Issue a one-time SSO token

        Args:
            db: Database session
            user_id: User the token logs in
            source_app: Issuing first-party app
            target_app: Receiving first-party app, or ``external`` to bridge
                into the OAuth flow
            expiry_minutes: Lifetime (default from settings, 5 minutes)
            redirect_path: Where the target should land after login
            tier: Optional tier hint for the target
            client_id: OAuth client when bridging (required for ``external``)
            scope: OAuth scope when bridging
            metadata: Structured extension record (``SsoMetadata``)

        Returns:
            IssuedSsoToken with the plain token and, for first-party targets,
            the SSO redirect URL

        Raises:
            UnknownApplication, InvalidRequest, UnknownClient, InactiveClient
        """
        if source_app not in settings.sso_apps:
            raise UnknownApplication(source_app)

        if target_app == EXTERNAL_TARGET:
            if not client_id:
                raise InvalidRequest("client_id is required for external targets")
            await oauth_client_service.get_active_client(db, client_id)
        elif target_app not in settings.sso_apps or not settings.sso_apps[target_app].enabled:
            raise UnknownApplication(target_app)

        if expiry_minutes is None:
            expiry_minutes = settings.sso_token_expiry_minutes
        is_valid, error = validate_lifetime(expiry_minutes, "expiry_minutes")
        if not is_valid:
            raise InvalidRequest(error, details={"expiry_minutes": expiry_minutes})

        is_valid, error = validate_redirect_path(redirect_path)
        if not is_valid:
            raise InvalidRequest(error, details={"redirect_path": redirect_path})

        extension = None
        if metadata is not None:
            extension = sso_metadata_adapter.dump_python(
                sso_metadata_adapter.validate_python(metadata), mode="json"
            )

        token = generate_token(32)
        now = clock.utc_now()
        expires_at = now + timedelta(minutes=expiry_minutes)

        await SsoTokenRepository(db).add(
            SsoToken(
                token_hash=hash_token(token),
                user_id=user_id,
                source_app=source_app,
                target_app=target_app,
                tier=tier,
                redirect_path=redirect_path,
                client_id=client_id,
                scope=scope,
                extension=extension,
                expires_at=expires_at,
                created_at=now,
            )
        )
        await db.commit()

        logger.info(
            f"SSO token issued: user={user_id}, {source_app} -> {target_app}",
            extra={"user_id": user_id, "source_app": source_app, "target_app": target_app},
        )

        redirect_url = None
        if target_app != EXTERNAL_TARGET:
            redirect_url = self.build_redirect_url(target_app, token, redirect_path)

        return IssuedSsoToken(token=token, expires_at=expires_at, redirect_url=redirect_url)

    @translate_store_errors
    async def redeem(self, db: AsyncSession, token: str) -> RedeemedSsoToken:
        """
        Redeem an SSO token exactly once

        Args:
            db: Database session
            token: Opaque token from the redirect URL

        Returns:
            RedeemedSsoToken with the bound user and routing hints

        Raises:
            InvalidOrUsedToken: Unknown token or already redeemed
            ExpiredToken: Token was never used but is past expiry
        """
        token_hash = hash_token(token)
        repository = SsoTokenRepository(db)
        now = clock.utc_now()

        sso_token = await repository.consume(token_hash, now)
        if sso_token is None:
            await self._raise_redeem_failure(db, repository, token_hash, now)

        await db.commit()

        logger.info(
            f"SSO token redeemed: user={sso_token.user_id}, target={sso_token.target_app}",
            extra={"user_id": sso_token.user_id, "target_app": sso_token.target_app},
        )

        metadata = None
        if sso_token.extension is not None:
            metadata = sso_metadata_adapter.validate_python(sso_token.extension)

        return RedeemedSsoToken(
            user_id=sso_token.user_id,
            source_app=sso_token.source_app,
            target_app=sso_token.target_app,
            redirect_path=sso_token.redirect_path,
            tier=sso_token.tier,
            client_id=sso_token.client_id,
            scope=sso_token.scope,
            metadata=metadata,
        )

    async def _raise_redeem_failure(self, db, repository, token_hash, now):
        """Classify a failed redemption; the lookup never changes state"""
        existing = await repository.find_by_hash(token_hash)

        if existing is not None and existing.used_at is None:
            if clock.ensure_utc(existing.expires_at) <= now:
                logger.info(f"SSO token expired: {token_hash[:16]}...")
                raise ExpiredToken()

        if existing is not None and existing.used_at is not None:
            logger.warning(
                f"SECURITY: SSO token replay: {token_hash[:16]}..., user_id={existing.user_id}"
            )
            await audit_service.log_security_incident(
                db,
                "sso_token_replay",
                user_id=existing.user_id,
                event_data={"target_app": existing.target_app},
            )

        raise InvalidOrUsedToken()


# Global instance
sso_service = SsoService()
