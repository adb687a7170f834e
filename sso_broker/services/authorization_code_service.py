"""Authorization code issuer/exchanger"""

from datetime import timedelta
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.core.config import logger, settings
from sso_broker.core.errors import (
    ExpiredGrant,
    InvalidOrUsedGrant,
    InvalidRequest,
    UnsupportedResponseType,
    translate_store_errors,
)
from sso_broker.core.scopes import DEFAULT_SCOPE
from sso_broker.models.authorization_code import OAuthAuthorizationCode
from sso_broker.repositories import AuthorizationCodeRepository
from sso_broker.schemas.oauth import AuthorizeRequest, IssuedCode, TokenPair
from sso_broker.services.access_token_service import access_token_service
from sso_broker.services.oauth_client_service import oauth_client_service
from sso_broker.utils import clock
from sso_broker.utils.crypto import generate_token, hash_token
from sso_broker.utils.validators import validate_lifetime

AUTHORIZE_PARAMS = {"client_id", "redirect_uri", "response_type", "scope", "state"}

# Parameters the broker itself writes into the client redirect
RESERVED_REDIRECT_PARAMS = {"code", "state", "error", "error_description"}


def _append_query(url: str, params: list[tuple[str, str]]) -> str:
    """Append params to a URL, keeping any query it already has"""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True) + params
    return urlunsplit(parts._replace(query=urlencode(query)))


class AuthorizationCodeService:
    """Issues authorization codes and exchanges them for token pairs"""

    def parse_authorize_request(self, query: list[tuple[str, str]]) -> AuthorizeRequest:
        """
        Normalize raw authorize query parameters

        ``query`` is the ordered list of (name, value) pairs, repeated names
        included. ``state`` is kept as-is. For the broker's own parameters
        the first occurrence wins. Every other pair is kept, in order, as a
        pass-through parameter and echoed on the success redirect.

        Raises:
            InvalidRequest: client_id or redirect_uri missing
            UnsupportedResponseType: response_type is not ``code``
        """
        params: dict[str, str] = {}
        for key, value in query:
            params.setdefault(key, value)

        client_id = params.get("client_id")
        redirect_uri = params.get("redirect_uri")
        if not client_id or not redirect_uri:
            raise InvalidRequest(
                "client_id and redirect_uri are required",
                details={"client_id": client_id, "redirect_uri": redirect_uri},
            )

        response_type = params.get("response_type")
        if response_type != "code":
            raise UnsupportedResponseType(response_type)

        pass_through = [
            (key, value)
            for key, value in query
            if key not in AUTHORIZE_PARAMS and key not in RESERVED_REDIRECT_PARAMS
        ]

        return AuthorizeRequest(
            client_id=client_id,
            redirect_uri=redirect_uri,
            response_type=response_type,
            scope=params.get("scope") or DEFAULT_SCOPE,
            state=params.get("state"),
            pass_through=pass_through,
        )

    @translate_store_errors
    async def issue_code(
        self,
        db: AsyncSession,
        client_id: str,
        user_id: str,
        redirect_uri: str,
        scope: str,
        expiry_minutes: int | None = None,
    ) -> IssuedCode:
        """
        Issue a fresh authorization code bound to a redirect URI

        Args:
            db: Database session
            client_id: OAuth client ID
            user_id: Consenting user
            redirect_uri: Redirect URI the exchange must present again
            scope: Granted scope (space-separated)
            expiry_minutes: Lifetime (default 10)

        Returns:
            IssuedCode with the plain code
        """
        if expiry_minutes is None:
            expiry_minutes = settings.authorization_code_expiry_minutes
        is_valid, error = validate_lifetime(expiry_minutes, "expiry_minutes")
        if not is_valid:
            raise InvalidRequest(error, details={"expiry_minutes": expiry_minutes})

        code = generate_token(32)
        now = clock.utc_now()
        expires_at = now + timedelta(minutes=expiry_minutes)

        await AuthorizationCodeRepository(db).add(
            OAuthAuthorizationCode(
                code_hash=hash_token(code),
                client_id=client_id,
                user_id=user_id,
                redirect_uri=redirect_uri,
                scope=scope,
                expires_at=expires_at,
                created_at=now,
            )
        )
        await db.commit()

        logger.info(
            f"Authorization code issued: user={user_id}, client={client_id}",
            extra={"user_id": user_id, "client_id": client_id, "scope": scope},
        )

        return IssuedCode(code=code, expires_at=expires_at)

    @translate_store_errors
    async def exchange(
        self,
        db: AsyncSession,
        code: str,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
    ) -> TokenPair:
        """
        Exchange an authorization code for an access/refresh token pair

        The code alone is not enough: the caller must also authenticate
        with the client secret.

        Raises:
            InvalidClientCredentials: Client authentication failed
            RedirectMismatch: redirect_uri is not registered for the client
            InvalidOrUsedGrant: Unknown, used, other client or other redirect URI
            ExpiredGrant: Unused code past expiry
        """
        await oauth_client_service.authenticate_client(db, client_id, client_secret)
        await oauth_client_service.validate_client(db, client_id, redirect_uri)

        code_hash = hash_token(code)
        repository = AuthorizationCodeRepository(db)
        now = clock.utc_now()

        try:
            auth_code = await repository.consume(code_hash, client_id, redirect_uri, now)
            if auth_code is None:
                await db.rollback()
                await self._raise_exchange_failure(repository, code_hash, client_id, redirect_uri, now)

            pair = await access_token_service.issue_token_pair(
                db,
                client_id=client_id,
                user_id=auth_code.user_id,
                scope=auth_code.scope,
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            f"Authorization code exchanged: user={pair.user_id}, client={client_id}",
            extra={"user_id": pair.user_id, "client_id": client_id},
        )

        return pair

    async def _raise_exchange_failure(self, repository, code_hash, client_id, redirect_uri, now):
        """Classify a failed exchange; the lookup never changes state"""
        existing = await repository.find_by_hash(code_hash)

        if (
            existing is not None
            and existing.used_at is None
            and existing.client_id == client_id
            and existing.redirect_uri == redirect_uri
            and clock.ensure_utc(existing.expires_at) <= now
        ):
            logger.info(f"Authorization code expired: {code_hash[:16]}...")
            raise ExpiredGrant()

        if existing is not None and existing.used_at is not None:
            logger.warning(
                f"SECURITY: authorization code reuse: {code_hash[:16]}..., client_id={client_id}"
            )

        raise InvalidOrUsedGrant()

    def build_success_redirect(
        self,
        redirect_uri: str,
        code: str,
        state: str | None = None,
        pass_through: list[tuple[str, str]] | None = None,
    ) -> str:
        """``{redirect_uri}?code=...&state=...`` plus pass-through parameters"""
        params = [("code", code)]
        if state is not None:
            params.append(("state", state))
        params.extend(
            (key, value)
            for key, value in pass_through or []
            if key not in RESERVED_REDIRECT_PARAMS
        )
        return _append_query(redirect_uri, params)

    def build_denial_redirect(
        self,
        redirect_uri: str,
        state: str | None = None,
        description: str = "The user denied the request",
    ) -> str:
        """``{redirect_uri}?error=access_denied&error_description=...&state=...``"""
        params = [("error", "access_denied"), ("error_description", description)]
        if state is not None:
            params.append(("state", state))
        return _append_query(redirect_uri, params)


# Global instance
authorization_code_service = AuthorizationCodeService()
