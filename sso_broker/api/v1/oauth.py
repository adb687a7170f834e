"""OAuth2 endpoints"""

from fastapi import APIRouter, Form, Request

from sso_broker.core import scopes
from sso_broker.core.config import logger
from sso_broker.core.dependencies import BearerToken, ClientContext, DBSession
from sso_broker.core.errors import (
    BrokerError,
    ExpiredToken,
    InvalidClientCredentials,
    InvalidOrRevokedAccessToken,
    InvalidRequest,
    StoreUnavailable,
    UnsupportedResponseType,
)
from sso_broker.schemas.oauth import (
    AuthorizeDecision,
    AuthorizeDecisionResponse,
    ClientInfo,
    ConsentResponse,
    GrantType,
    ScopeInfo,
    TokenResponse,
)
from sso_broker.services.access_token_service import access_token_service
from sso_broker.services.audit_service import audit_service
from sso_broker.services.authorization_code_service import authorization_code_service
from sso_broker.services.brute_force_protection import brute_force_protection
from sso_broker.services.oauth_client_service import oauth_client_service
from sso_broker.services.user_service import user_service

router = APIRouter()


@router.get("/authorize", response_model=ConsentResponse)
async def authorize(request: Request, db: DBSession):
    """
    OAuth2 Authorization Endpoint

    Validates the request and returns what the consent UI needs to render
    the approval prompt. Failures are returned as JSON errors and never
    redirected to the presented ``redirect_uri``.
    """
    auth_request = authorization_code_service.parse_authorize_request(
        request.query_params.multi_items()
    )

    client = await oauth_client_service.validate_client(
        db, auth_request.client_id, auth_request.redirect_uri
    )
    scope_check = oauth_client_service.check_scope(client, auth_request.scope)

    return ConsentResponse(
        client=ClientInfo(
            client_id=client.client_id,
            name=client.name,
            description=client.description,
            logo_url=client.logo_url,
            website_url=client.website_url,
        ),
        redirect_uri=auth_request.redirect_uri,
        scope=scope_check.scope,
        scopes=[ScopeInfo(**scopes.describe(s)) for s in scope_check.granted],
        requires_review=scope_check.requires_review,
        state=auth_request.state,
        pass_through=auth_request.pass_through,
    )


@router.post("/authorize/decision", response_model=AuthorizeDecisionResponse)
async def authorize_decision(decision: AuthorizeDecision, db: DBSession, ctx: ClientContext):
    """
    Record the user's consent decision

    Client and redirect URI are validated again before any redirect URL is
    built. Approval issues an authorization code; denial produces an
    ``access_denied`` redirect.
    """
    if decision.response_type != "code":
        raise UnsupportedResponseType(decision.response_type)

    client = await oauth_client_service.validate_client(
        db, decision.client_id, decision.redirect_uri
    )

    if not decision.approved:
        await audit_service.log_authorization_denied(
            db,
            user_id=decision.user_id,
            client_id=client.client_id,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        return AuthorizeDecisionResponse(
            redirect_url=authorization_code_service.build_denial_redirect(
                decision.redirect_uri, state=decision.state
            )
        )

    scope_check = oauth_client_service.check_scope(client, decision.scope)

    issued = await authorization_code_service.issue_code(
        db,
        client_id=client.client_id,
        user_id=decision.user_id,
        redirect_uri=decision.redirect_uri,
        scope=scope_check.scope,
    )

    await audit_service.log_code_issued(
        db,
        user_id=decision.user_id,
        client_id=client.client_id,
        scope=scope_check.scope,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )

    return AuthorizeDecisionResponse(
        redirect_url=authorization_code_service.build_success_redirect(
            decision.redirect_uri,
            issued.code,
            state=decision.state,
            pass_through=decision.pass_through,
        )
    )


@router.post("/token", response_model=TokenResponse)
async def token_endpoint(
    db: DBSession,
    ctx: ClientContext,
    grant_type: str = Form(...),
    client_id: str = Form(...),
    client_secret: str = Form(...),
    code: str | None = Form(None),
    redirect_uri: str | None = Form(None),
    refresh_token: str | None = Form(None),
):
    """
    OAuth2 Token Endpoint (server-to-server)

    Supports:
    - Authorization Code Grant: code + redirect_uri -> access_token + refresh_token
    - Refresh Token Grant: refresh_token -> new access_token + new refresh_token
    """
    try:
        grant = GrantType(grant_type)
    except ValueError:
        raise InvalidRequest(
            f"Grant type '{grant_type}' is not supported",
            details={"grant_type": grant_type},
            error_code="UnsupportedGrantType",
        )

    if grant == GrantType.AUTHORIZATION_CODE and (not code or not redirect_uri):
        raise InvalidRequest("Missing required parameters: code and redirect_uri")
    if grant == GrantType.REFRESH_TOKEN and not refresh_token:
        raise InvalidRequest("Missing required parameter: refresh_token")

    is_locked, lockout_reason = await brute_force_protection.is_locked_out(
        client_id, ctx.ip_address
    )
    if is_locked:
        raise InvalidClientCredentials(lockout_reason or "Client temporarily locked", locked=True)

    event_type = "code_exchanged" if grant == GrantType.AUTHORIZATION_CODE else "token_refresh"

    try:
        if grant == GrantType.AUTHORIZATION_CODE:
            pair = await authorization_code_service.exchange(
                db,
                code=code,
                client_id=client_id,
                client_secret=client_secret,
                redirect_uri=redirect_uri,
            )
        else:
            pair = await access_token_service.refresh(
                db,
                refresh_token=refresh_token,
                client_id=client_id,
                client_secret=client_secret,
            )
    except StoreUnavailable:
        raise
    except BrokerError as e:
        if isinstance(e, InvalidClientCredentials):
            await brute_force_protection.record_failed_attempt(client_id, ctx.ip_address)
        await audit_service.log_rejected(
            db,
            event_type=event_type,
            error_code=e.error_code,
            client_id=client_id,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        raise

    await brute_force_protection.reset_failed_attempts(client_id, ctx.ip_address)

    if grant == GrantType.AUTHORIZATION_CODE:
        await audit_service.log_code_exchanged(
            db,
            user_id=pair.user_id,
            client_id=client_id,
            scope=pair.scope,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
    else:
        await audit_service.log_token_refresh(
            db,
            user_id=pair.user_id,
            client_id=client_id,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )

    return TokenResponse.from_pair(pair)


@router.post("/revoke")
async def revoke_token(
    db: DBSession,
    ctx: ClientContext,
    token: str = Form(...),
    token_type_hint: str | None = Form(None),
):
    """
    OAuth2 Token Revocation (RFC 7009)

    Revoking an unknown or already revoked token is not an error.
    """
    revoked = await access_token_service.revoke(db, token, token_type_hint)

    if revoked:
        await audit_service.log_token_revoke(
            db,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )

    return {"revoked": revoked}


@router.post("/introspect")
async def introspect_token(db: DBSession, token: str = Form(...)):
    """
    OAuth2 Token Introspection (RFC 7662)

    Only positive store answers produce ``active: false``; store outages
    surface as 503.
    """
    try:
        info = await access_token_service.validate_access_token(db, token)
    except (InvalidOrRevokedAccessToken, ExpiredToken) as e:
        logger.debug(f"Introspection of inactive token: {e.error_code}")
        return {"active": False}

    return {
        "active": True,
        "scope": info.scope,
        "client_id": info.client_id,
        "sub": info.user_id,
        "token_type": "bearer",
        "exp": int(info.expires_at.timestamp()),
    }


@router.get("/userinfo")
async def userinfo(token: BearerToken, db: DBSession):
    """Profile of the token's user, limited to the granted scopes"""
    user = await user_service.get_active(db, token.user_id)

    claims = {"sub": user.id}
    if scopes.Scope.PROFILE.value in token.scopes:
        claims.update(
            name=f"{user.first_name} {user.last_name}".strip(),
            first_name=user.first_name,
            last_name=user.last_name,
        )
    if scopes.Scope.EMAIL.value in token.scopes:
        claims["email"] = user.email
    if scopes.Scope.PHONE.value in token.scopes:
        claims["phone"] = user.phone

    return claims


@router.get("/scopes", response_model=list[ScopeInfo])
async def list_scopes():
    """Scope catalogue for consent screens and client registration"""
    return [ScopeInfo(**scopes.describe(s.value)) for s in scopes.Scope]
