"""Internal SSO endpoints (first-party applications only)"""

from fastapi import APIRouter, status

from sso_broker.core.config import logger
from sso_broker.core.dependencies import ClientContext, DBSession
from sso_broker.core.errors import BrokerError, StoreUnavailable
from sso_broker.schemas.sso import (
    IssuedSsoToken,
    SsoRedeemRequest,
    SsoRedeemResponse,
    SsoTokenCreate,
)
from sso_broker.schemas.user import UserProfile, UserSync
from sso_broker.services.audit_service import audit_service
from sso_broker.services.sso_service import sso_service
from sso_broker.services.user_service import user_service

router = APIRouter()


@router.post("/tokens", response_model=IssuedSsoToken, status_code=status.HTTP_201_CREATED)
async def issue_sso_token(data: SsoTokenCreate, db: DBSession, ctx: ClientContext):
    """
    Issue a one-time SSO token

    The source application redirects the browser to ``redirect_url``; the
    target application redeems the token server-side.
    """
    issued = await sso_service.issue(
        db,
        user_id=data.user_id,
        source_app=data.source_app,
        target_app=data.target_app,
        expiry_minutes=data.expiry_minutes,
        redirect_path=data.redirect_path,
        tier=data.tier,
        client_id=data.client_id,
        scope=data.scope,
        metadata=data.metadata,
    )

    await audit_service.log_sso_issued(
        db,
        user_id=data.user_id,
        source_app=data.source_app,
        target_app=data.target_app,
        client_id=data.client_id,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )

    return issued


@router.post("/redeem", response_model=SsoRedeemResponse)
async def redeem_sso_token(data: SsoRedeemRequest, db: DBSession, ctx: ClientContext):
    """
    Redeem an SSO token exactly once

    Returns the bound user, the routing hints and, when the user has been
    synced to the directory, the profile for session bootstrap.
    """
    try:
        redeemed = await sso_service.redeem(db, data.token)
    except StoreUnavailable:
        raise
    except BrokerError as e:
        await audit_service.log_rejected(
            db,
            event_type="sso_token_redeem",
            error_code=e.error_code,
            ip_address=ctx.ip_address,
            user_agent=ctx.user_agent,
        )
        raise

    user = await user_service.get_by_id(db, redeemed.user_id)
    if user is None:
        logger.info(f"Redeemed SSO token for user not in directory: {redeemed.user_id}")

    await audit_service.log_sso_redeemed(
        db,
        user_id=redeemed.user_id,
        target_app=redeemed.target_app,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )

    return SsoRedeemResponse(
        **redeemed.model_dump(),
        user=UserProfile.from_user(user) if user else None,
    )


@router.put("/users/{user_id}", response_model=UserProfile)
async def sync_user(user_id: str, data: UserSync, db: DBSession):
    """Insert or update a user's profile ahead of an SSO hand-off"""
    user = await user_service.sync_profile(db, user_id, data)
    return UserProfile.from_user(user)
