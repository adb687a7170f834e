"""
Integration tests for the access/refresh token manager.
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from conftest import CLIENT_ID, CLIENT_SECRET, frozen_time, utc
from sso_broker.core.errors import (
    ExpiredRefreshToken,
    ExpiredToken,
    InvalidClientCredentials,
    InvalidOrRevokedAccessToken,
    InvalidOrRevokedRefreshToken,
    InvalidRequest,
)
from sso_broker.models import AuditLog, OAuthAccessToken
from sso_broker.services.access_token_service import access_token_service


async def _pair(db, scope="profile email"):
    pair = await access_token_service.issue_token_pair(
        db, client_id=CLIENT_ID, user_id="u1", scope=scope
    )
    await db.commit()
    return pair


class TestIssuePair:
    @pytest.mark.asyncio
    async def test_explicit_lifetime(self, db_session, registered_client):
        pair = await access_token_service.issue_token_pair(
            db_session, client_id=CLIENT_ID, user_id="u1", scope="profile", expiry_seconds=60
        )

        assert pair.expires_in == 60

    @pytest.mark.asyncio
    async def test_zero_lifetime_is_rejected(self, db_session, registered_client):
        with pytest.raises(InvalidRequest):
            await access_token_service.issue_token_pair(
                db_session, client_id=CLIENT_ID, user_id="u1", scope="profile", expiry_seconds=0
            )


class TestValidate:
    @pytest.mark.asyncio
    async def test_valid_token(self, db_session, registered_client):
        pair = await _pair(db_session)

        info = await access_token_service.validate_access_token(db_session, pair.access_token)

        assert info.valid is True
        assert info.user_id == "u1"
        assert info.client_id == CLIENT_ID
        assert info.scopes == {"profile", "email"}

    @pytest.mark.asyncio
    async def test_unknown_token(self, db_session):
        with pytest.raises(InvalidOrRevokedAccessToken):
            await access_token_service.validate_access_token(db_session, "nope")

    @pytest.mark.asyncio
    async def test_refresh_token_is_not_an_access_token(self, db_session, registered_client):
        pair = await _pair(db_session)

        with pytest.raises(InvalidOrRevokedAccessToken):
            await access_token_service.validate_access_token(db_session, pair.refresh_token)

    @pytest.mark.asyncio
    async def test_expired_token(self, db_session, registered_client):
        issued_at = utc(2026, 1, 1, 12, 0)
        with frozen_time(issued_at):
            pair = await _pair(db_session)

        with frozen_time(issued_at + timedelta(seconds=3600)):
            with pytest.raises(ExpiredToken):
                await access_token_service.validate_access_token(db_session, pair.access_token)


class TestRevoke:
    @pytest.mark.asyncio
    async def test_revoked_token_is_invalid_before_expiry(self, db_session, registered_client):
        pair = await _pair(db_session)

        assert await access_token_service.revoke(db_session, pair.access_token) is True

        with pytest.raises(InvalidOrRevokedAccessToken):
            await access_token_service.validate_access_token(db_session, pair.access_token)

    @pytest.mark.asyncio
    async def test_revoke_is_idempotent(self, db_session, registered_client):
        pair = await _pair(db_session)

        with frozen_time(utc(2026, 1, 1, 12, 0)):
            assert await access_token_service.revoke(db_session, pair.access_token)
        with frozen_time(utc(2026, 1, 1, 13, 0)):
            assert await access_token_service.revoke(db_session, pair.access_token)

        row = (await db_session.execute(select(OAuthAccessToken))).scalar_one()
        assert row.revoked_at.replace(tzinfo=None) == utc(2026, 1, 1, 12, 0).replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_revoke_unknown_token(self, db_session):
        assert await access_token_service.revoke(db_session, "nope") is False

    @pytest.mark.asyncio
    async def test_revoke_by_refresh_token(self, db_session, registered_client):
        pair = await _pair(db_session)

        assert await access_token_service.revoke(
            db_session, pair.refresh_token, token_type_hint="refresh_token"
        )

        with pytest.raises(InvalidOrRevokedAccessToken):
            await access_token_service.validate_access_token(db_session, pair.access_token)
        with pytest.raises(InvalidOrRevokedRefreshToken):
            await access_token_service.refresh(
                db_session, pair.refresh_token, CLIENT_ID, CLIENT_SECRET
            )


class TestRefresh:
    @pytest.mark.asyncio
    async def test_rotation(self, db_session, registered_client):
        old = await _pair(db_session)

        new = await access_token_service.refresh(
            db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
        )

        assert new.access_token != old.access_token
        assert new.refresh_token != old.refresh_token
        assert new.user_id == "u1"
        assert new.scope == "profile email"

        rows = {row.id: row for row in (await db_session.execute(select(OAuthAccessToken))).scalars()}
        assert rows[old.id].revoked_at is not None
        assert rows[new.id].revoked_at is None
        assert rows[new.id].parent_id == old.id

        with pytest.raises(InvalidOrRevokedAccessToken):
            await access_token_service.validate_access_token(db_session, old.access_token)
        await access_token_service.validate_access_token(db_session, new.access_token)

    @pytest.mark.asyncio
    async def test_retrying_the_same_refresh_fails(self, db_session, registered_client):
        old = await _pair(db_session)
        await access_token_service.refresh(db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET)

        with pytest.raises(InvalidOrRevokedRefreshToken):
            await access_token_service.refresh(
                db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
            )

        incidents = (
            await db_session.execute(
                select(AuditLog).where(
                    AuditLog.event_type == "security_incident_refresh_token_reuse"
                )
            )
        ).scalars().all()
        assert len(incidents) == 1

    @pytest.mark.asyncio
    async def test_refresh_after_revocation_is_not_reuse(self, db_session, registered_client):
        old = await _pair(db_session)
        assert await access_token_service.revoke(db_session, old.access_token)

        with pytest.raises(InvalidOrRevokedRefreshToken):
            await access_token_service.refresh(
                db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
            )

        incidents = (
            await db_session.execute(
                select(AuditLog).where(AuditLog.event_type.like("security_incident_%"))
            )
        ).scalars().all()
        assert incidents == []

    @pytest.mark.asyncio
    async def test_wrong_client_secret(self, db_session, registered_client):
        old = await _pair(db_session)

        with pytest.raises(InvalidClientCredentials):
            await access_token_service.refresh(db_session, old.refresh_token, CLIENT_ID, "wrong")

        # The pair is untouched
        await access_token_service.validate_access_token(db_session, old.access_token)

    @pytest.mark.asyncio
    async def test_expired_refresh_token(self, db_session, registered_client):
        issued_at = utc(2026, 1, 1, 12, 0)
        with frozen_time(issued_at):
            old = await _pair(db_session)

        with frozen_time(issued_at + timedelta(days=31)):
            with pytest.raises(ExpiredRefreshToken):
                await access_token_service.refresh(
                    db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
                )

    @pytest.mark.asyncio
    async def test_expired_access_token_can_still_be_refreshed(self, db_session, registered_client):
        issued_at = utc(2026, 1, 1, 12, 0)
        with frozen_time(issued_at):
            old = await _pair(db_session)

        with frozen_time(issued_at + timedelta(hours=2)):
            new = await access_token_service.refresh(
                db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
            )
            info = await access_token_service.validate_access_token(db_session, new.access_token)

        assert info.user_id == "u1"

    @pytest.mark.asyncio
    async def test_failed_issue_keeps_old_pair_valid(self, db_session, registered_client):
        old = await _pair(db_session)

        with patch.object(
            access_token_service,
            "issue_token_pair",
            AsyncMock(side_effect=RuntimeError("insert failed")),
        ):
            with pytest.raises(RuntimeError):
                await access_token_service.refresh(
                    db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
                )

        new = await access_token_service.refresh(
            db_session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
        )
        assert new.user_id == "u1"

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_yield_one_success(
        self, db_session, session_factory, registered_client
    ):
        old = await _pair(db_session)

        async def attempt():
            async with session_factory() as session:
                try:
                    await access_token_service.refresh(
                        session, old.refresh_token, CLIENT_ID, CLIENT_SECRET
                    )
                    return "rotated"
                except InvalidOrRevokedRefreshToken:
                    return "rejected"

        results = await asyncio.gather(attempt(), attempt())

        assert sorted(results) == ["rejected", "rotated"]
        active = (
            await db_session.execute(
                select(OAuthAccessToken).where(OAuthAccessToken.revoked_at.is_(None))
            )
        ).scalars().all()
        assert len(active) == 1
