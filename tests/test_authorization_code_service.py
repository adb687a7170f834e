"""
Integration tests for authorization code issuance and exchange.
"""

import asyncio
from datetime import timedelta
from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy import select

from conftest import ALT_REDIRECT_URI, CLIENT_ID, CLIENT_SECRET, REDIRECT_URI, frozen_time, utc
from sso_broker.core.errors import (
    ExpiredGrant,
    InvalidClientCredentials,
    InvalidOrUsedGrant,
    InvalidRequest,
    RedirectMismatch,
    UnsupportedResponseType,
)
from sso_broker.models import OAuthAccessToken
from sso_broker.services.authorization_code_service import authorization_code_service
from sso_broker.utils.crypto import hash_token


async def _issue(db, redirect_uri=REDIRECT_URI, scope="profile email"):
    return await authorization_code_service.issue_code(
        db,
        client_id=CLIENT_ID,
        user_id="u1",
        redirect_uri=redirect_uri,
        scope=scope,
    )


class TestParseAuthorizeRequest:
    def test_defaults_and_pass_through(self):
        request = authorization_code_service.parse_authorize_request(
            [
                ("client_id", CLIENT_ID),
                ("redirect_uri", REDIRECT_URI),
                ("response_type", "code"),
                ("state", "xyz 123"),
                ("school_id", "sch-42"),
                ("origin", "hillstation"),
            ]
        )

        assert request.scope == "profile"
        assert request.state == "xyz 123"
        assert request.pass_through == [("school_id", "sch-42"), ("origin", "hillstation")]

    def test_repeated_pass_through_names_keep_every_value(self):
        request = authorization_code_service.parse_authorize_request(
            [
                ("client_id", CLIENT_ID),
                ("tag", "a"),
                ("redirect_uri", REDIRECT_URI),
                ("response_type", "code"),
                ("tag", "b"),
            ]
        )

        assert request.pass_through == [("tag", "a"), ("tag", "b")]

    def test_first_occurrence_of_broker_parameter_wins(self):
        request = authorization_code_service.parse_authorize_request(
            [
                ("client_id", CLIENT_ID),
                ("client_id", "other"),
                ("redirect_uri", REDIRECT_URI),
                ("response_type", "code"),
            ]
        )

        assert request.client_id == CLIENT_ID
        assert request.pass_through == []

    def test_response_type_must_be_code(self):
        with pytest.raises(UnsupportedResponseType):
            authorization_code_service.parse_authorize_request(
                [("client_id", CLIENT_ID), ("redirect_uri", REDIRECT_URI), ("response_type", "token")]
            )

        with pytest.raises(UnsupportedResponseType):
            authorization_code_service.parse_authorize_request(
                [("client_id", CLIENT_ID), ("redirect_uri", REDIRECT_URI)]
            )

    def test_client_id_and_redirect_uri_required(self):
        with pytest.raises(InvalidRequest):
            authorization_code_service.parse_authorize_request([("response_type", "code")])

    def test_reserved_names_are_not_passed_through(self):
        request = authorization_code_service.parse_authorize_request(
            [
                ("client_id", CLIENT_ID),
                ("redirect_uri", REDIRECT_URI),
                ("response_type", "code"),
                ("code", "injected"),
                ("error", "injected"),
            ]
        )
        assert request.pass_through == []


class TestRedirects:
    def test_success_redirect(self):
        url = authorization_code_service.build_success_redirect(
            REDIRECT_URI,
            "the-code",
            state="s 1",
            pass_through=[("school_id", "sch-42"), ("tag", "a"), ("tag", "b")],
        )

        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == REDIRECT_URI
        assert parse_qs(parts.query) == {
            "code": ["the-code"],
            "state": ["s 1"],
            "school_id": ["sch-42"],
            "tag": ["a", "b"],
        }

    def test_success_redirect_drops_reserved_pass_through(self):
        url = authorization_code_service.build_success_redirect(
            REDIRECT_URI, "the-code", pass_through=[("code", "forged")]
        )
        assert parse_qs(urlsplit(url).query) == {"code": ["the-code"]}

    def test_success_redirect_keeps_existing_query(self):
        url = authorization_code_service.build_success_redirect(
            "https://school.example/cb?tenant=7", "the-code"
        )
        assert parse_qs(urlsplit(url).query) == {"tenant": ["7"], "code": ["the-code"]}

    def test_denial_redirect(self):
        url = authorization_code_service.build_denial_redirect(REDIRECT_URI, state="abc")

        query = parse_qs(urlsplit(url).query)
        assert query["error"] == ["access_denied"]
        assert query["error_description"]
        assert query["state"] == ["abc"]
        assert "code" not in query


class TestExchange:
    @pytest.mark.asyncio
    async def test_issue_code_defaults(self, db_session, registered_client):
        now = utc(2026, 1, 1, 12, 0)
        with frozen_time(now):
            issued = await _issue(db_session)

        assert issued.expires_at == now + timedelta(minutes=10)

    @pytest.mark.asyncio
    async def test_zero_expiry_is_rejected(self, db_session, registered_client):
        with pytest.raises(InvalidRequest):
            await authorization_code_service.issue_code(
                db_session,
                client_id=CLIENT_ID,
                user_id="u1",
                redirect_uri=REDIRECT_URI,
                scope="profile",
                expiry_minutes=0,
            )


    @pytest.mark.asyncio
    async def test_exchange_then_reexchange(self, db_session, registered_client):
        issued = await _issue(db_session)

        pair = await authorization_code_service.exchange(
            db_session, issued.code, CLIENT_ID, CLIENT_SECRET, REDIRECT_URI
        )

        assert pair.access_token
        assert pair.refresh_token
        assert pair.expires_in == 3600
        assert pair.scope == "profile email"
        assert pair.user_id == "u1"

        stored = (await db_session.execute(select(OAuthAccessToken))).scalar_one()
        assert stored.access_token_hash == hash_token(pair.access_token)

        with pytest.raises(InvalidOrUsedGrant):
            await authorization_code_service.exchange(
                db_session, issued.code, CLIENT_ID, CLIENT_SECRET, REDIRECT_URI
            )

    @pytest.mark.asyncio
    async def test_other_registered_redirect_uri_is_invalid_grant(self, db_session, registered_client):
        issued = await _issue(db_session, redirect_uri=REDIRECT_URI)

        with pytest.raises(InvalidOrUsedGrant):
            await authorization_code_service.exchange(
                db_session, issued.code, CLIENT_ID, CLIENT_SECRET, ALT_REDIRECT_URI
            )

        # The code survives a mismatched attempt
        pair = await authorization_code_service.exchange(
            db_session, issued.code, CLIENT_ID, CLIENT_SECRET, REDIRECT_URI
        )
        assert pair.user_id == "u1"

    @pytest.mark.asyncio
    async def test_unregistered_redirect_uri(self, db_session, registered_client):
        issued = await _issue(db_session)

        with pytest.raises(RedirectMismatch):
            await authorization_code_service.exchange(
                db_session, issued.code, CLIENT_ID, CLIENT_SECRET, "https://evil.example/cb"
            )

    @pytest.mark.asyncio
    async def test_wrong_secret(self, db_session, registered_client):
        issued = await _issue(db_session)

        with pytest.raises(InvalidClientCredentials):
            await authorization_code_service.exchange(
                db_session, issued.code, CLIENT_ID, "wrong-secret", REDIRECT_URI
            )

    @pytest.mark.asyncio
    async def test_expired_code(self, db_session, registered_client):
        issued_at = utc(2026, 1, 1, 12, 0)
        with frozen_time(issued_at):
            issued = await _issue(db_session)

        with frozen_time(issued_at + timedelta(minutes=11)):
            with pytest.raises(ExpiredGrant):
                await authorization_code_service.exchange(
                    db_session, issued.code, CLIENT_ID, CLIENT_SECRET, REDIRECT_URI
                )

    @pytest.mark.asyncio
    async def test_unknown_code(self, db_session, registered_client):
        with pytest.raises(InvalidOrUsedGrant):
            await authorization_code_service.exchange(
                db_session, "made-up", CLIENT_ID, CLIENT_SECRET, REDIRECT_URI
            )

    @pytest.mark.asyncio
    async def test_concurrent_exchanges_yield_one_pair(
        self, db_session, session_factory, registered_client
    ):
        issued = await _issue(db_session)

        async def attempt():
            async with session_factory() as session:
                try:
                    await authorization_code_service.exchange(
                        session, issued.code, CLIENT_ID, CLIENT_SECRET, REDIRECT_URI
                    )
                    return "exchanged"
                except InvalidOrUsedGrant:
                    return "rejected"

        results = await asyncio.gather(*[attempt() for _ in range(3)])

        assert results.count("exchanged") == 1
        pairs = (await db_session.execute(select(OAuthAccessToken))).scalars().all()
        assert len(pairs) == 1
