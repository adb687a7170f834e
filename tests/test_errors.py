"""
Tests for the error taxonomy and store-outage translation.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from sso_broker.core.errors import (
    ExpiredGrant,
    InvalidClientCredentials,
    InvalidOrUsedGrant,
    InvalidOrUsedToken,
    StoreUnavailable,
    translate_store_errors,
)
from sso_broker.services.access_token_service import access_token_service
from sso_broker.services.sso_service import sso_service


def _broken_session():
    db = MagicMock()
    db.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("database is locked")))
    db.rollback = AsyncMock()
    db.commit = AsyncMock()
    return db


def test_to_dict_shape():
    error = InvalidOrUsedToken()

    assert error.to_dict() == {
        "error_code": "InvalidOrUsedToken",
        "message": "Token not found or already used",
        "details": {},
    }
    assert error.http_status == 401


def test_grant_errors_are_distinguishable():
    assert InvalidOrUsedGrant().error_code != ExpiredGrant().error_code
    assert InvalidOrUsedGrant().oauth_error == ExpiredGrant().oauth_error == "invalid_grant"


def test_locked_out_credentials_use_429():
    assert InvalidClientCredentials().http_status == 401
    assert InvalidClientCredentials(locked=True).http_status == 429


@pytest.mark.asyncio
async def test_translate_store_errors_decorator():
    @translate_store_errors
    async def lookup():
        raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

    with pytest.raises(StoreUnavailable) as exc_info:
        await lookup()

    assert exc_info.value.http_status == 503
    assert exc_info.value.details == {"operation": "lookup", "reason": "OperationalError"}


@pytest.mark.asyncio
async def test_redeem_outage_is_not_an_invalid_verdict():
    with pytest.raises(StoreUnavailable):
        await sso_service.redeem(_broken_session(), "some-token")


@pytest.mark.asyncio
async def test_validate_outage_is_not_an_invalid_verdict():
    with pytest.raises(StoreUnavailable):
        await access_token_service.validate_access_token(_broken_session(), "some-token")
