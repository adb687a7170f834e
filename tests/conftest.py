"""
Pytest configuration and fixtures.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from sso_broker.core.config import settings
from sso_broker.models import Base, OAuthClient, User, build_engine, get_db, init_db
from sso_broker.schemas.oauth import OAuthClientCreate
from sso_broker.services.oauth_client_service import oauth_client_service
from sso_broker.utils.crypto import hash_secret

INTERNAL_KEY = "test-key"
CLIENT_ID = "school-portal"
CLIENT_SECRET = "school-portal-secret-0123456789"
REDIRECT_URI = "https://school.example/callback/"
ALT_REDIRECT_URI = "https://school.example/oauth/alt"
CLIENT_SCOPES = "profile email school:connect student:sync fee:pay"


@pytest.fixture(autouse=True)
def test_settings():
    """Deterministic settings for all tests"""
    with patch.object(settings, "internal_api_key", INTERNAL_KEY), patch.object(
        settings, "enable_rate_limiting", False
    ), patch.object(settings, "environment", "development"):
        yield settings


@contextmanager
def frozen_time(at: datetime):
    """Freeze the broker clock"""
    with patch("sso_broker.utils.clock.utc_now", return_value=at):
        yield


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ==================== Store ====================


@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    File-backed SQLite store.

    A file (not :memory:) so that several sessions race against one store.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'sso_broker_test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def registered_client(db_session):
    """The school-portal client with two registered redirect URIs"""
    client, secret = await oauth_client_service.create_client(
        db_session,
        OAuthClientCreate(
            client_id=CLIENT_ID,
            client_secret=CLIENT_SECRET,
            name="School Portal",
            redirect_uris=[REDIRECT_URI, ALT_REDIRECT_URI],
            allowed_scopes=CLIENT_SCOPES,
        ),
    )
    return client


# ==================== HTTP ====================


@pytest.fixture
def api_db_url(tmp_path):
    """Store for HTTP tests, prepared synchronously with one client and one user"""
    path = tmp_path / "sso_broker_api.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)

    with Session(sync_engine) as session:
        session.add(
            OAuthClient(
                client_id=CLIENT_ID,
                client_secret_hash=hash_secret(CLIENT_SECRET),
                name="School Portal",
                description="School-management system integration",
                redirect_uris=[REDIRECT_URI, ALT_REDIRECT_URI],
                allowed_scopes=CLIENT_SCOPES,
                is_active=True,
            )
        )
        session.add(
            User(
                id="u1",
                email="ada@example.com",
                first_name="Ada",
                last_name="Lovelace",
                phone="+23276000000",
                roles="user",
                is_active=True,
            )
        )
        session.commit()

    sync_engine.dispose()
    return f"sqlite:///{path}"


@pytest.fixture
def brute_force():
    """Brute-force protection with Redis mocked out"""
    with patch(
        "sso_broker.api.v1.oauth.brute_force_protection"
    ) as mock:
        mock.is_locked_out = AsyncMock(return_value=(False, None))
        mock.record_failed_attempt = AsyncMock()
        mock.reset_failed_attempts = AsyncMock()
        yield mock


@pytest.fixture
def client(api_db_url, brute_force):
    """Test client fixture with the store dependency overridden"""
    from sso_broker.main import app

    # TestClient runs each request on its own event loop, so no pooled connections
    api_engine = build_engine(api_db_url, poolclass=NullPool)
    factory = async_sessionmaker(api_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def internal_headers():
    return {"X-Internal-Auth": INTERNAL_KEY}
