"""Database configuration and base models"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from sso_broker.core.config import settings


class Base(DeclarativeBase):
    """Base class for all database models"""

    pass


def to_async_url(db_url: str) -> str:
    """Convert sqlite:/// to sqlite+aiosqlite:/// for async support"""
    if db_url.startswith("sqlite:///"):
        return db_url.replace("sqlite:///", "sqlite+aiosqlite:///")
    return db_url


def build_engine(db_url: str, echo: bool = False, **engine_kwargs) -> AsyncEngine:
    """
    Create an async engine for the token store

    SQLite connections get WAL mode and a busy timeout so concurrent
    redemptions queue on the write lock instead of failing.
    """
    async_engine = create_async_engine(
        to_async_url(db_url),
        echo=echo,
        future=True,
        **engine_kwargs,
    )

    if "sqlite" in db_url:

        @event.listens_for(async_engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            """Set SQLite pragmas for better concurrency"""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.execute("PRAGMA busy_timeout=30000")  # 30 seconds
            cursor.close()

    return async_engine


engine = build_engine(settings.db_url, echo=settings.is_development)

# Create async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """Dependency for getting async database session"""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db(target: AsyncEngine | None = None):
    """Initialize database (create tables)"""
    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    await engine.dispose()
