"""Main FastAPI application"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sso_broker.core.config import logger, settings
from sso_broker.core.errors import BrokerError, StoreUnavailable
from sso_broker.middleware import (
    InternalAuthMiddleware,
    RateLimitMiddleware,
    StructuredLoggingMiddleware,
)


def _ensure_sqlite_directory(db_url: str) -> None:
    """Create the parent directory of a file-based SQLite database"""
    if db_url.startswith("sqlite:///") and ":memory:" not in db_url:
        Path(db_url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting SSO Broker...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Version: {settings.version}")

    from sso_broker.models import close_db, init_db
    from sso_broker.models.database import async_session_maker
    from sso_broker.services.brute_force_protection import brute_force_protection
    from sso_broker.services.expiry_sweeper import ExpirySweeper
    from sso_broker.services.rate_limiter import rate_limiter

    sweeper = None

    try:
        _ensure_sqlite_directory(settings.db_url)
        await init_db()
        logger.info("✓ Database initialized")

        if settings.is_development:
            from sso_broker.core.seed import seed_default_clients

            await seed_default_clients()
            logger.info("✓ Default OAuth clients seeded")

        if settings.enable_sweeper:
            sweeper = ExpirySweeper(async_session_maker)
            await sweeper.start()

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        raise

    yield

    logger.info("Shutting down SSO Broker...")
    if sweeper:
        await sweeper.stop()
    await rate_limiter.close()
    await brute_force_protection.close()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="SSO Broker",
    description="Cross-domain SSO and OAuth2 authorization-code broker",
    version=settings.version,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

# Middleware (last added runs first)
app.add_middleware(InternalAuthMiddleware)
app.add_middleware(RateLimitMiddleware)
app.add_middleware(StructuredLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BrokerError)
async def broker_error_handler(request: Request, exc: BrokerError):
    """Render broker errors as ``{error_code, message, details}``"""
    headers = None
    if isinstance(exc, StoreUnavailable):
        logger.error(f"Store unavailable: {exc}")
        headers = {"Retry-After": "5"}
    else:
        logger.info(
            f"Request rejected: {exc.error_code} on {request.url.path}",
            extra={"error_code": exc.error_code, "path": request.url.path},
        )

    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
        headers=headers,
    )


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return JSONResponse(
        content={
            "status": "healthy",
            "version": settings.version,
            "environment": settings.environment,
        }
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return JSONResponse(
        content={
            "service": "SSO Broker",
            "version": settings.version,
            "docs": "/docs" if settings.is_development else None,
        }
    )


# Include routers
from sso_broker.api.v1 import oauth, sso  # noqa: E402

app.include_router(sso.router, prefix="/sso", tags=["SSO"])
app.include_router(oauth.router, prefix="/oauth", tags=["OAuth2"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sso_broker.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
