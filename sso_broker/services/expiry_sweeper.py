"""
Expiry sweeper.

Deletes token-store rows nobody can use any more. Missing a sweep only
wastes storage: every validation path re-checks expiry on its own.
"""

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from sso_broker.core.config import logger, settings
from sso_broker.core.errors import translate_store_errors
from sso_broker.repositories import (
    AccessTokenRepository,
    AuthorizationCodeRepository,
    SsoTokenRepository,
)
from sso_broker.utils import clock


@dataclass
class SweepResult:
    """Rows deleted by one sweep"""

    sso_tokens: int = 0
    authorization_codes: int = 0
    access_tokens: int = 0

    @property
    def total(self) -> int:
        return self.sso_tokens + self.authorization_codes + self.access_tokens


@translate_store_errors
async def sweep(db: AsyncSession, retention_days: int | None = None) -> SweepResult:
    """
    Run one sweep in a single transaction

    Args:
        db: Database session
        retention_days: How long revoked pairs are kept after revocation
            (default from settings)

    Returns:
        SweepResult with per-table counts
    """
    now = clock.utc_now()
    if retention_days is None:
        retention_days = settings.revoked_retention_days
    revoked_before = now - timedelta(days=retention_days)

    result = SweepResult(
        sso_tokens=await SsoTokenRepository(db).delete_expired(now),
        authorization_codes=await AuthorizationCodeRepository(db).delete_expired(now),
        access_tokens=await AccessTokenRepository(db).delete_expired(now, revoked_before),
    )
    await db.commit()

    return result


class ExpirySweeper:
    """
    Runs ``sweep`` periodically on a background task.

    Attributes:
        _session_factory: Creates a fresh AsyncSession per sweep
        _interval: Seconds between sweeps
        _task: Background task
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        interval_seconds: int | None = None,
    ):
        self._session_factory = session_factory
        self._interval = (
            settings.sweep_interval_seconds if interval_seconds is None else interval_seconds
        )
        self._task: asyncio.Task | None = None
        self._running = False

    async def start(self):
        """Start the background sweep loop"""
        if self._running:
            logger.warning("ExpirySweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"ExpirySweeper started (interval={self._interval}s)")

    async def stop(self):
        """Cancel the loop and wait for it to finish"""
        if not self._running:
            return

        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("ExpirySweeper stopped")

    async def _sweep_loop(self):
        while self._running:
            try:
                await asyncio.sleep(self._interval)
                await self.sweep_now()
            except asyncio.CancelledError:
                logger.info("Sweep loop cancelled")
                break
            except Exception as e:
                # Keep sweeping; the next pass retries
                logger.error(f"Error in sweep loop: {e}", exc_info=True)

    async def sweep_now(self) -> SweepResult:
        """Run one sweep immediately with a fresh session"""
        async with self._session_factory() as db:
            result = await sweep(db)

        if result.total > 0:
            logger.info(
                f"Swept expired rows: sso_tokens={result.sso_tokens}, "
                f"authorization_codes={result.authorization_codes}, "
                f"access_tokens={result.access_tokens}"
            )
        else:
            logger.debug("No expired rows to sweep")

        return result

    def is_running(self) -> bool:
        return self._running
