#!/usr/bin/env python3
"""Run one expiry sweep (for cron instead of the in-process sweeper)"""

import asyncio
import sys

from sso_broker.core.config import logger
from sso_broker.models import close_db
from sso_broker.models.database import async_session_maker
from sso_broker.services.expiry_sweeper import sweep


async def main():
    try:
        async with async_session_maker() as db:
            result = await sweep(db)
    except Exception as e:
        logger.error(f"Sweep failed: {e}")
        sys.exit(1)
    finally:
        await close_db()

    print(
        f"Deleted sso_tokens={result.sso_tokens}, "
        f"authorization_codes={result.authorization_codes}, "
        f"access_tokens={result.access_tokens}"
    )


if __name__ == "__main__":
    asyncio.run(main())
