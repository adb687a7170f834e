#!/usr/bin/env python3
"""Script to initialize the token store and register default OAuth clients"""

import asyncio
import sys

from sso_broker.core.config import logger, settings
from sso_broker.core.seed import seed_default_clients
from sso_broker.main import _ensure_sqlite_directory
from sso_broker.models import init_db


async def main():
    """Main initialization function"""
    print("=" * 60)
    print("SSO Broker - Database Initialization")
    print("=" * 60)

    try:
        logger.info("Initializing database...")
        _ensure_sqlite_directory(settings.db_url)
        await init_db()
        logger.info("✓ Database initialized")

        logger.info("Creating default OAuth clients...")
        created = await seed_default_clients()

        for client_id, secret in created:
            print(f"\n✓ OAuth Client created:")
            print(f"  Client ID: {client_id}")
            print(f"  Client Secret: {secret}")

        print("\n" + "=" * 60)
        print("✓ Database initialization completed successfully!")
        print("=" * 60)

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        print(f"\n✗ Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
