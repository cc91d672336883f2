#!/usr/bin/env python3
"""Create the demo API keys, or deactivate a key.

Usage:
    # Create the Stripe and partner demo keys if they do not exist yet:
    python scripts/seed_api_keys.py

    # Deactivate a key by value:
    python scripts/seed_api_keys.py --deactivate sk_live_...

Environment Variables:
    DATABASE_URL: Async SQLAlchemy URL of the application database
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


async def create_defaults() -> int:
    from src.database.client import close_db, get_session, init_db
    from src.database.seed import seed_default_api_keys

    await init_db()
    try:
        async with get_session() as session:
            seeded = await seed_default_api_keys(session)
    finally:
        await close_db()

    for owner, (api_key, created) in seeded.items():
        state = "Created" if created else "Already exists"
        print(f"{state}: {api_key.name} (owner={owner})")
        print(f"  X-API-Key: {api_key.key}")

    print("\nUsage examples:")
    print("  POST /api/webhooks/stripe   (stripe key)")
    print("  GET  /api/partner/status    (partner_xyz key)")
    return 0


async def deactivate(key: str) -> int:
    from src.database.client import close_db, get_session, init_db
    from src.features.api_key.service import ApiKeyService

    await init_db()
    try:
        async with get_session() as session:
            found = await ApiKeyService.deactivate_api_key(session, key)
    finally:
        await close_db()

    if not found:
        print("No API key with that value", file=sys.stderr)
        return 1
    print("API key deactivated")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Manage demo API keys")
    parser.add_argument("--deactivate", metavar="KEY", help="Deactivate the API key with this value")
    args = parser.parse_args()

    if args.deactivate:
        return asyncio.run(deactivate(args.deactivate))
    return asyncio.run(create_defaults())


if __name__ == "__main__":
    sys.exit(main())
