"""
Fare schema migration script.

Rewrites tiered waiting charges to the per-interval shape and makes sure only
one active system fare remains. Safe to re-run:

    python -m backend.migrate_fares
"""

import asyncio

from backend.app.core.config import settings
from backend.app.core.observability import configure_logging
from backend.app.db.migrations import migrate_fare_schema
from backend.app.db.session import engine


async def main() -> int:
    print("🔧 Migrating fare configuration...")
    async with engine.begin() as conn:
        report = await migrate_fare_schema(conn)
    await engine.dispose()

    print(f"✅ Rows migrated from tiers: {report['migrated']}")
    print(f"✅ Duplicate system fares deactivated: {report['deactivated']}")
    return 0


if __name__ == "__main__":
    configure_logging(settings.log_level)
    raise SystemExit(asyncio.run(main()))
