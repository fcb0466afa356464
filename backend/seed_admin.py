"""
Admin provisioning script.

Creates (or refreshes) the admin identity configured in settings:
ADMIN_PHONE_NUMBER, ADMIN_NAME, ADMIN_PASSWORD. Run once per deployment,
after the database is reachable:

    python -m backend.seed_admin
"""

import asyncio

from backend.app.core.config import settings
from backend.app.core.observability import configure_logging
from backend.app.db.session import AsyncSessionLocal, engine, Base
from backend.app.core.exceptions import ConflictError
from backend.app.services.accounts import AccountService
from backend.app.services.audit import log_event, AuditAction

# Register tables with Base
from backend.app.models.account import Account
from backend.app.models.driver import Driver
from backend.app.models.fare_config import FareConfig
from backend.app.models.audit_log import AuditLog


async def seed_admin() -> int:
    """
    Idempotently provision the admin account.

    Returns:
        Process exit code
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Provisioning admin account...")
        try:
            account, created = await AccountService.provision_admin(
                db,
                phone_number=settings.admin_phone_number,
                name=settings.admin_name,
                password=settings.admin_password,
            )
        except ConflictError as e:
            print(f"❌ {e.message}")
            return 1

        await log_event(
            db=db,
            action=AuditAction.ADMIN_PROVISIONED,
            target_id=account.id,
            metadata={"created": created}
        )

        if created:
            print(f"✅ Created ADMIN account (phone: {account.phone_number})")
        else:
            print(f"ℹ️  ADMIN account already existed, name and password refreshed (phone: {account.phone_number})")

    await engine.dispose()
    return 0


if __name__ == "__main__":
    configure_logging(settings.log_level)
    raise SystemExit(asyncio.run(seed_admin()))
