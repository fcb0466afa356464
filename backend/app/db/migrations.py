"""
Fare configuration schema migration.

Older deployments stored waiting charges as six fixed tiers
(waiting_5min .. waiting_30min). The current shape is a single
waiting_charge_per_interval per interval_minutes (60). This migration is run
once at deploy time (backend/migrate_fares.py); the application itself only
reads the current shape.
"""

import logging
from typing import Dict, Mapping

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncConnection

from backend.app.core.config import settings
from backend.app.models.fare_config import FARE_SCHEMA_VERSION

logger = logging.getLogger(__name__)

TABLE = "fare_configs"

# legacy column -> tier length in minutes
LEGACY_TIER_COLUMNS: Dict[str, int] = {
    "waiting_5min": 5,
    "waiting_10min": 10,
    "waiting_15min": 15,
    "waiting_20min": 20,
    "waiting_25min": 25,
    "waiting_30min": 30,
}

# Columns the legacy table may lack, with DDL valid on PostgreSQL and SQLite
CURRENT_COLUMN_DDL: Dict[str, str] = {
    "per_km_rate": f"per_km_rate FLOAT NOT NULL DEFAULT {settings.default_per_km_rate}",
    "waiting_charge_per_interval": "waiting_charge_per_interval FLOAT NOT NULL DEFAULT 0",
    "interval_minutes": f"interval_minutes INTEGER NOT NULL DEFAULT {settings.waiting_interval_minutes}",
    "schema_version": "schema_version INTEGER NOT NULL DEFAULT 1",
    "updated_by_account_id": "updated_by_account_id VARCHAR(36)",
}

UNIQUE_DEFAULT_INDEX_DDL = (
    f"CREATE UNIQUE INDEX IF NOT EXISTS uq_fare_configs_system_default "
    f"ON {TABLE} (is_system_default, is_active) WHERE is_system_default AND is_active"
)


def legacy_interval_rate(tiers: Mapping[str, float], interval_minutes: int) -> float:
    """
    Convert legacy tier charges to one charge per interval.

    Uses the 30 minute tier when set, otherwise the longest non-zero tier,
    scaled linearly to the interval length. No tiers set gives 0.
    """
    charged = {
        minutes: float(tiers[column] or 0)
        for column, minutes in LEGACY_TIER_COLUMNS.items()
        if column in tiers and (tiers[column] or 0) > 0
    }
    if not charged:
        return 0.0
    minutes = 30 if 30 in charged else max(charged)
    return round(charged[minutes] * interval_minutes / minutes, 2)


def _migrate_legacy_tiers(conn: Connection) -> int:
    inspector = inspect(conn)
    if not inspector.has_table(TABLE):
        return 0

    columns = {column["name"] for column in inspector.get_columns(TABLE)}
    legacy = [column for column in LEGACY_TIER_COLUMNS if column in columns]
    if not legacy:
        return 0

    for name, ddl in CURRENT_COLUMN_DDL.items():
        if name not in columns:
            conn.execute(text(f"ALTER TABLE {TABLE} ADD COLUMN {ddl}"))

    rows = conn.execute(
        text(f"SELECT id, interval_minutes, {', '.join(legacy)} FROM {TABLE}")
    ).mappings().all()

    for row in rows:
        interval = row["interval_minutes"] or settings.waiting_interval_minutes
        conn.execute(
            text(
                f"UPDATE {TABLE} SET waiting_charge_per_interval = :rate, "
                f"interval_minutes = :interval, schema_version = :version WHERE id = :id"
            ),
            {
                "rate": legacy_interval_rate(row, interval),
                "interval": interval,
                "version": FARE_SCHEMA_VERSION,
                "id": row["id"],
            },
        )

    for column in legacy:
        conn.execute(text(f"ALTER TABLE {TABLE} DROP COLUMN {column}"))

    logger.info("Migrated %d fare row(s) from tiered waiting charges", len(rows))
    return len(rows)


def _reconcile_system_default(conn: Connection) -> int:
    """Keep only the newest active system default, then enforce uniqueness."""
    if not inspect(conn).has_table(TABLE):
        return 0

    active_ids = conn.execute(
        text(f"SELECT id FROM {TABLE} WHERE is_system_default AND is_active ORDER BY id DESC")
    ).scalars().all()

    deactivated = 0
    if len(active_ids) > 1:
        keep = active_ids[0]
        result = conn.execute(
            text(
                f"UPDATE {TABLE} SET is_active = :inactive "
                f"WHERE is_system_default AND is_active AND id <> :keep"
            ),
            {"inactive": False, "keep": keep},
        )
        deactivated = result.rowcount
        logger.warning("Deactivated %d duplicate system fare(s), kept id=%s", deactivated, keep)

    conn.execute(text(UNIQUE_DEFAULT_INDEX_DDL))
    return deactivated


async def migrate_fare_schema(conn: AsyncConnection) -> Dict[str, int]:
    """
    Bring stored fare configuration to the current shape. Idempotent.

    Returns:
        {"migrated": rows rewritten from tiers, "deactivated": duplicate defaults switched off}
    """
    migrated = await conn.run_sync(_migrate_legacy_tiers)
    deactivated = await conn.run_sync(_reconcile_system_default)
    return {"migrated": migrated, "deactivated": deactivated}
