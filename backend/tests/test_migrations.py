"""
Fare schema migration tests against a legacy tiered table.
"""

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.db.migrations import legacy_interval_rate, migrate_fare_schema
from backend.app.domain.fares.fare_engine import FareEngine

LEGACY_TABLE_DDL = """
CREATE TABLE fare_configs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    base_fare FLOAT NOT NULL,
    waiting_5min FLOAT DEFAULT 0,
    waiting_10min FLOAT DEFAULT 0,
    waiting_15min FLOAT DEFAULT 0,
    waiting_20min FLOAT DEFAULT 0,
    waiting_25min FLOAT DEFAULT 0,
    waiting_30min FLOAT DEFAULT 0,
    is_system_default BOOLEAN NOT NULL DEFAULT 1,
    is_active BOOLEAN NOT NULL DEFAULT 1,
    created_at DATETIME,
    updated_at DATETIME
)
"""


@pytest.fixture
async def legacy_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.execute(text(LEGACY_TABLE_DDL))
        # Older row: only the 10 minute tier was ever set
        await conn.execute(text(
            "INSERT INTO fare_configs (base_fare, waiting_10min, created_at, updated_at) "
            "VALUES (20, 5, '2024-01-01 00:00:00', '2024-01-01 00:00:00')"
        ))
        # Newer row: 30 minute tier wins over the shorter ones
        await conn.execute(text(
            "INSERT INTO fare_configs (base_fare, waiting_5min, waiting_30min, created_at, updated_at) "
            "VALUES (25, 10, 30, '2024-06-01 00:00:00', '2024-06-01 00:00:00')"
        ))
    yield engine
    await engine.dispose()


def _columns(sync_conn):
    return {column["name"] for column in inspect(sync_conn).get_columns("fare_configs")}


def test_legacy_rate_prefers_thirty_minute_tier():
    tiers = {"waiting_5min": 10, "waiting_15min": 20, "waiting_30min": 30}
    assert legacy_interval_rate(tiers, 60) == 60


def test_legacy_rate_scales_longest_tier():
    assert legacy_interval_rate({"waiting_10min": 5, "waiting_20min": 0}, 60) == 30
    assert legacy_interval_rate({"waiting_25min": 10}, 60) == 24


def test_legacy_rate_without_tiers_is_zero():
    assert legacy_interval_rate({"waiting_5min": 0, "waiting_30min": None}, 60) == 0


@pytest.mark.asyncio
async def test_migration_converts_tiers_and_keeps_one_default(legacy_engine):
    async with legacy_engine.begin() as conn:
        report = await migrate_fare_schema(conn)

    assert report == {"migrated": 2, "deactivated": 1}

    async with legacy_engine.connect() as conn:
        columns = await conn.run_sync(_columns)
        rows = (await conn.execute(text(
            "SELECT id, waiting_charge_per_interval, interval_minutes, schema_version, is_active "
            "FROM fare_configs ORDER BY id"
        ))).mappings().all()

    assert not any(name.startswith("waiting_") and name.endswith("min") for name in columns)
    assert {"per_km_rate", "waiting_charge_per_interval", "interval_minutes"} <= columns

    older, newer = rows
    assert older["waiting_charge_per_interval"] == 30
    assert newer["waiting_charge_per_interval"] == 60
    assert older["schema_version"] == newer["schema_version"] == 2
    assert newer["interval_minutes"] == 60
    assert not older["is_active"]
    assert newer["is_active"]


@pytest.mark.asyncio
async def test_migration_is_idempotent(legacy_engine):
    async with legacy_engine.begin() as conn:
        await migrate_fare_schema(conn)
    async with legacy_engine.begin() as conn:
        report = await migrate_fare_schema(conn)

    assert report == {"migrated": 0, "deactivated": 0}


@pytest.mark.asyncio
async def test_engine_reads_migrated_config(legacy_engine):
    async with legacy_engine.begin() as conn:
        await migrate_fare_schema(conn)

    sessions = async_sessionmaker(legacy_engine, class_=AsyncSession, expire_on_commit=False)
    async with sessions() as db:
        config = await FareEngine.get_config(db)
        quote = await FareEngine.quote(db, 5, 65)

    assert config.base_fare == 25
    assert config.waiting_charge_per_interval == 60
    assert quote.total_fare == 195.0


@pytest.mark.asyncio
async def test_migration_is_a_no_op_on_current_schema(legacy_engine):
    """A table already in the current shape is left alone."""
    async with legacy_engine.begin() as conn:
        await migrate_fare_schema(conn)
        await conn.execute(text(
            "INSERT INTO fare_configs (base_fare, per_km_rate, waiting_charge_per_interval, "
            "interval_minutes, schema_version, is_system_default, is_active) "
            "VALUES (40, 12, 50, 60, 2, 1, 0)"
        ))
    async with legacy_engine.begin() as conn:
        report = await migrate_fare_schema(conn)

    assert report["migrated"] == 0
