"""
Fare engine tests: pricing arithmetic, the single active system fare and input bounds.
"""

import math
import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from pydantic import ValidationError

from backend.app.core.config import Settings, settings
from backend.app.core.exceptions import InputValidationError, ConflictError
from backend.app.domain.fares.fare_engine import FareEngine
from backend.app.models.fare_config import FareConfig


def _config(base_fare=25.0, per_km_rate=10.0, waiting=60.0, interval=60):
    return FareConfig(
        base_fare=base_fare,
        per_km_rate=per_km_rate,
        waiting_charge_per_interval=waiting,
        interval_minutes=interval,
        is_system_default=True,
        is_active=True,
    )


async def _count_configs(db):
    result = await db.execute(select(func.count()).select_from(FareConfig))
    return result.scalar_one()


def test_quote_breakdown():
    """5 km with 65 minutes waiting on 25/10/60 costs 195."""
    quote = FareEngine.compute_quote(_config(), 5, 65)

    assert quote.distance_fare == 50.0
    assert quote.waiting_intervals == 2
    assert quote.waiting_charge == 120.0
    assert quote.base_fare == 25.0
    assert quote.total_fare == 195.0


@pytest.mark.parametrize("waiting_minutes", [0.5, 1, 30, 59.9, 60])
def test_any_started_interval_is_charged_in_full(waiting_minutes):
    quote = FareEngine.compute_quote(_config(), 2, waiting_minutes)
    assert quote.waiting_intervals == 1
    assert quote.waiting_charge == 60.0


def test_no_waiting_means_no_waiting_charge():
    quote = FareEngine.compute_quote(_config(), 2)
    assert quote.waiting_intervals == 0
    assert quote.waiting_charge == 0.0
    assert quote.total_fare == 45.0


def test_waiting_just_over_an_interval_starts_the_next_one():
    quote = FareEngine.compute_quote(_config(), 2, 60.01)
    assert quote.waiting_intervals == 2
    assert quote.waiting_charge == 120.0


@pytest.mark.parametrize("distance,waiting,per_km", [
    (3.333, 7, 12.5),
    (0.1, 0, 10.0),
    (12.345, 121, 9.99),
    (1.005, 0, 1.0),
])
def test_total_is_sum_of_rounded_components(distance, waiting, per_km):
    quote = FareEngine.compute_quote(_config(base_fare=30.5, per_km_rate=per_km), distance, waiting)

    for value in (quote.base_fare, quote.distance_fare, quote.waiting_charge, quote.total_fare):
        assert round(value, 2) == value
    assert quote.total_fare == round(quote.base_fare + quote.distance_fare + quote.waiting_charge, 2)


def test_distance_fare_rounds_half_up():
    """1.005 km at 1/km is exactly 1.005 and rounds to 1.01, not 1.00."""
    quote = FareEngine.compute_quote(_config(per_km_rate=1.0), 1.005)
    assert quote.distance_fare == 1.01


@pytest.mark.parametrize("distance,waiting", [
    (0, 0),
    (-1, 0),
    (5, -1),
    (math.nan, 0),
    (math.inf, 0),
    (True, 0),
    ("5", 0),
    (settings.max_distance + 0.01, 0),
    (1e27, 0),
    (1, settings.max_waiting_minutes + 1),
    (1, 1e30),
])
def test_invalid_trip_inputs_are_rejected(distance, waiting):
    with pytest.raises(InputValidationError):
        FareEngine.compute_quote(_config(), distance, waiting)


def test_longest_allowed_trip_is_priced():
    quote = FareEngine.compute_quote(_config(), settings.max_distance, settings.max_waiting_minutes)

    assert quote.distance_fare == settings.max_distance * 10
    assert quote.waiting_intervals == 24
    assert quote.total_fare == 25 + settings.max_distance * 10 + 24 * 60


def test_very_large_rate_is_priced_without_overflow():
    """Money wider than the default 28-digit context still rounds to cents."""
    quote = FareEngine.compute_quote(_config(waiting=1e30), 5, 90)

    assert quote.waiting_charge == 2e30
    assert quote.total_fare == pytest.approx(2e30)


def test_zero_waiting_interval_is_refused():
    with pytest.raises(ConflictError):
        FareEngine.compute_quote(_config(interval=0), 5, 10)


@pytest.mark.parametrize("interval", [0, -60])
def test_waiting_interval_setting_must_be_positive(interval):
    with pytest.raises(ValidationError):
        Settings(waiting_interval_minutes=interval)


@pytest.mark.asyncio
async def test_get_config_creates_defaults_once(db_session):
    first = await FareEngine.get_config(db_session)
    second = await FareEngine.get_config(db_session)

    assert first.id == second.id
    assert first.base_fare == settings.default_base_fare
    assert first.per_km_rate == settings.default_per_km_rate
    assert first.waiting_charge_per_interval == settings.default_waiting_charge_per_interval
    assert first.interval_minutes == settings.waiting_interval_minutes
    assert await _count_configs(db_session) == 1


@pytest.mark.asyncio
async def test_set_then_get_returns_new_values(db_session):
    config, created = await FareEngine.set_config(db_session, 30, 12, 50)
    assert created is True

    current = await FareEngine.get_config(db_session)
    assert current.id == config.id
    assert (current.base_fare, current.per_km_rate, current.waiting_charge_per_interval) == (30, 12, 50)


@pytest.mark.asyncio
async def test_repeated_set_keeps_one_active_row(db_session):
    first, created_first = await FareEngine.set_config(db_session, 30, 12, 50)
    second, created_second = await FareEngine.set_config(db_session, 40, 15, 0)

    assert created_first is True
    assert created_second is False
    assert first.id == second.id
    assert second.base_fare == 40
    assert second.waiting_charge_per_interval == 0
    assert await _count_configs(db_session) == 1


@pytest.mark.asyncio
async def test_set_config_records_updater(db_session, admin_account):
    config, _ = await FareEngine.set_config(db_session, 30, 12, updated_by=admin_account.id)
    assert config.updated_by_account_id == admin_account.id


@pytest.mark.asyncio
@pytest.mark.parametrize("base_fare,per_km_rate,waiting", [
    (0, 10, 60),
    (-5, 10, 60),
    (25, 0, 60),
    (25, settings.max_per_km_rate + 1, 60),
    (25, 10, -1),
    (25, math.nan, 60),
])
async def test_set_config_rejects_out_of_bound_rates(db_session, base_fare, per_km_rate, waiting):
    with pytest.raises(InputValidationError):
        await FareEngine.set_config(db_session, base_fare, per_km_rate, waiting)
    assert await _count_configs(db_session) == 0


@pytest.mark.asyncio
async def test_quote_uses_current_config(db_session):
    await FareEngine.set_config(db_session, 20, 8, 40)
    quote = await FareEngine.quote(db_session, 10, 90)

    assert quote.distance_fare == 80.0
    assert quote.waiting_charge == 80.0
    assert quote.total_fare == 180.0


@pytest.mark.asyncio
async def test_invalid_quote_does_not_create_config(db_session):
    with pytest.raises(InputValidationError):
        await FareEngine.quote(db_session, 0)
    assert await _count_configs(db_session) == 0


@pytest.mark.asyncio
async def test_second_active_default_is_rejected_by_store(db_session):
    db_session.add(_config())
    await db_session.commit()

    db_session.add(_config(base_fare=99))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_get_config_recovers_from_lost_create_race(db_session, monkeypatch):
    """A caller that misses the row and loses the insert reads the winner's row."""
    winner, _ = await FareEngine.set_config(db_session, 33, 11, 22)
    winner_id = winner.id

    original_find = FareEngine._find_active
    calls = {"n": 0}

    async def stale_first_read(db):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return await original_find(db)

    monkeypatch.setattr(FareEngine, "_find_active", staticmethod(stale_first_read))

    config = await FareEngine.get_config(db_session)
    assert config.id == winner_id
    assert config.base_fare == 33
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_set_config_conflict_when_retry_finds_nothing(db_session, monkeypatch):
    await FareEngine.set_config(db_session, 33, 11, 22)

    async def never_matches(db, values):
        return None

    monkeypatch.setattr(FareEngine, "_update_active", staticmethod(never_matches))

    with pytest.raises(ConflictError):
        await FareEngine.set_config(db_session, 40, 12, 0)
