"""
Fare Engine (Domain Logic).

Owns the single system fare configuration and turns distance plus waiting
time into a priced trip.

Flow for a quote:
1. Validate distance / waiting minutes
2. Load the system fare (created with defaults on first use)
3. distance_fare = distance * per_km_rate
4. waiting_charge = ceil(waiting_minutes / interval) * waiting_charge_per_interval
5. total_fare = base_fare + distance_fare + waiting_charge
"""

import logging
import math
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, localcontext
from typing import Optional, Tuple

from sqlalchemy import select, update, true
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import InputValidationError, ConflictError
from backend.app.models.fare_config import FareConfig
from backend.app.schemas.fare import FareQuote

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    # quantize() needs every integer digit plus two decimals to fit the context
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _decimal(value) -> Decimal:
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(value))


def _require_number(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise InputValidationError(f"{name} must be a number", {"field": name})
    if not math.isfinite(value):
        raise InputValidationError(f"{name} must be a finite number", {"field": name})
    return float(value)


def _system_default_filter():
    return (FareConfig.is_system_default == true(), FareConfig.is_active == true())


class FareEngine:

    @staticmethod
    def validate_rates(base_fare, per_km_rate, waiting_charge_per_interval) -> Tuple[float, float, float]:
        """
        Check fare rates against their bounds.

        Raises:
            InputValidationError: base_fare <= 0, per_km_rate outside (0, max_per_km_rate],
                or waiting_charge_per_interval < 0.
        """
        base_fare = _require_number("baseFare", base_fare)
        per_km_rate = _require_number("perKmRate", per_km_rate)
        waiting_charge_per_interval = _require_number("waiting60min", waiting_charge_per_interval)

        if base_fare <= 0:
            raise InputValidationError("Base fare is required and must be greater than 0", {"field": "baseFare"})
        if per_km_rate <= 0 or per_km_rate > settings.max_per_km_rate:
            raise InputValidationError(
                f"Per km rate must be greater than 0 and at most {settings.max_per_km_rate:g}",
                {"field": "perKmRate"}
            )
        if waiting_charge_per_interval < 0:
            raise InputValidationError("Waiting charge cannot be negative", {"field": "waiting60min"})

        return base_fare, per_km_rate, waiting_charge_per_interval

    @staticmethod
    def validate_trip(distance, waiting_minutes=0) -> Tuple[float, float]:
        """
        Check trip inputs against their bounds.

        Raises:
            InputValidationError: distance outside (0, max_distance] or
                waiting_minutes outside [0, max_waiting_minutes].
        """
        distance = _require_number("distance", distance)
        waiting_minutes = _require_number("waitingMinutes", waiting_minutes)

        if distance <= 0:
            raise InputValidationError("Distance must be greater than 0", {"field": "distance"})
        if distance > settings.max_distance:
            raise InputValidationError(
                f"Distance must be at most {settings.max_distance:g} km", {"field": "distance"}
            )
        if waiting_minutes < 0:
            raise InputValidationError("Waiting minutes cannot be negative", {"field": "waitingMinutes"})
        if waiting_minutes > settings.max_waiting_minutes:
            raise InputValidationError(
                f"Waiting minutes must be at most {settings.max_waiting_minutes:g}", {"field": "waitingMinutes"}
            )

        return distance, waiting_minutes

    @staticmethod
    async def _find_active(db: AsyncSession) -> Optional[FareConfig]:
        result = await db.execute(select(FareConfig).where(*_system_default_filter()))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_config(db: AsyncSession) -> FareConfig:
        """
        Return the active system fare, creating it with defaults if absent.

        The first caller after a cold start pays the insert. When two callers
        race, the partial unique index rejects the loser, which then reads the
        winner's row.
        """
        config = await FareEngine._find_active(db)
        if config:
            return config

        config = FareConfig(
            base_fare=settings.default_base_fare,
            per_km_rate=settings.default_per_km_rate,
            waiting_charge_per_interval=settings.default_waiting_charge_per_interval,
            interval_minutes=settings.waiting_interval_minutes,
            is_system_default=True,
            is_active=True,
        )
        db.add(config)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("System fare created concurrently, re-reading")
            config = await FareEngine._find_active(db)
            if config is None:
                raise ConflictError("System fare could not be initialised")
            return config

        await db.refresh(config)
        logger.info("Created default system fare id=%s", config.id)
        return config

    @staticmethod
    async def _update_active(db: AsyncSession, values: dict) -> Optional[FareConfig]:
        stmt = (
            update(FareConfig)
            .where(*_system_default_filter())
            .values(**values)
            .returning(FareConfig.id)
        )
        result = await db.execute(stmt)
        config_id = result.scalar_one_or_none()
        if config_id is None:
            return None
        await db.commit()
        config = await db.get(FareConfig, config_id, populate_existing=True)
        return config

    @staticmethod
    async def set_config(
        db: AsyncSession,
        base_fare,
        per_km_rate,
        waiting_charge_per_interval=0,
        updated_by: Optional[str] = None,
    ) -> Tuple[FareConfig, bool]:
        """
        Upsert the single active system fare.

        Overwrites the active row in place when it exists, inserts it otherwise.

        Returns:
            (config, created)

        Raises:
            InputValidationError: a rate is out of bounds
            ConflictError: the row vanished between a lost insert race and the retry
        """
        base_fare, per_km_rate, waiting_charge_per_interval = FareEngine.validate_rates(
            base_fare, per_km_rate, waiting_charge_per_interval
        )
        values = {
            "base_fare": base_fare,
            "per_km_rate": per_km_rate,
            "waiting_charge_per_interval": waiting_charge_per_interval,
            "updated_by_account_id": updated_by,
        }

        config = await FareEngine._update_active(db, values)
        if config:
            logger.info("Updated system fare id=%s", config.id)
            return config, False

        config = FareConfig(
            interval_minutes=settings.waiting_interval_minutes,
            is_system_default=True,
            is_active=True,
            **values,
        )
        db.add(config)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            config = await FareEngine._update_active(db, values)
            if config is None:
                raise ConflictError("Another system fare was created concurrently; retry the request")
            logger.info("Updated system fare id=%s after losing create race", config.id)
            return config, False

        await db.refresh(config)
        logger.info("Created system fare id=%s", config.id)
        return config, True

    @staticmethod
    def compute_quote(config: FareConfig, distance, waiting_minutes=0) -> FareQuote:
        """Price a trip against a given fare configuration. Pure; no I/O."""
        distance, waiting_minutes = FareEngine.validate_trip(distance, waiting_minutes)

        base_fare = _money(_decimal(config.base_fare))
        per_km_rate = _decimal(config.per_km_rate)
        per_interval = _decimal(config.waiting_charge_per_interval)
        interval = config.interval_minutes
        if interval is None or interval <= 0:
            raise ConflictError(
                "System fare has no usable waiting interval", {"interval_minutes": interval}
            )

        distance_fare = _money(_decimal(distance) * per_km_rate)

        # Any started interval is charged in full
        waiting_intervals = 0
        if waiting_minutes > 0:
            waiting_intervals = int(
                (_decimal(waiting_minutes) / Decimal(interval)).to_integral_value(rounding=ROUND_CEILING)
            )
        waiting_charge = _money(per_interval * waiting_intervals)

        total_fare = base_fare + distance_fare + waiting_charge

        return FareQuote(
            distance=distance,
            waiting_minutes=waiting_minutes,
            base_fare=float(base_fare),
            per_km_rate=float(per_km_rate),
            distance_fare=float(distance_fare),
            interval_minutes=interval,
            waiting_intervals=waiting_intervals,
            waiting_charge_per_interval=float(per_interval),
            waiting_charge=float(waiting_charge),
            total_fare=float(total_fare),
        )

    @staticmethod
    async def quote(db: AsyncSession, distance, waiting_minutes=0) -> FareQuote:
        """
        Price a trip against the current system fare.

        Validates before touching the store, so bad input never creates the
        default fare as a side effect.
        """
        FareEngine.validate_trip(distance, waiting_minutes)
        config = await FareEngine.get_config(db)
        return FareEngine.compute_quote(config, distance, waiting_minutes)
