"""
Driver Ledger (Domain Logic).

Applies ride outcomes to a driver's cumulative counters and answers
statistics queries.

Callers identify a driver by a single id that may be either the ledger row's
own id or the owning account's id. Every operation goes through resolve(),
which tries, in order:
1. Ledger row by its own id
2. Ledger row by account_id
3. Driver account by id -> create a zero-counter ledger row for it
4. Otherwise ResourceNotFoundError
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import settings
from backend.app.core.exceptions import InputValidationError, ResourceNotFoundError
from backend.app.models.account import Account
from backend.app.models.driver import Driver
from backend.app.models.enums import UserRole

logger = logging.getLogger(__name__)

COUNTER_COLUMNS = (
    Driver.id,
    Driver.name,
    Driver.phone_number,
    Driver.total_rides,
    Driver.completed_rides,
    Driver.cancelled_rides,
    Driver.total_trips,
    Driver.earnings,
    Driver.total_earnings,
)

# Tolerance when comparing the meter's total fare with the credited earnings
FARE_MATCH_TOLERANCE = 0.01


def normalize_id(identifier: Any) -> str:
    """
    Canonicalise a driver/account identifier.

    Raises:
        InputValidationError: identifier is empty or not a UUID
    """
    if identifier is None or str(identifier).strip() in ("", "undefined", "null"):
        raise InputValidationError("Invalid user ID provided")
    try:
        return str(uuid.UUID(str(identifier).strip()))
    except ValueError:
        raise InputValidationError("Invalid user ID format", {"id": str(identifier)})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _round_half_up(value: Decimal, places: str) -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


def _cents(value) -> Decimal:
    """Money as an exact two-place Decimal; floats go through str() first."""
    if value is None:
        return Decimal("0.00")
    return _round_half_up(Decimal(str(value)), "0.01")


class DriverLedger:

    @staticmethod
    async def _find(db: AsyncSession, *criteria) -> Optional[Driver]:
        result = await db.execute(select(Driver).where(*criteria))
        return result.scalar_one_or_none()

    @staticmethod
    async def resolve(db: AsyncSession, identifier: Any) -> Driver:
        """
        Resolve an ambiguous identifier to a ledger row.

        May write: a driver account without a ledger row gets one, with all
        counters at zero and name/phone copied from the account.

        Raises:
            InputValidationError: malformed identifier
            ResourceNotFoundError: no ledger row and no driver account match
        """
        key = normalize_id(identifier)

        driver = await DriverLedger._find(db, Driver.id == key)
        if driver:
            return driver

        driver = await DriverLedger._find(db, Driver.account_id == key)
        if driver:
            return driver

        account = await db.get(Account, key)
        if not account or account.role != UserRole.DRIVER:
            raise ResourceNotFoundError("Driver", key)

        return await DriverLedger.open_ledger(db, account)

    @staticmethod
    async def open_ledger(db: AsyncSession, account: Account) -> Driver:
        """
        Create the ledger row for a driver account.

        If another request created it first (unique account_id), the existing
        row is returned instead.
        """
        account_id = account.id
        driver = Driver(
            account_id=account_id,
            name=account.name,
            phone_number=account.phone_number,
            total_rides=0,
            completed_rides=0,
            cancelled_rides=0,
            total_trips=0,
            earnings=Decimal("0.00"),
            total_earnings=Decimal("0.00"),
        )
        db.add(driver)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await DriverLedger._find(db, Driver.account_id == account_id)
            if existing is None:
                raise
            return existing

        await db.refresh(driver)
        logger.info("Opened ledger %s for account %s", driver.id, account_id)
        return driver

    @staticmethod
    def validate_earnings(ride_earnings) -> float:
        if isinstance(ride_earnings, bool) or not isinstance(ride_earnings, (int, float)):
            raise InputValidationError("Ride earnings must be a positive number")
        # Below half a paisa rounds to nothing
        if not math.isfinite(ride_earnings) or _cents(ride_earnings) <= 0:
            raise InputValidationError("Ride earnings must be a positive number")
        if ride_earnings > settings.max_ride_earnings:
            raise InputValidationError(
                f"Ride earnings seems too high (max: {settings.max_ride_earnings:g})"
            )
        return float(ride_earnings)

    @staticmethod
    def validate_trip_data(ride_earnings: float, trip_data: Optional[Dict[str, Any]]) -> None:
        """The meter's total fare, when sent, must match the credited earnings."""
        if not trip_data:
            return
        total_fare = trip_data.get("total_fare")
        if total_fare is not None and abs(total_fare - ride_earnings) > FARE_MATCH_TOLERANCE:
            raise InputValidationError("Trip total fare must match ride earnings")

    @staticmethod
    async def _increment(db: AsyncSession, driver_id: str, values: dict) -> Dict[str, Any]:
        # Single UPDATE ... SET col = col + n RETURNING; no read-modify-write
        stmt = (
            update(Driver)
            .where(Driver.id == driver_id)
            .values(**values)
            .returning(*COUNTER_COLUMNS)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row = result.mappings().one_or_none()
        if row is None:
            await db.rollback()
            raise ResourceNotFoundError("Driver", driver_id)
        await db.commit()
        return dict(row)

    @staticmethod
    async def record_completion(
        db: AsyncSession,
        identifier: Any,
        ride_earnings,
        trip_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Credit a completed ride.

        Increments completed_rides, total_rides and total_trips by one and
        earnings / total_earnings by ride_earnings in one statement.

        Returns:
            The new counters plus ride_earnings and previous_total.
        """
        ride_earnings = DriverLedger.validate_earnings(ride_earnings)
        DriverLedger.validate_trip_data(ride_earnings, trip_data)
        amount = _cents(ride_earnings)

        driver = await DriverLedger.resolve(db, identifier)
        now = _utcnow()
        row = await DriverLedger._increment(db, driver.id, {
            "completed_rides": Driver.completed_rides + 1,
            "total_rides": Driver.total_rides + 1,
            "total_trips": Driver.total_trips + 1,
            "earnings": Driver.earnings + amount,
            "total_earnings": Driver.total_earnings + amount,
            "last_completed_at": now,
            "updated_at": now,
        })

        total_earnings = _cents(row["total_earnings"])

        if trip_data:
            logger.info("Trip data for driver %s: %s", driver.id, trip_data)
        logger.info(
            "Ride completed driver=%s earnings=%.2f total_earnings=%.2f",
            driver.id, amount, total_earnings
        )

        return {
            "completed_rides": row["completed_rides"],
            "total_rides": row["total_rides"],
            "total_trips": row["total_trips"],
            "total_earnings": float(total_earnings),
            "earnings": float(_cents(row["earnings"])),
            "name": row["name"],
            "phone_number": row["phone_number"],
            "ride_earnings": float(amount),
            "previous_total": float(total_earnings - amount),
        }

    @staticmethod
    async def record_cancellation(db: AsyncSession, identifier: Any) -> Dict[str, Any]:
        """Count a cancelled ride: cancelled_rides and total_rides go up by one."""
        driver = await DriverLedger.resolve(db, identifier)
        now = _utcnow()
        row = await DriverLedger._increment(db, driver.id, {
            "cancelled_rides": Driver.cancelled_rides + 1,
            "total_rides": Driver.total_rides + 1,
            "last_cancelled_at": now,
            "updated_at": now,
        })

        logger.info("Ride cancelled driver=%s cancelled_rides=%s", driver.id, row["cancelled_rides"])

        return {
            "cancelled_rides": row["cancelled_rides"],
            "total_rides": row["total_rides"],
            "name": row["name"],
            "phone_number": row["phone_number"],
        }

    @staticmethod
    def build_stats(driver: Driver) -> Dict[str, Any]:
        total_rides = driver.total_rides or 0
        completed_rides = driver.completed_rides or 0
        total_earnings = _cents(driver.total_earnings)

        success_rate = 0
        if total_rides:
            success_rate = int(_round_half_up(Decimal(completed_rides) * 100 / Decimal(total_rides), "1"))
        average_earnings = 0.0
        if completed_rides:
            average_earnings = float(_round_half_up(total_earnings / Decimal(completed_rides), "0.01"))

        return {
            "driver_id": driver.id,
            "account_id": driver.account_id,
            "name": driver.name,
            "phone_number": driver.phone_number,
            "total_rides": total_rides,
            "completed_rides": completed_rides,
            "cancelled_rides": driver.cancelled_rides or 0,
            "total_trips": driver.total_trips or 0,
            "earnings": float(_cents(driver.earnings)),
            "total_earnings": float(total_earnings),
            "success_rate": success_rate,
            "average_earnings": average_earnings,
            "last_completed_at": driver.last_completed_at,
            "last_cancelled_at": driver.last_cancelled_at,
            "created_at": driver.created_at,
            "updated_at": driver.updated_at,
        }

    @staticmethod
    async def get_stats(db: AsyncSession, identifier: Any) -> Dict[str, Any]:
        """Counters plus success_rate (percent) and average_earnings per completed ride."""
        driver = await DriverLedger.resolve(db, identifier)
        # resolve() may hand back a row cached earlier in this session
        await db.refresh(driver)
        return DriverLedger.build_stats(driver)

    @staticmethod
    async def list_drivers(db: AsyncSession) -> List[Driver]:
        result = await db.execute(select(Driver).order_by(Driver.created_at.desc()))
        return list(result.scalars().all())
