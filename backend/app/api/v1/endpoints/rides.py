"""
Ride API Endpoints.

Ride outcomes reported by the meter app. The path id may be either the
driver ledger id or the driver's account id.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.dependencies import get_current_user
from backend.app.domain.ledger.driver_ledger import DriverLedger
from backend.app.schemas.common import ApiResponse
from backend.app.schemas.ride import (
    RideCompletion, RideCompletionResult, RideCancellationResult, DriverStats
)

router = APIRouter(prefix="/rides", tags=["Rides"])


@router.patch("/{driver_id}/complete-ride", response_model=ApiResponse[RideCompletionResult])
async def complete_ride(
    body: RideCompletion,
    driver_id: str = Path(..., description="Driver ledger id or driver account id"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Credit a completed ride and its earnings."""
    trip_data = body.trip_data.model_dump() if body.trip_data else None
    result = await DriverLedger.record_completion(db, driver_id, body.ride_earnings, trip_data)
    return ApiResponse[RideCompletionResult](
        message="Trip completed successfully! Earnings updated.",
        data=RideCompletionResult(**result),
    )


@router.patch("/{driver_id}/cancel-ride", response_model=ApiResponse[RideCancellationResult])
async def cancel_ride(
    driver_id: str = Path(..., description="Driver ledger id or driver account id"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Count a cancelled ride."""
    result = await DriverLedger.record_cancellation(db, driver_id)
    return ApiResponse[RideCancellationResult](
        message="Cancelled rides updated successfully",
        data=RideCancellationResult(**result),
    )


@router.get("/{driver_id}/stats", response_model=ApiResponse[DriverStats])
async def driver_stats(
    driver_id: str = Path(..., description="Driver ledger id or driver account id"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    stats = await DriverLedger.get_stats(db, driver_id)
    return ApiResponse[DriverStats](
        message="Driver statistics retrieved successfully",
        data=DriverStats(**stats),
    )
