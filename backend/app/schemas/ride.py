"""
Ride outcome and driver statistics schemas.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field
from backend.app.schemas.common import CamelModel


class TripData(CamelModel):
    """Meter readout sent along with a completed ride."""
    distance: float = Field(..., ge=0, allow_inf_nan=False)
    duration: float = Field(..., ge=0, allow_inf_nan=False)
    total_fare: float = Field(..., ge=0, allow_inf_nan=False)
    base_fare: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    waiting_charge: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class RideCompletion(CamelModel):
    """Schema for PATCH /rides/{id}/complete-ride."""
    ride_earnings: float = Field(..., allow_inf_nan=False)
    trip_data: Optional[TripData] = None


class RideCompletionResult(CamelModel):
    completed_rides: int
    total_rides: int
    total_trips: int
    total_earnings: float
    earnings: float
    name: str
    phone_number: str
    ride_earnings: float
    previous_total: float


class RideCancellationResult(CamelModel):
    cancelled_rides: int
    total_rides: int
    name: str
    phone_number: str


class DriverStats(CamelModel):
    driver_id: str
    account_id: str
    name: str
    phone_number: str
    total_rides: int
    completed_rides: int
    cancelled_rides: int
    total_trips: int
    earnings: float
    total_earnings: float
    success_rate: int
    average_earnings: float
    last_completed_at: Optional[datetime] = None
    last_cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
