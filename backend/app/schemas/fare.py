"""
Fare Schemas.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field
from backend.app.schemas.common import CamelModel


class FareConfigUpdate(CamelModel):
    """Schema for setting the system fare (POST /fares)."""
    base_fare: float = Field(..., gt=0, allow_inf_nan=False)
    per_km_rate: float = Field(..., gt=0, allow_inf_nan=False)
    waiting_charge_per_interval: float = Field(0, ge=0, allow_inf_nan=False, alias="waiting60min")


class FareConfigResponse(CamelModel):
    """Schema for displaying the system fare."""
    id: int
    base_fare: float
    per_km_rate: float
    waiting_charge_per_interval: float = Field(..., alias="waiting60min")
    interval_minutes: int
    is_system_default: bool
    is_active: bool
    updated_at: Optional[datetime] = None


class FareQuoteRequest(CamelModel):
    """Schema for POST /fares/calculate."""
    distance: float = Field(..., gt=0, allow_inf_nan=False, description="Trip distance in km")
    waiting_minutes: float = Field(0, ge=0, allow_inf_nan=False)


class FareQuote(CamelModel):
    """Full fare breakdown; every money field is rounded to 2 decimals."""
    distance: float
    waiting_minutes: float
    base_fare: float
    per_km_rate: float
    distance_fare: float
    interval_minutes: int
    waiting_intervals: int
    waiting_charge_per_interval: float
    waiting_charge: float
    total_fare: float
