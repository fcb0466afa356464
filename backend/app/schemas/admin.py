"""
Admin schemas: driver onboarding and admin profile.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator
from backend.app.schemas.common import CamelModel
from backend.app.schemas.auth import PHONE_PATTERN


class DriverCreate(CamelModel):
    """Schema for POST /admin/drivers."""
    name: str = Field(..., min_length=2, max_length=100)
    phone_number: str = Field(..., pattern=PHONE_PATTERN)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v


class DriverResponse(CamelModel):
    id: str
    account_id: str
    name: str
    phone_number: str
    total_rides: int
    completed_rides: int
    cancelled_rides: int
    total_trips: int
    earnings: float
    total_earnings: float
    created_at: datetime


class AdminProfileUpdate(CamelModel):
    """
    Schema for PUT /admin/profile.

    All fields optional; the password is re-hashed and never echoed back.
    """
    name: Optional[str] = Field(None, min_length=2, max_length=50, pattern=r"^[a-zA-Z\s]+$")
    phone_number: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    password: Optional[str] = Field(None, min_length=6)


class AuditLogResponse(CamelModel):
    """One audit trail entry."""
    id: int
    actor_id: Optional[str] = None
    actor_phone: Optional[str] = None
    action: str
    target_id: Optional[str] = None
    meta_data: Optional[dict] = None
    ip_address: Optional[str] = None
    timestamp: datetime
