"""
Authentication Pydantic schemas.

Defines request and response schemas for authentication endpoints.
"""

from pydantic import Field
from datetime import datetime
from typing import Optional
from backend.app.models.enums import UserRole
from backend.app.schemas.common import CamelModel

PHONE_PATTERN = r"^[0-9]{10}$"


class DriverLogin(CamelModel):
    """
    Schema for driver login.

    Used by POST /auth/login. Drivers are identified by phone number only.
    """
    phone_number: str = Field(..., pattern=PHONE_PATTERN, description="10 digit phone number")


class AdminLogin(CamelModel):
    """
    Schema for admin login.

    Used by POST /auth/admin-login.
    """
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    password: str = Field(..., min_length=6)


class TokenResponse(CamelModel):
    """
    Schema for JWT token response.

    Returned by successful login operations.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    account_id: str
    name: str
    phone_number: str
    role: UserRole
    driver_id: Optional[str] = Field(default=None, description="Ledger id (drivers only)")


class AccountResponse(CamelModel):
    """
    Schema for account information response.

    Never carries credential material.
    """
    id: str
    phone_number: str
    name: str
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
