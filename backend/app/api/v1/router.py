"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, admin, fares, rides

router = APIRouter()

# Authentication endpoints
router.include_router(auth.router)

# Admin endpoints (driver roster, profile)
router.include_router(admin.router)

# System fare and fare calculation
router.include_router(fares.router)

# Ride outcomes and driver statistics
router.include_router(rides.router)
