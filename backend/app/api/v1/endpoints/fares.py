"""
Fare API Endpoints.

System fare management (admin) and trip fare calculation (public).
"""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.guards import require_admin
from backend.app.domain.fares.fare_engine import FareEngine
from backend.app.schemas.common import ApiResponse
from backend.app.schemas.fare import FareConfigUpdate, FareConfigResponse, FareQuoteRequest, FareQuote
from backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/fares", tags=["Fares"])


@router.post("", response_model=ApiResponse[FareConfigResponse])
async def set_system_fare(
    fare: FareConfigUpdate,
    request: Request,
    response: Response,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Create or update the system-wide fare.

    Returns 201 when the fare is created, 200 when the existing one is overwritten.
    """
    config, created = await FareEngine.set_config(
        db,
        base_fare=fare.base_fare,
        per_km_rate=fare.per_km_rate,
        waiting_charge_per_interval=fare.waiting_charge_per_interval,
        updated_by=current_user["account_id"],
    )

    await log_event(
        db=db,
        action=AuditAction.FARE_CONFIG_UPDATED,
        actor_id=current_user["account_id"],
        actor_phone=current_user.get("sub"),
        metadata={
            "fare_id": config.id,
            "base_fare": config.base_fare,
            "per_km_rate": config.per_km_rate,
            "waiting_charge_per_interval": config.waiting_charge_per_interval,
        },
        ip_address=request.client.host if request.client else None
    )

    if created:
        response.status_code = status.HTTP_201_CREATED
    return ApiResponse[FareConfigResponse](
        message="System fare created successfully" if created else "System fare updated successfully",
        data=FareConfigResponse.model_validate(config),
    )


@router.get("", response_model=ApiResponse[FareConfigResponse])
async def get_system_fare(db: AsyncSession = Depends(get_db)):
    """Current system fare; created with defaults on first read."""
    config = await FareEngine.get_config(db)
    return ApiResponse[FareConfigResponse](
        message="System fare retrieved successfully",
        data=FareConfigResponse.model_validate(config),
    )


@router.post("/calculate", response_model=ApiResponse[FareQuote])
async def calculate_fare(body: FareQuoteRequest, db: AsyncSession = Depends(get_db)):
    """Full fare breakdown for a distance and waiting time."""
    quote = await FareEngine.quote(db, body.distance, body.waiting_minutes)
    return ApiResponse[FareQuote](message="Fare calculated successfully", data=quote)
