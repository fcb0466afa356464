"""
Admin API Endpoints.

Driver roster management, the audit trail and the admin's own profile.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.core.guards import require_admin
from backend.app.domain.ledger.driver_ledger import DriverLedger
from backend.app.schemas.admin import DriverCreate, DriverResponse, AdminProfileUpdate, AuditLogResponse
from backend.app.schemas.auth import AccountResponse
from backend.app.schemas.common import ApiResponse
from backend.app.schemas.ride import DriverStats
from backend.app.services.accounts import AccountService
from backend.app.services.audit import log_event, get_audit_trail, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/drivers", response_model=ApiResponse[DriverResponse], status_code=status.HTTP_201_CREATED)
async def add_driver(
    body: DriverCreate,
    request: Request,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a driver.

    Creates the driver account and its zero-counter ledger row together.
    """
    account, driver = await AccountService.create_driver(db, body.name, body.phone_number)

    await log_event(
        db=db,
        action=AuditAction.DRIVER_CREATED,
        actor_id=current_user["account_id"],
        actor_phone=current_user.get("sub"),
        target_id=account.id,
        metadata={"driver_id": driver.id, "phone_number": account.phone_number},
        ip_address=request.client.host if request.client else None
    )

    return ApiResponse[DriverResponse](
        message="Driver added successfully",
        data=DriverResponse.model_validate(driver),
    )


@router.get("/drivers", response_model=ApiResponse[List[DriverResponse]])
async def list_drivers(
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """All drivers, newest first."""
    drivers = await DriverLedger.list_drivers(db)
    return ApiResponse[List[DriverResponse]](
        data=[DriverResponse.model_validate(d) for d in drivers]
    )


@router.get("/drivers/{driver_id}/stats", response_model=ApiResponse[DriverStats])
async def driver_stats(
    driver_id: str = Path(..., description="Driver ledger id or driver account id"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    stats = await DriverLedger.get_stats(db, driver_id)
    return ApiResponse[DriverStats](data=DriverStats(**stats))


@router.get("/audit-logs", response_model=ApiResponse[List[AuditLogResponse]])
async def get_audit_logs(
    action: Optional[str] = Query(None, description="Filter by action type, e.g. LOGIN_FAILED"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Recent audit entries, newest first."""
    logs = await get_audit_trail(db, action=action, limit=limit)
    return ApiResponse[List[AuditLogResponse]](
        data=[AuditLogResponse.model_validate(log) for log in logs]
    )


@router.get("/profile", response_model=ApiResponse[AccountResponse])
async def get_admin_profile(
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """The calling admin's profile. Credential material is never returned."""
    account = await AccountService.find_by_id(db, current_user["account_id"])
    return ApiResponse[AccountResponse](data=AccountResponse.model_validate(account))


@router.put("/profile", response_model=ApiResponse[AccountResponse])
async def update_admin_profile(
    body: AdminProfileUpdate,
    request: Request,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Update name, phone number and/or password of the calling admin."""
    account = await AccountService.update_admin_profile(
        db,
        current_user["account_id"],
        name=body.name,
        phone_number=body.phone_number,
        password=body.password,
    )

    await log_event(
        db=db,
        action=AuditAction.ADMIN_PROFILE_UPDATED,
        actor_id=account.id,
        actor_phone=account.phone_number,
        target_id=account.id,
        metadata={"fields": sorted(body.model_dump(exclude_none=True).keys())},
        ip_address=request.client.host if request.client else None
    )

    return ApiResponse[AccountResponse](
        message="Admin profile updated successfully",
        data=AccountResponse.model_validate(account),
    )
