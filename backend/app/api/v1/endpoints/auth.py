"""
Authentication API endpoints.

Drivers log in with their phone number; the admin logs in with phone number
and password. Admin accounts are provisioned at deploy time
(backend/seed_admin.py), never as a side effect of logging in.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.models.account import Account
from backend.app.models.driver import Driver
from backend.app.models.enums import UserRole
from backend.app.schemas.auth import DriverLogin, AdminLogin, TokenResponse, AccountResponse
from backend.app.schemas.common import ApiResponse
from backend.app.core.security import verify_password
from backend.app.core.jwt import create_access_token, seconds_until_expiry
from backend.app.core.dependencies import get_current_user
from backend.app.core.token_revocation import revoke_token
from backend.app.domain.ledger.driver_ledger import DriverLedger
from backend.app.services.accounts import AccountService
from backend.app.services.audit import log_auth_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _client_ip(request: Request):
    return request.client.host if request.client else None


def _issue_token(account: Account, driver: Driver = None) -> TokenResponse:
    jwt_payload = {
        "sub": account.phone_number,
        "account_id": account.id,
        "role": account.role.value,
    }
    return TokenResponse(
        access_token=create_access_token(data=jwt_payload),
        token_type="bearer",
        account_id=account.id,
        name=account.name,
        phone_number=account.phone_number,
        role=account.role,
        driver_id=driver.id if driver else None,
    )


async def _reject_login(db: AsyncSession, request: Request, account, phone_number: str, reason: str, detail: str):
    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_FAILED,
        account_id=account.id if account else None,
        phone_number=phone_number,
        ip_address=_client_ip(request),
        metadata={"reason": reason}
    )
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def driver_login(
    credentials: DriverLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Log a driver in by phone number.

    Admin accounts must use /auth/admin-login.
    """
    account = await AccountService.find_by_phone(db, credentials.phone_number)

    if not account or account.role != UserRole.DRIVER:
        await _reject_login(
            db, request, account, credentials.phone_number,
            reason="Not a driver account",
            detail="Phone number not registered as driver"
        )

    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive account")

    driver = await DriverLedger.resolve(db, account.id)

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        account_id=account.id,
        phone_number=account.phone_number,
        ip_address=_client_ip(request)
    )

    return ApiResponse[TokenResponse](message="Login successful", data=_issue_token(account, driver))


@router.post("/admin-login", response_model=ApiResponse[TokenResponse])
async def admin_login(
    credentials: AdminLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Log the admin in with phone number and password (bcrypt verified)."""
    account = await AccountService.find_by_phone(db, credentials.phone_number)

    if (
        not account
        or account.role != UserRole.ADMIN
        or not verify_password(credentials.password, account.hashed_password)
    ):
        await _reject_login(
            db, request, account, credentials.phone_number,
            reason="Invalid admin credentials",
            detail="Invalid credentials"
        )

    if not account.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive account")

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        account_id=account.id,
        phone_number=account.phone_number,
        ip_address=_client_ip(request)
    )

    return ApiResponse[TokenResponse](message="Login successful", data=_issue_token(account))


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token."""
    revoked = await revoke_token(
        current_user["token"], current_user["account_id"], seconds_until_expiry(current_user)
    )
    if not revoked:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not revoke token, try again"
        )

    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        account_id=current_user["account_id"],
        phone_number=current_user.get("sub"),
        ip_address=_client_ip(request)
    )
    return ApiResponse[dict](message="Logged out")


@router.get("/me", response_model=ApiResponse[AccountResponse])
async def get_current_account(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Current authenticated account."""
    account = await AccountService.find_by_id(db, current_user["account_id"])

    if not account:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found"
        )

    return ApiResponse[AccountResponse](data=AccountResponse.model_validate(account))
