"""
Account service.

Driver onboarding, admin provisioning and admin profile maintenance.
"""

import logging
from typing import Optional, Tuple
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ConflictError, ResourceNotFoundError
from backend.app.core.security import get_password_hash
from backend.app.domain.ledger.driver_ledger import DriverLedger
from backend.app.models.account import Account
from backend.app.models.driver import Driver
from backend.app.models.enums import UserRole

logger = logging.getLogger(__name__)


class AccountService:

    @staticmethod
    async def find_by_id(db: AsyncSession, account_id: str) -> Optional[Account]:
        return await db.get(Account, account_id)

    @staticmethod
    async def find_by_phone(db: AsyncSession, phone_number: str) -> Optional[Account]:
        result = await db.execute(select(Account).where(Account.phone_number == phone_number))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_driver(db: AsyncSession, name: str, phone_number: str) -> Tuple[Account, Driver]:
        """
        Create a driver account together with its ledger row.

        Raises:
            ConflictError: the phone number is already registered
        """
        if await AccountService.find_by_phone(db, phone_number):
            raise ConflictError("Phone number already registered", {"phone_number": phone_number})

        account = Account(phone_number=phone_number, role=UserRole.DRIVER, name=name)
        db.add(account)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Phone number already registered", {"phone_number": phone_number})
        await db.refresh(account)

        driver = await DriverLedger.open_ledger(db, account)
        logger.info("Created driver account %s ledger %s", account.id, driver.id)
        return account, driver

    @staticmethod
    async def provision_admin(
        db: AsyncSession, phone_number: str, name: str, password: str
    ) -> Tuple[Account, bool]:
        """
        Idempotently ensure the admin identity exists.

        Creates the admin when the phone is free, otherwise refreshes the
        existing admin's name and password hash.

        Returns:
            (account, created)

        Raises:
            ConflictError: the phone number belongs to a driver
        """
        account = await AccountService.find_by_phone(db, phone_number)
        if account and account.role != UserRole.ADMIN:
            raise ConflictError(
                "Phone number is registered to a non-admin account", {"phone_number": phone_number}
            )

        created = account is None
        if created:
            account = Account(phone_number=phone_number, role=UserRole.ADMIN, name=name)
            db.add(account)

        account.name = name
        account.hashed_password = get_password_hash(password)
        account.is_active = True

        await db.commit()
        await db.refresh(account)
        logger.info("%s admin account %s", "Created" if created else "Updated", account.id)
        return account, created

    @staticmethod
    async def update_admin_profile(
        db: AsyncSession,
        account_id: str,
        name: Optional[str] = None,
        phone_number: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Account:
        """
        Update the calling admin's name, phone number and/or password.

        Raises:
            ResourceNotFoundError: the admin account no longer exists
            ConflictError: the new phone number is taken
        """
        account = await db.get(Account, account_id)
        if not account or account.role != UserRole.ADMIN:
            raise ResourceNotFoundError("Admin profile", account_id)

        if phone_number and phone_number != account.phone_number:
            if await AccountService.find_by_phone(db, phone_number):
                raise ConflictError("Phone number already registered", {"phone_number": phone_number})
            account.phone_number = phone_number

        if name:
            account.name = name.strip()
        if password:
            account.hashed_password = get_password_hash(password)

        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Phone number already registered", {"phone_number": phone_number})
        await db.refresh(account)
        return account
