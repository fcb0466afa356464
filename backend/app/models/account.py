"""
Account database model.

One Account per phone number; the phone number is the login key.
"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.enums import UserRole


def new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """
    Account model for authentication.

    Drivers log in with their phone number alone; admins also need a password,
    stored only as a bcrypt hash.
    """
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    phone_number = Column(String(10), unique=True, index=True, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.DRIVER, nullable=False)
    name = Column(String(100), nullable=False)
    hashed_password = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Account(id={self.id}, phone='{self.phone_number}', role='{self.role.value}')>"
