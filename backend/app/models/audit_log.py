"""
Audit Log Database Model.

Tracks logins and admin actions (fare changes, driver onboarding, profile edits).
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking security events and admin actions.

    Events logged:
    - LOGIN_SUCCESS / LOGIN_FAILED
    - LOGOUT
    - DRIVER_CREATED
    - FARE_CONFIG_UPDATED
    - ADMIN_PROFILE_UPDATED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(String(36), index=True, nullable=True)
    actor_phone = Column(String(10), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Who was the target of the action
    target_id = Column(String(36), index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_phone})>"
