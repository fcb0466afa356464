"""
Audit logging service for tracking security events and admin actions.

Provides centralized logging for compliance and security monitoring.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    DRIVER_CREATED = "DRIVER_CREATED"
    ADMIN_PROVISIONED = "ADMIN_PROVISIONED"
    ADMIN_PROFILE_UPDATED = "ADMIN_PROFILE_UPDATED"
    FARE_CONFIG_UPDATED = "FARE_CONFIG_UPDATED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[str] = None,
    actor_phone: Optional[str] = None,
    target_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log a security or admin event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: Account performing the action
        actor_phone: Phone number of the actor
        target_id: Account or record acted upon (if applicable)
        metadata: Additional context as JSON
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_phone=actor_phone,
        action=action,
        target_id=target_id,
        meta_data=metadata,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_auth_event(
    db: AsyncSession,
    action: str,
    account_id: Optional[str],
    phone_number: Optional[str],
    ip_address: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Log an authentication event (login success/failure, logout)."""
    return await log_event(
        db=db,
        action=action,
        actor_id=account_id,
        actor_phone=phone_number,
        ip_address=ip_address,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail, most recent first, optionally filtered by action.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
