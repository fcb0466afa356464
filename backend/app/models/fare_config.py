"""
Fare configuration database model.

Holds the single system-wide fare table.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, ForeignKey, Index, text
from sqlalchemy.sql import func
from backend.app.db.session import Base

# Bumped whenever the stored shape changes; see backend/app/db/migrations.py
FARE_SCHEMA_VERSION = 2

SYSTEM_DEFAULT_PREDICATE = text("is_system_default AND is_active")


class FareConfig(Base):
    """
    Fare configuration model.

    At most one row may be both system default and active; the partial
    unique index below rejects a second one.
    """
    __tablename__ = "fare_configs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Rates
    base_fare = Column(Float, nullable=False)
    per_km_rate = Column(Float, nullable=False)
    waiting_charge_per_interval = Column(Float, nullable=False, default=0.0)
    interval_minutes = Column(Integer, nullable=False, default=60)

    # Singleton flags
    is_system_default = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    schema_version = Column(Integer, default=FARE_SCHEMA_VERSION, nullable=False)

    # Audit
    updated_by_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index(
            "uq_fare_configs_system_default",
            "is_system_default",
            "is_active",
            unique=True,
            postgresql_where=SYSTEM_DEFAULT_PREDICATE,
            sqlite_where=SYSTEM_DEFAULT_PREDICATE,
        ),
    )

    def __repr__(self):
        return f"<FareConfig(id={self.id}, base_fare={self.base_fare}, per_km_rate={self.per_km_rate})>"
