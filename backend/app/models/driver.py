"""
Driver ledger database model.

Cumulative ride counters and earnings, one row per driver account.
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.sql import func
from backend.app.db.session import Base
from backend.app.models.account import new_id


class Driver(Base):
    """
    Driver ledger model.

    Mutated only by ride outcomes, always through single-statement increments.
    Invariant: total_rides == completed_rides + cancelled_rides.
    Rows are never deleted.
    """
    __tablename__ = "drivers"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), unique=True, index=True, nullable=False)

    # Copied from the owning account at creation
    name = Column(String(100), nullable=False)
    phone_number = Column(String(10), unique=True, nullable=False)

    # Counters
    total_rides = Column(Integer, default=0, nullable=False)
    completed_rides = Column(Integer, default=0, nullable=False)
    cancelled_rides = Column(Integer, default=0, nullable=False)
    total_trips = Column(Integer, default=0, nullable=False)

    # Money, exact to the paisa
    earnings = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    total_earnings = Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    last_completed_at = Column(DateTime(timezone=True), nullable=True)
    last_cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, account_id={self.account_id}, total_rides={self.total_rides})>"
