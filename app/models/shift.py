"""
Shift model: scheduled start time-of-day and grace period
"""
from sqlalchemy import Column, Integer, String, Time, ForeignKey
from app.db.base import Base


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=True)
    grace_period_mins = Column(Integer, nullable=False, default=15)
