"""
Attendance session model: one continuous work period for one employee.

A session is open while punch_out_at is NULL. The partial unique index keeps
at most one open session per (tenant, employee).
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    Boolean,
    Numeric,
    DateTime,
    ForeignKey,
    Index,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class LocationType(str, enum.Enum):
    OFFICE = "OFFICE"
    WFH = "WFH"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"
    HALF_DAY = "HALF_DAY"


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(String, ForeignKey("tenants.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=True)
    punch_in_at = Column(DateTime(timezone=True), nullable=False)
    punch_out_at = Column(DateTime(timezone=True), nullable=True)
    location_type = Column(SQLEnum(LocationType), nullable=False, default=LocationType.OFFICE)
    punch_in_lat = Column(Float, nullable=True)
    punch_in_lng = Column(Float, nullable=True)
    punch_out_lat = Column(Float, nullable=True)
    punch_out_lng = Column(Float, nullable=True)
    punch_in_proof_ref = Column(String, nullable=True)
    punch_out_proof_ref = Column(String, nullable=True)
    is_within_geofence = Column(Boolean, nullable=False, default=True)
    working_hours = Column(Numeric(5, 2), nullable=True)  # set only on close
    status = Column(SQLEnum(AttendanceStatus), nullable=False, default=AttendanceStatus.PRESENT)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", backref="attendance_sessions")

    __table_args__ = (
        Index(
            "uq_attendance_sessions_open",
            "tenant_id",
            "employee_id",
            unique=True,
            sqlite_where=punch_out_at.is_(None),
            postgresql_where=punch_out_at.is_(None),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.punch_out_at is None
