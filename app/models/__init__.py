"""
Database models
"""
from app.models.tenant import Tenant
from app.models.branch import Branch
from app.models.shift import Shift
from app.models.employee import Employee, Role
from app.models.attendance_session import AttendanceSession, AttendanceStatus, LocationType

__all__ = [
    "Tenant",
    "Branch",
    "Shift",
    "Employee",
    "Role",
    "AttendanceSession",
    "AttendanceStatus",
    "LocationType",
]
