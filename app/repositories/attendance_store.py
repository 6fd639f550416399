"""
Attendance record store: the persistence contract the punch state machine
depends on, and its SQLAlchemy implementation.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.errors import ConflictError, NotFoundError
from app.models.attendance_session import AttendanceSession, AttendanceStatus, LocationType
from app.models.branch import Branch
from app.models.employee import Employee
from app.models.shift import Shift

_log = logging.getLogger(__name__)

OPEN_SESSION_INDEX = "uq_attendance_sessions_open"


def _is_open_session_violation(err: IntegrityError) -> bool:
    """PostgreSQL names the index; SQLite only reports the UNIQUE failure on the indexed columns."""
    msg = str(err.orig)
    return OPEN_SESSION_INDEX in msg or (
        "UNIQUE constraint failed" in msg and "attendance_sessions.employee_id" in msg
    )


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True)
class ShiftDescriptor:
    shift_id: int
    start_time: time
    grace_period_mins: int


@dataclass(frozen=True)
class BranchGeofence:
    latitude: float
    longitude: float
    radius_meters: float


@dataclass(frozen=True)
class NewSession:
    """Fields written once at punch-in."""
    tenant_id: str
    employee_id: int
    shift_id: Optional[int]
    punch_in_at: datetime
    location_type: LocationType
    status: AttendanceStatus
    is_within_geofence: bool
    punch_in_location: Optional[Coordinates] = None
    punch_in_proof_ref: Optional[str] = None


@dataclass(frozen=True)
class SessionCloseFields:
    """Fields written once at punch-out."""
    punch_out_at: datetime
    working_hours: Decimal
    status: AttendanceStatus
    is_within_geofence: bool
    punch_out_location: Optional[Coordinates] = None
    punch_out_proof_ref: Optional[str] = None


class AttendanceStore(ABC):
    """Persistence operations required by AttendanceSessionService."""

    @abstractmethod
    def find_open_session(self, tenant_id: str, employee_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    @abstractmethod
    def find_most_recent_open_session(self, tenant_id: str, employee_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    @abstractmethod
    def create_session(self, new_session: NewSession) -> AttendanceSession:
        """Insert an open session. Raises ConflictError if one is already open."""
        raise NotImplementedError

    @abstractmethod
    def close_session(self, session_id: int, fields: SessionCloseFields) -> AttendanceSession:
        """Close an open session. Raises NotFoundError if missing or already closed."""
        raise NotImplementedError

    @abstractmethod
    def lookup_shift(self, employee_id: int, tenant_id: str) -> Optional[ShiftDescriptor]:
        raise NotImplementedError

    @abstractmethod
    def lookup_branch_geofence(self, employee_id: int, tenant_id: str) -> Optional[BranchGeofence]:
        raise NotImplementedError

    @abstractmethod
    def list_recent_sessions(self, tenant_id: str, limit: int = 50) -> List[AttendanceSession]:
        raise NotImplementedError


class SqlAlchemyAttendanceStore(AttendanceStore):
    """
    AttendanceStore over a SQLAlchemy Session.

    Each write commits its own transaction. The open-session guard is the
    uq_attendance_sessions_open partial unique index; a violation surfaces
    as IntegrityError and is translated to ConflictError.
    """

    def __init__(self, db: Session, default_radius_meters: float = 100.0):
        self.db = db
        self.default_radius_meters = default_radius_meters

    def _open_sessions(self, tenant_id: str, employee_id: int):
        return self.db.query(AttendanceSession).filter(
            AttendanceSession.tenant_id == tenant_id,
            AttendanceSession.employee_id == employee_id,
            AttendanceSession.punch_out_at.is_(None),
        )

    def find_open_session(self, tenant_id: str, employee_id: int) -> Optional[AttendanceSession]:
        return self._open_sessions(tenant_id, employee_id).first()

    def find_most_recent_open_session(self, tenant_id: str, employee_id: int) -> Optional[AttendanceSession]:
        return (
            self._open_sessions(tenant_id, employee_id)
            .order_by(AttendanceSession.punch_in_at.desc())
            .first()
        )

    def create_session(self, new_session: NewSession) -> AttendanceSession:
        location = new_session.punch_in_location
        session = AttendanceSession(
            tenant_id=new_session.tenant_id,
            employee_id=new_session.employee_id,
            shift_id=new_session.shift_id,
            punch_in_at=new_session.punch_in_at,
            punch_out_at=None,
            location_type=new_session.location_type,
            punch_in_lat=location.lat if location else None,
            punch_in_lng=location.lng if location else None,
            punch_in_proof_ref=new_session.punch_in_proof_ref,
            is_within_geofence=new_session.is_within_geofence,
            working_hours=None,
            status=new_session.status,
        )
        self.db.add(session)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if not _is_open_session_violation(e):
                raise
            _log.warning(
                "create_session rejected by open-session guard: tenant_id=%s employee_id=%s (%s)",
                new_session.tenant_id, new_session.employee_id, e.orig,
            )
            raise ConflictError("Active session already exists")
        self.db.refresh(session)
        return session

    def close_session(self, session_id: int, fields: SessionCloseFields) -> AttendanceSession:
        location = fields.punch_out_location
        result = self.db.execute(
            update(AttendanceSession)
            .where(
                AttendanceSession.id == session_id,
                AttendanceSession.punch_out_at.is_(None),
            )
            .values(
                punch_out_at=fields.punch_out_at,
                punch_out_lat=location.lat if location else None,
                punch_out_lng=location.lng if location else None,
                punch_out_proof_ref=fields.punch_out_proof_ref,
                working_hours=fields.working_hours,
                status=fields.status,
                is_within_geofence=fields.is_within_geofence,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise NotFoundError("No active session found")
        self.db.commit()

        session = self.db.get(AttendanceSession, session_id)
        self.db.refresh(session)
        return session

    def lookup_shift(self, employee_id: int, tenant_id: str) -> Optional[ShiftDescriptor]:
        row = (
            self.db.query(Shift)
            .join(Employee, Employee.shift_id == Shift.id)
            .filter(Employee.id == employee_id, Employee.tenant_id == tenant_id)
            .first()
        )
        if row is None:
            return None
        return ShiftDescriptor(
            shift_id=row.id,
            start_time=row.start_time,
            grace_period_mins=row.grace_period_mins or 0,
        )

    def lookup_branch_geofence(self, employee_id: int, tenant_id: str) -> Optional[BranchGeofence]:
        row = (
            self.db.query(Branch)
            .join(Employee, Employee.branch_id == Branch.id)
            .filter(Employee.id == employee_id, Employee.tenant_id == tenant_id)
            .first()
        )
        # A branch without coordinates has no enforceable fence
        if row is None or row.latitude is None or row.longitude is None:
            return None
        return BranchGeofence(
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            radius_meters=float(row.geofence_radius_meters or self.default_radius_meters),
        )

    def list_recent_sessions(self, tenant_id: str, limit: int = 50) -> List[AttendanceSession]:
        return (
            self.db.query(AttendanceSession)
            .options(joinedload(AttendanceSession.employee))
            .filter(AttendanceSession.tenant_id == tenant_id)
            .order_by(AttendanceSession.punch_in_at.desc())
            .limit(limit)
            .all()
        )
