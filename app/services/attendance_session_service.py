"""
Attendance session service: punch in/out state machine with lateness,
geofence and shift-duration classification.

States: no-session -> open -> closed. A closed session is never reopened; the
next punch-in creates a fresh one. All timestamps are UTC; the clock is passed
in as `now` (callers default it to now_utc()).
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, List, Optional, TypeVar
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.errors import (
    AttendanceError,
    DependencyError,
    NotFoundError,
    ValidationError,
    ConflictError,
)
from app.models.attendance_session import AttendanceSession, AttendanceStatus, LocationType
from app.repositories.attendance_store import (
    AttendanceStore,
    Coordinates,
    NewSession,
    SessionCloseFields,
)
from app.services.lateness import evaluate_lateness
from app.utils.datetime_utils import ensure_utc, minutes_between, now_utc
from app.utils.geo import is_within_radius, validate_coordinates

_log = logging.getLogger(__name__)

T = TypeVar("T")

PUNCH_IN_MESSAGE = "Punch-in successful"
PUNCH_IN_LATE_MESSAGE = "Punch-in recorded (Late)"
PUNCH_OUT_MESSAGE = "Punch-out successful"


@dataclass
class PunchResult:
    session: AttendanceSession
    message: str


def classify_closing_status(
    current_status: AttendanceStatus,
    hours: float,
    absent_below_hours: float = 4.0,
    full_day_hours: float = 8.0,
) -> AttendanceStatus:
    """
    Final status for a session being closed after `hours` of work.

    Precedence: ABSENT (short session) > retained LATE > HALF_DAY > PRESENT.
    A LATE status is never downgraded by duration, only overridden by ABSENT.
    """
    if hours < absent_below_hours:
        return AttendanceStatus.ABSENT
    if current_status == AttendanceStatus.LATE:
        return AttendanceStatus.LATE
    if hours < full_day_hours:
        return AttendanceStatus.HALF_DAY
    return AttendanceStatus.PRESENT


def round_hours(elapsed_minutes: float) -> Decimal:
    """Elapsed minutes as hours, rounded half-up to 2 decimal places."""
    hours = Decimal(str(elapsed_minutes)) / Decimal(60)
    return hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_coordinates(lat: Optional[float], lng: Optional[float]) -> Optional[Coordinates]:
    """Validate and pair up optional lat/lng; None when neither is given."""
    validate_coordinates(lat, lng)
    if lat is None:
        return None
    return Coordinates(lat=float(lat), lng=float(lng))


class AttendanceSessionService:
    """Punch-in / punch-out / status operations over an AttendanceStore."""

    def __init__(
        self,
        store: AttendanceStore,
        *,
        tz: Optional[ZoneInfo] = None,
        min_session_minutes: Optional[int] = None,
        absent_below_hours: Optional[float] = None,
        full_day_hours: Optional[float] = None,
    ) -> None:
        self.store = store
        self.tz = tz or settings.reference_zone()
        self.min_session_minutes = (
            settings.MIN_SESSION_MINUTES if min_session_minutes is None else min_session_minutes
        )
        self.absent_below_hours = (
            settings.ABSENT_BELOW_HOURS if absent_below_hours is None else absent_below_hours
        )
        self.full_day_hours = settings.FULL_DAY_HOURS if full_day_hours is None else full_day_hours

    def _lookup(self, what: str, fn: Callable[[], T]) -> T:
        """Run an external lookup; "nothing found" is None, a raised error fails the operation."""
        try:
            return fn()
        except AttendanceError:
            raise
        except Exception as e:
            _log.error("%s lookup failed: %s", what, e, exc_info=True)
            raise DependencyError(f"{what} lookup failed") from e

    def _geofence_ok(
        self,
        tenant_id: str,
        employee_id: int,
        location_type: LocationType,
        coordinates: Optional[Coordinates],
    ) -> bool:
        """WFH punches and punches without coordinates are never checked; no fence => inside."""
        if location_type != LocationType.OFFICE or coordinates is None:
            return True
        fence = self._lookup(
            "Branch geofence",
            lambda: self.store.lookup_branch_geofence(employee_id, tenant_id),
        )
        if fence is None:
            return True
        return is_within_radius(
            fence.latitude, fence.longitude, coordinates.lat, coordinates.lng, fence.radius_meters
        )

    def punch_in(
        self,
        tenant_id: str,
        employee_id: int,
        location_type: LocationType = LocationType.OFFICE,
        coordinates: Optional[Coordinates] = None,
        proof_ref: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PunchResult:
        """
        Open a new session.

        Raises:
            ConflictError: an open session exists (pre-check or storage guard)
            ValidationError: malformed coordinates
            DependencyError: shift or branch lookup raised
        """
        now = ensure_utc(now) if now is not None else now_utc()
        location_type = LocationType(location_type)

        if self.store.find_open_session(tenant_id, employee_id) is not None:
            _log.warning(
                "punch_in rejected: open session exists tenant_id=%s employee_id=%s",
                tenant_id, employee_id,
            )
            raise ConflictError("Active session already exists")

        if coordinates is not None:
            validate_coordinates(coordinates.lat, coordinates.lng)

        shift = self._lookup("Shift", lambda: self.store.lookup_shift(employee_id, tenant_id))
        late = evaluate_lateness(now, shift, self.tz)
        within = self._geofence_ok(tenant_id, employee_id, location_type, coordinates)

        session = self.store.create_session(
            NewSession(
                tenant_id=tenant_id,
                employee_id=employee_id,
                shift_id=shift.shift_id if shift else None,
                punch_in_at=now,
                location_type=location_type,
                status=AttendanceStatus.LATE if late else AttendanceStatus.PRESENT,
                is_within_geofence=within,
                punch_in_location=coordinates,
                punch_in_proof_ref=proof_ref,
            )
        )
        _log.info(
            "punch_in: session_id=%s tenant_id=%s employee_id=%s location_type=%s status=%s within_geofence=%s",
            session.id, tenant_id, employee_id, location_type.value, session.status, within,
        )
        return PunchResult(session=session, message=PUNCH_IN_LATE_MESSAGE if late else PUNCH_IN_MESSAGE)

    def punch_out(
        self,
        tenant_id: str,
        employee_id: int,
        coordinates: Optional[Coordinates] = None,
        proof_ref: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PunchResult:
        """
        Close the most recent open session.

        Raises:
            NotFoundError: no open session (or it was closed concurrently)
            ValidationError: session shorter than the minimum, or malformed coordinates
            DependencyError: branch lookup raised
        """
        now = ensure_utc(now) if now is not None else now_utc()

        session = self.store.find_most_recent_open_session(tenant_id, employee_id)
        if session is None:
            raise NotFoundError("No active session found")

        elapsed = minutes_between(session.punch_in_at, now)
        if elapsed < self.min_session_minutes or elapsed <= 0:
            _log.warning(
                "punch_out rejected: session_id=%s elapsed_minutes=%.2f below minimum %s",
                session.id, elapsed, self.min_session_minutes,
            )
            raise ValidationError(f"Minimum shift duration is {self.min_session_minutes} minutes")

        if coordinates is not None:
            validate_coordinates(coordinates.lat, coordinates.lng)

        location_type = LocationType(session.location_type)
        within_out = self._geofence_ok(tenant_id, employee_id, location_type, coordinates)
        within = bool(session.is_within_geofence) and within_out

        working_hours = round_hours(elapsed)
        final_status = classify_closing_status(
            AttendanceStatus(session.status),
            elapsed / 60.0,
            self.absent_below_hours,
            self.full_day_hours,
        )

        closed = self.store.close_session(
            session.id,
            SessionCloseFields(
                punch_out_at=now,
                working_hours=working_hours,
                status=final_status,
                is_within_geofence=within,
                punch_out_location=coordinates,
                punch_out_proof_ref=proof_ref,
            ),
        )
        _log.info(
            "punch_out: session_id=%s tenant_id=%s employee_id=%s working_hours=%s status=%s within_geofence=%s",
            closed.id, tenant_id, employee_id, working_hours, final_status.value, within,
        )
        return PunchResult(session=closed, message=PUNCH_OUT_MESSAGE)

    def get_status(self, tenant_id: str, employee_id: int) -> Optional[AttendanceSession]:
        """The employee's currently open session, if any."""
        return self.store.find_most_recent_open_session(tenant_id, employee_id)

    def list_logs(self, tenant_id: str, limit: int = 50) -> List[AttendanceSession]:
        """Most recent sessions for the tenant, newest first."""
        return self.store.list_recent_sessions(tenant_id, limit)
