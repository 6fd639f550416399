"""
Tests for the punch in/out state machine (service level, SQLite-backed store)
"""
from datetime import timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from app.core.errors import ConflictError, DependencyError, NotFoundError, ValidationError
from app.models.attendance_session import AttendanceSession, AttendanceStatus, LocationType
from app.repositories.attendance_store import Coordinates, SqlAlchemyAttendanceStore
from app.services.attendance_session_service import (
    AttendanceSessionService,
    PUNCH_IN_LATE_MESSAGE,
    PUNCH_IN_MESSAGE,
    PUNCH_OUT_MESSAGE,
    classify_closing_status,
    round_hours,
)
from conftest import BASE_TIME, make_employee

HQ = Coordinates(lat=12.9716, lng=77.5946)
# ~500 m north of HQ
FAR = Coordinates(lat=12.9716 + 0.0045, lng=77.5946)


@pytest.fixture
def service(db):
    return AttendanceSessionService(SqlAlchemyAttendanceStore(db), tz=ZoneInfo("UTC"))


def _open_sessions(db, employee):
    return (
        db.query(AttendanceSession)
        .filter(
            AttendanceSession.tenant_id == employee.tenant_id,
            AttendanceSession.employee_id == employee.id,
            AttendanceSession.punch_out_at.is_(None),
        )
        .count()
    )


# --- punch-in ---


def test_punch_in_within_grace_is_present(service, employee, shift):
    result = service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, HQ, "selfie/1.jpg", now=BASE_TIME)
    session = result.session
    assert result.message == PUNCH_IN_MESSAGE
    assert session.status == AttendanceStatus.PRESENT
    assert session.punch_out_at is None
    assert session.working_hours is None
    assert session.shift_id == shift.id
    assert session.is_within_geofence is True
    assert session.punch_in_lat == HQ.lat
    assert session.punch_in_proof_ref == "selfie/1.jpg"


def test_punch_in_after_grace_is_late(service, employee):
    result = service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME.replace(minute=20))
    assert result.session.status == AttendanceStatus.LATE
    assert result.message == PUNCH_IN_LATE_MESSAGE


def test_punch_in_without_shift_is_never_late(db, service, tenant):
    employee = make_employee(db, tenant.id, name="No Shift")
    result = service.punch_in(tenant.id, employee.id, now=BASE_TIME.replace(hour=17))
    assert result.session.status == AttendanceStatus.PRESENT
    assert result.session.shift_id is None


def test_punch_in_with_open_session_conflicts_and_store_unchanged(db, service, employee):
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    with pytest.raises(ConflictError):
        service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(minutes=5))
    assert db.query(AttendanceSession).count() == 1
    assert _open_sessions(db, employee) == 1


def test_office_punch_outside_geofence(service, employee):
    result = service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, FAR, now=BASE_TIME)
    assert result.session.is_within_geofence is False


def test_wfh_punch_is_never_geofence_checked(service, employee):
    result = service.punch_in(employee.tenant_id, employee.id, LocationType.WFH, FAR, now=BASE_TIME)
    assert result.session.location_type == LocationType.WFH
    assert result.session.is_within_geofence is True


def test_office_punch_without_branch_defaults_within(db, service, tenant):
    employee = make_employee(db, tenant.id, name="No Branch")
    result = service.punch_in(tenant.id, employee.id, LocationType.OFFICE, FAR, now=BASE_TIME)
    assert result.session.is_within_geofence is True


def test_office_punch_without_coordinates_is_within(service, employee):
    result = service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, None, now=BASE_TIME)
    assert result.session.is_within_geofence is True


def test_punch_in_rejects_malformed_coordinates(db, service, employee):
    with pytest.raises(ValidationError):
        service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, Coordinates(95.0, 0.0), now=BASE_TIME)
    assert db.query(AttendanceSession).count() == 0


def test_sessions_are_scoped_by_tenant(db, service, employee, other_tenant):
    outsider = make_employee(db, other_tenant.id, name="Outsider")
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    service.punch_in(other_tenant.id, outsider.id, now=BASE_TIME)
    assert service.get_status(employee.tenant_id, outsider.id) is None
    assert service.get_status(other_tenant.id, outsider.id) is not None


# --- punch-out ---


def test_punch_out_without_open_session_not_found(service, employee):
    with pytest.raises(NotFoundError):
        service.punch_out(employee.tenant_id, employee.id, now=BASE_TIME)


def test_punch_out_after_five_minutes_rejected_and_session_stays_open(db, service, employee):
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    with pytest.raises(ValidationError, match="15 minutes"):
        service.punch_out(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(minutes=5))
    assert _open_sessions(db, employee) == 1
    session = service.get_status(employee.tenant_id, employee.id)
    assert session.working_hours is None


def test_punch_out_at_minimum_duration_is_accepted(service, employee):
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    result = service.punch_out(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(minutes=15))
    assert result.session.working_hours == Decimal("0.25")
    assert result.session.status == AttendanceStatus.ABSENT


def test_punch_out_five_hours_is_half_day(service, employee):
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    result = service.punch_out(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(hours=5, minutes=30))
    assert result.message == PUNCH_OUT_MESSAGE
    assert result.session.status == AttendanceStatus.HALF_DAY
    assert result.session.working_hours == Decimal("5.50")


def test_punch_out_three_and_a_half_hours_is_absent(service, employee):
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    result = service.punch_out(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(hours=3, minutes=30))
    assert result.session.status == AttendanceStatus.ABSENT
    assert result.session.working_hours == Decimal("3.50")


def test_punch_out_nine_hours_stays_present(service, employee):
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    result = service.punch_out(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(hours=9))
    session = result.session
    assert session.status == AttendanceStatus.PRESENT
    assert session.working_hours == Decimal("9.00")
    assert session.punch_out_at is not None


def test_late_session_closed_after_two_hours_is_absent(service, employee):
    late = BASE_TIME.replace(minute=30)
    service.punch_in(employee.tenant_id, employee.id, now=late)
    result = service.punch_out(employee.tenant_id, employee.id, now=late + timedelta(hours=2))
    assert result.session.status == AttendanceStatus.ABSENT


@pytest.mark.parametrize("hours", [5, 9])
def test_late_session_is_not_downgraded_by_duration(service, employee, hours):
    late = BASE_TIME.replace(minute=30)
    service.punch_in(employee.tenant_id, employee.id, now=late)
    result = service.punch_out(employee.tenant_id, employee.id, now=late + timedelta(hours=hours))
    assert result.session.status == AttendanceStatus.LATE


def test_geofence_violation_at_punch_out_sticks(service, employee):
    service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, HQ, now=BASE_TIME)
    result = service.punch_out(employee.tenant_id, employee.id, FAR, "selfie/out.jpg", now=BASE_TIME + timedelta(hours=9))
    session = result.session
    assert session.is_within_geofence is False
    assert session.punch_out_lat == FAR.lat
    assert session.punch_out_proof_ref == "selfie/out.jpg"


def test_geofence_violation_at_punch_in_is_never_cleared(service, employee):
    service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, FAR, now=BASE_TIME)
    result = service.punch_out(employee.tenant_id, employee.id, HQ, now=BASE_TIME + timedelta(hours=9))
    assert result.session.is_within_geofence is False


def test_wfh_session_is_not_checked_at_punch_out(service, employee):
    service.punch_in(employee.tenant_id, employee.id, LocationType.WFH, None, now=BASE_TIME)
    result = service.punch_out(employee.tenant_id, employee.id, FAR, now=BASE_TIME + timedelta(hours=9))
    assert result.session.is_within_geofence is True


def test_punch_in_after_close_creates_fresh_session(db, service, employee):
    first = service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME).session.id
    service.punch_out(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(hours=9))
    second = service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(hours=10)).session
    assert second.id != first
    assert second.punch_out_at is None
    assert db.query(AttendanceSession).count() == 2
    assert _open_sessions(db, employee) == 1


def test_punch_in_at_is_immutable_across_close(service, employee):
    opened = service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, HQ, "in.jpg", now=BASE_TIME).session
    punch_in_at = opened.punch_in_at
    closed = service.punch_out(employee.tenant_id, employee.id, FAR, "out.jpg", now=BASE_TIME + timedelta(hours=8)).session
    assert closed.punch_in_at == punch_in_at
    assert closed.punch_in_lat == HQ.lat
    assert closed.punch_in_proof_ref == "in.jpg"
    assert closed.location_type == LocationType.OFFICE


# --- lookups and storage guard ---


class _FailingShiftStore(SqlAlchemyAttendanceStore):
    def lookup_shift(self, employee_id, tenant_id):
        raise RuntimeError("shift service unavailable")


class _FailingBranchStore(SqlAlchemyAttendanceStore):
    def lookup_branch_geofence(self, employee_id, tenant_id):
        raise RuntimeError("branch service unavailable")


class _BlindPrecheckStore(SqlAlchemyAttendanceStore):
    """Simulates a concurrent request that raced past the open-session pre-check."""

    def find_open_session(self, tenant_id, employee_id):
        return None


def test_shift_lookup_failure_is_dependency_error(db, employee):
    service = AttendanceSessionService(_FailingShiftStore(db), tz=ZoneInfo("UTC"))
    with pytest.raises(DependencyError):
        service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    assert db.query(AttendanceSession).count() == 0


def test_branch_lookup_failure_is_dependency_error(db, employee):
    service = AttendanceSessionService(_FailingBranchStore(db), tz=ZoneInfo("UTC"))
    with pytest.raises(DependencyError):
        service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, HQ, now=BASE_TIME)
    # WFH never consults the branch
    service.punch_in(employee.tenant_id, employee.id, LocationType.WFH, HQ, now=BASE_TIME)


def test_branch_lookup_failure_on_punch_out_leaves_session_open(db, employee, service):
    opened = service.punch_in(employee.tenant_id, employee.id, LocationType.OFFICE, HQ, now=BASE_TIME).session
    failing = AttendanceSessionService(_FailingBranchStore(db), tz=ZoneInfo("UTC"))
    with pytest.raises(DependencyError):
        failing.punch_out(employee.tenant_id, employee.id, HQ, now=BASE_TIME + timedelta(hours=9))
    db.expire_all()
    session = db.get(AttendanceSession, opened.id)
    assert session.punch_out_at is None
    assert session.working_hours is None
    assert _open_sessions(db, employee) == 1


def test_storage_guard_rejects_racing_punch_in(db, employee):
    service = AttendanceSessionService(_BlindPrecheckStore(db), tz=ZoneInfo("UTC"))
    service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME)
    with pytest.raises(ConflictError):
        service.punch_in(employee.tenant_id, employee.id, now=BASE_TIME + timedelta(seconds=1))
    assert _open_sessions(db, employee) == 1


def test_list_logs_newest_first(db, service, employee, tenant):
    colleague = make_employee(db, tenant.id, name="Colleague")
    service.punch_in(tenant.id, employee.id, now=BASE_TIME)
    service.punch_in(tenant.id, colleague.id, now=BASE_TIME + timedelta(minutes=3))
    logs = service.list_logs(tenant.id)
    assert [s.employee_id for s in logs] == [colleague.id, employee.id]
    assert service.list_logs(tenant.id, limit=1)[0].employee_id == colleague.id


# --- pure helpers ---


@pytest.mark.parametrize(
    "current,hours,expected",
    [
        (AttendanceStatus.PRESENT, 0.25, AttendanceStatus.ABSENT),
        (AttendanceStatus.PRESENT, 3.99, AttendanceStatus.ABSENT),
        (AttendanceStatus.PRESENT, 4.0, AttendanceStatus.HALF_DAY),
        (AttendanceStatus.PRESENT, 7.99, AttendanceStatus.HALF_DAY),
        (AttendanceStatus.PRESENT, 8.0, AttendanceStatus.PRESENT),
        (AttendanceStatus.LATE, 3.5, AttendanceStatus.ABSENT),
        (AttendanceStatus.LATE, 4.0, AttendanceStatus.LATE),
        (AttendanceStatus.LATE, 10.0, AttendanceStatus.LATE),
    ],
)
def test_classify_closing_status(current, hours, expected):
    assert classify_closing_status(current, hours) == expected


def test_round_hours_half_up():
    assert round_hours(210) == Decimal("3.50")
    assert round_hours(100) == Decimal("1.67")
    assert round_hours(15.3) == Decimal("0.26")
