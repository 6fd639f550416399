"""
Attendance endpoints (session-based punch in/out, status, tenant logs).
Tenant comes from X-Tenant-Id; caller identity from the bearer token.
Any role may punch for itself; acting on another employee requires MANAGER/HR/ADMIN.
"""
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.deps import (
    Identity,
    get_attendance_service,
    get_current_identity,
    get_db,
    get_now,
    require_roles,
)
from app.core.errors import ForbiddenError, NotFoundError
from app.models.employee import Employee, Role
from app.schemas.attendance import (
    PunchInRequest,
    PunchOutRequest,
    PunchResponse,
    SessionDto,
    SessionLogDto,
    StatusResponse,
    LogsResponse,
)
from app.services.attendance_session_service import AttendanceSessionService, to_coordinates

router = APIRouter()
_log = logging.getLogger(__name__)

_SUPERVISOR_ROLES = (Role.ADMIN, Role.HR, Role.MANAGER)


def _resolve_employee_id(identity: Identity, requested: Optional[int], db: Session) -> int:
    """Target employee for the call: the caller, or (for supervisors) another active employee of the tenant."""
    if requested is None or requested == identity.employee_id:
        return identity.employee_id
    if identity.role not in _SUPERVISOR_ROLES:
        raise ForbiddenError("You can only record your own attendance.")
    target = (
        db.query(Employee)
        .filter(Employee.id == requested, Employee.tenant_id == identity.tenant_id)
        .first()
    )
    if target is None:
        raise NotFoundError("Employee not found")
    if not target.active:
        raise ForbiddenError("Employee is inactive")
    return requested


@router.post("/punch-in", response_model=PunchResponse, status_code=201)
async def punch_in_endpoint(
    body: Optional[PunchInRequest] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    service: AttendanceSessionService = Depends(get_attendance_service),
    now: datetime = Depends(get_now),
):
    """
    Open an attendance session.
    409 if a session is already open; status is LATE when past shift start + grace period.
    """
    payload = body or PunchInRequest()
    employee_id = _resolve_employee_id(identity, payload.employee_id, db)
    _log.debug(
        "punch_in: tenant_id=%s employee_id=%s location_type=%s has_geo=%s",
        identity.tenant_id, employee_id, payload.location_type.value, payload.lat is not None,
    )
    result = service.punch_in(
        identity.tenant_id,
        employee_id,
        location_type=payload.location_type,
        coordinates=to_coordinates(payload.lat, payload.lng),
        proof_ref=payload.proof_ref,
        now=now,
    )
    return PunchResponse(message=result.message, data=SessionDto.model_validate(result.session))


@router.post("/punch-out", response_model=PunchResponse)
async def punch_out_endpoint(
    body: Optional[PunchOutRequest] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    service: AttendanceSessionService = Depends(get_attendance_service),
    now: datetime = Depends(get_now),
):
    """
    Close the most recent open session.
    404 if none is open; 400 if the session is shorter than the minimum duration.
    """
    payload = body or PunchOutRequest()
    employee_id = _resolve_employee_id(identity, payload.employee_id, db)
    result = service.punch_out(
        identity.tenant_id,
        employee_id,
        coordinates=to_coordinates(payload.lat, payload.lng),
        proof_ref=payload.proof_ref,
        now=now,
    )
    return PunchResponse(message=result.message, data=SessionDto.model_validate(result.session))


@router.get("/status", response_model=StatusResponse)
async def status_endpoint(
    employee_id: Optional[int] = Query(None, description="Employee to inspect (defaults to caller)"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    service: AttendanceSessionService = Depends(get_attendance_service),
):
    """Whether the employee currently has an open session, and that session."""
    target = _resolve_employee_id(identity, employee_id, db)
    session = service.get_status(identity.tenant_id, target)
    return StatusResponse(
        active=session is not None,
        data=SessionDto.model_validate(session) if session else None,
    )


@router.get("/logs", response_model=LogsResponse)
async def logs_endpoint(
    limit: int = Query(50, ge=1, le=200),
    identity: Identity = Depends(require_roles(Role.HR, Role.MANAGER)),
    service: AttendanceSessionService = Depends(get_attendance_service),
):
    """Most recent sessions for the tenant (MANAGER/HR/ADMIN)."""
    sessions = service.list_logs(identity.tenant_id, limit)
    items = []
    for s in sessions:
        dto = SessionLogDto.model_validate(s)
        dto.employee_name = s.employee.name if s.employee else None
        items.append(dto)
    return LogsResponse(count=len(items), data=items)
