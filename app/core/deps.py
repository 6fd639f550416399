"""
Dependencies and guards for FastAPI endpoints
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Generator, Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.core.config import settings
from app.db.session import SessionLocal
from app.core.security import decode_token
from app.models.employee import Employee, Role
from app.models.tenant import Tenant
from app.repositories.attendance_store import SqlAlchemyAttendanceStore
from app.services.attendance_session_service import AttendanceSessionService
from app.utils.datetime_utils import now_utc


security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller, as asserted by the bearer token."""
    employee_id: int
    tenant_id: str
    role: Role


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_now() -> datetime:
    """Current instant (UTC). Overridden in tests to pin the clock."""
    return now_utc()


def get_tenant_id(
    x_tenant_id: Optional[str] = Header(None, alias="X-Tenant-Id"),
    db: Session = Depends(get_db),
) -> str:
    """
    Resolve the tenant from the X-Tenant-Id header.

    Missing header -> 401; unknown or inactive tenant -> 403.
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Tenant-Id header. Multi-tenant context required.",
        )
    tenant = db.query(Tenant).filter(Tenant.id == x_tenant_id).first()
    if tenant is None or not tenant.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid or inactive tenant ID.",
        )
    return tenant.id


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Get the current caller from the JWT and check it is an active employee of the request tenant
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_token(credentials.credentials)
        employee_id = int(payload["sub"])
        token_tenant = str(payload["tenant_id"])
    except (KeyError, ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if token_tenant != tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cross-tenant access denied",
        )

    employee = (
        db.query(Employee)
        .filter(Employee.id == employee_id, Employee.tenant_id == tenant_id)
        .first()
    )
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    # Role comes from the employee row, not the token
    return Identity(employee_id=employee.id, tenant_id=tenant_id, role=Role(employee.role))


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control

    Usage:
        @router.get("/logs")
        async def logs(identity: Identity = Depends(require_roles(Role.HR, Role.MANAGER))):
            ...
    """
    def role_checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        # ADMIN is a superuser for every role-gated route
        if identity.role == Role.ADMIN:
            return identity
        if identity.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return identity
    return role_checker


def get_attendance_service(db: Session = Depends(get_db)) -> AttendanceSessionService:
    store = SqlAlchemyAttendanceStore(db, default_radius_meters=settings.DEFAULT_GEOFENCE_RADIUS_METERS)
    return AttendanceSessionService(store)
