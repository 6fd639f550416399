"""
Attendance schemas (punch-in / punch-out requests and session output).
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from app.models.attendance_session import AttendanceStatus, LocationType
from app.utils.datetime_utils import iso_8601_utc


class _PunchLocation(BaseModel):
    """Optional GPS fix; lat and lng must come together."""
    lat: Optional[float] = Field(None, ge=-90, le=90, description="GPS latitude [-90, 90]")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="GPS longitude [-180, 180]")

    @model_validator(mode="after")
    def check_lat_lng_pair(self):
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be provided together")
        return self


class PunchInRequest(_PunchLocation):
    """Request for punch-in. employee_id defaults to the caller."""
    employee_id: Optional[int] = Field(None, description="Employee to punch in (defaults to caller)")
    location_type: LocationType = Field(default=LocationType.OFFICE, description="OFFICE or WFH")
    proof_ref: Optional[str] = Field(None, max_length=2048, description="Reference to captured verification photo")


class PunchOutRequest(_PunchLocation):
    """Request for punch-out. employee_id defaults to the caller."""
    employee_id: Optional[int] = Field(None, description="Employee to punch out (defaults to caller)")
    proof_ref: Optional[str] = Field(None, max_length=2048, description="Reference to captured verification photo")


class SessionDto(BaseModel):
    """Attendance session output; datetimes are ISO-8601 UTC (Z)."""
    id: int
    tenant_id: str
    employee_id: int
    shift_id: Optional[int] = None
    punch_in_at: datetime
    punch_out_at: Optional[datetime] = None
    location_type: LocationType
    punch_in_lat: Optional[float] = None
    punch_in_lng: Optional[float] = None
    punch_out_lat: Optional[float] = None
    punch_out_lng: Optional[float] = None
    punch_in_proof_ref: Optional[str] = None
    punch_out_proof_ref: Optional[str] = None
    is_within_geofence: bool
    working_hours: Optional[Decimal] = None
    status: AttendanceStatus

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("punch_in_at", "punch_out_at", when_used="always")
    def _serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)

    @field_serializer("working_hours", when_used="always")
    def _serialize_hours(self, v: Optional[Decimal]) -> Optional[float]:
        return float(v) if v is not None else None


class SessionLogDto(SessionDto):
    """Session with employee name for tenant logs."""
    employee_name: Optional[str] = None


class PunchResponse(BaseModel):
    success: bool = True
    message: str
    data: SessionDto


class StatusResponse(BaseModel):
    success: bool = True
    active: bool
    data: Optional[SessionDto] = None


class LogsResponse(BaseModel):
    success: bool = True
    count: int
    data: List[SessionLogDto]
