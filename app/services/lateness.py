"""
Shift lateness: is a punch-in strictly after shift start + grace period?

Shift start is a time of day; it is placed on the calendar date of the punch
instant as seen in the reference zone (settings.ATTENDANCE_TZ by default).
"""
from datetime import datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.repositories.attendance_store import ShiftDescriptor
from app.utils.datetime_utils import to_zone


def late_threshold(now: datetime, shift_start: time, grace_period_mins: int, tz: ZoneInfo) -> datetime:
    """Scheduled start on the punch's local date plus the grace period (aware, in tz)."""
    local_now = to_zone(now, tz)
    scheduled = datetime.combine(local_now.date(), shift_start.replace(tzinfo=None), tzinfo=tz)
    return scheduled + timedelta(minutes=grace_period_mins or 0)


def is_late(now: datetime, shift_start: time, grace_period_mins: int, tz: Optional[ZoneInfo] = None) -> bool:
    tz = tz or settings.reference_zone()
    return to_zone(now, tz) > late_threshold(now, shift_start, grace_period_mins, tz)


def evaluate_lateness(now: datetime, shift: Optional[ShiftDescriptor], tz: Optional[ZoneInfo] = None) -> bool:
    """No assigned shift means the punch is never late."""
    if shift is None:
        return False
    return is_late(now, shift.start_time, shift.grace_period_mins, tz)
