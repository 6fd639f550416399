"""
Great-circle distance and circular geofence checks.

distance_meters / is_within_radius are pure and never raise; non-finite input
yields NaN or inf. Callers validate coordinates with validate_coordinates first.
"""
import math
from typing import Optional

from app.core.errors import ValidationError

EARTH_RADIUS_METERS = 6371000.0


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance between two (lat, lon) points, in meters."""
    if not all(math.isfinite(v) for v in (lat1, lon1, lat2, lon2)):
        return math.nan

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    # rounding can push a a hair past 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def is_within_radius(
    center_lat: float,
    center_lon: float,
    point_lat: float,
    point_lon: float,
    radius_meters: float,
) -> bool:
    """True iff the point lies within radius_meters of the center (boundary inclusive)."""
    return distance_meters(center_lat, center_lon, point_lat, point_lon) <= radius_meters


def validate_coordinates(lat: Optional[float], lng: Optional[float]) -> None:
    """
    Reject coordinates the evaluator must not see.

    Raises:
        ValidationError: lat/lng not both given, non-finite, or out of range
    """
    if (lat is None) != (lng is None):
        raise ValidationError("Both lat and lng must be provided together")
    if lat is None:
        return
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise ValidationError("lat and lng must be numbers")
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise ValidationError("lat and lng must be finite numbers")
    if not -90 <= lat_f <= 90:
        raise ValidationError("lat must be between -90 and 90")
    if not -180 <= lng_f <= 180:
        raise ValidationError("lng must be between -180 and 180")
