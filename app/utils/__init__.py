"""
Utility package initialization and exports
"""

# DateTime utilities
from .datetime_utils import (
    utc_now,
    ensure_utc,
    get_timezone,
    local_date,
    scheduled_instant,
)

# Geolocation utilities
from .geo_utils import (
    GeoPoint,
    GeoLocationHelper,
    GeofenceState,
    GeofenceVerdict,
    GeofenceEvaluator,
    validate_coordinates,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "get_timezone",
    "local_date",
    "scheduled_instant",
    "GeoPoint",
    "GeoLocationHelper",
    "GeofenceState",
    "GeofenceVerdict",
    "GeofenceEvaluator",
    "validate_coordinates",
]
