"""
Geolocation utilities: great-circle distance, bearing and circular
geofence evaluation.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from app.core.exceptions import ErrorCode, ValidationError

COMPASS_POINTS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


@dataclass(frozen=True)
class GeoPoint:
    """Geographic point with latitude and longitude"""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not (-90 <= self.latitude <= 90):
            raise ValueError("Latitude must be between -90 and 90")
        if not (-180 <= self.longitude <= 180):
            raise ValueError("Longitude must be between -180 and 180")


def validate_coordinates(latitude: Any, longitude: Any) -> GeoPoint:
    """
    Build a GeoPoint from request values.

    Raises:
        ValidationError: If either value is missing, non-numeric or out of range
    """
    if latitude is None or longitude is None:
        raise ValidationError(
            "Latitude and longitude are required",
            field="latitude" if latitude is None else "longitude",
            error_code=ErrorCode.MISSING_REQUIRED_FIELD,
        )
    try:
        lat, lon = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise ValidationError(
            "Latitude and longitude must be numbers",
            field="latitude",
            error_code=ErrorCode.INVALID_COORDINATES,
        )
    if math.isnan(lat) or math.isnan(lon):
        raise ValidationError(
            "Latitude and longitude must be numbers",
            field="latitude",
            error_code=ErrorCode.INVALID_COORDINATES,
        )
    try:
        return GeoPoint(lat, lon)
    except ValueError as exc:
        field = "latitude" if "Latitude" in str(exc) else "longitude"
        raise ValidationError(str(exc), field=field, error_code=ErrorCode.INVALID_COORDINATES)


class GeoLocationHelper:
    """Spherical geometry helpers"""

    # Earth's radius in meters
    EARTH_RADIUS_M = 6371000.0

    @staticmethod
    def distance_meters(point1: GeoPoint, point2: GeoPoint) -> float:
        """Calculate distance between two points using Haversine formula"""
        lat1, lon1 = math.radians(point1.latitude), math.radians(point1.longitude)
        lat2, lon2 = math.radians(point2.latitude), math.radians(point2.longitude)

        dlat = lat2 - lat1
        dlon = lon2 - lon1

        a = (math.sin(dlat / 2) ** 2 +
             math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return c * GeoLocationHelper.EARTH_RADIUS_M

    @staticmethod
    def get_bearing(start_point: GeoPoint, end_point: GeoPoint) -> float:
        """Forward azimuth from start point to end point, in degrees [0, 360)"""
        lat1, lon1 = math.radians(start_point.latitude), math.radians(start_point.longitude)
        lat2, lon2 = math.radians(end_point.latitude), math.radians(end_point.longitude)

        dlon = lon2 - lon1

        y = math.sin(dlon) * math.cos(lat2)
        x = (math.cos(lat1) * math.sin(lat2) -
             math.sin(lat1) * math.cos(lat2) * math.cos(dlon))

        return (math.degrees(math.atan2(y, x)) + 360) % 360

    @staticmethod
    def cardinal_direction(bearing: float) -> str:
        """8-point compass label for a bearing"""
        return COMPASS_POINTS[int(round(bearing / 45)) % 8]


class GeofenceState(str, Enum):
    WITHIN = "within"
    OUTSIDE = "outside"
    NOT_CONFIGURED = "not_configured"


@dataclass(frozen=True)
class GeofenceVerdict:
    """
    Result of a geofence evaluation.

    ``within_radius`` and ``distance_meters`` are None when the event
    has no geofence.
    """
    state: GeofenceState
    within_radius: Optional[bool]
    distance_meters: Optional[int]
    radius_meters: Optional[int] = None

    @property
    def is_configured(self) -> bool:
        return self.state != GeofenceState.NOT_CONFIGURED

    @property
    def is_outside(self) -> bool:
        return self.state == GeofenceState.OUTSIDE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "configured": self.is_configured,
            "is_within_geofence": self.within_radius,
            "distance_meters": self.distance_meters,
            "radius_meters": self.radius_meters,
        }


class GeofenceEvaluator:
    """
    Circular geofence containment.

    Pure computation; the default radius applies when an event has a
    center but no radius of its own.
    """

    def __init__(self, default_radius_m: int = 100):
        self.default_radius_m = default_radius_m

    @staticmethod
    def not_configured() -> GeofenceVerdict:
        return GeofenceVerdict(GeofenceState.NOT_CONFIGURED, None, None)

    def evaluate(
        self,
        observed_lat: float,
        observed_lon: float,
        center_lat: Optional[float],
        center_lon: Optional[float],
        radius_meters: Optional[int] = None,
    ) -> GeofenceVerdict:
        """
        Evaluate an observed position against a circular geofence.

        Args:
            observed_lat: Reported latitude
            observed_lon: Reported longitude
            center_lat: Geofence center latitude, None if not configured
            center_lon: Geofence center longitude, None if not configured
            radius_meters: Geofence radius; falls back to the default

        Returns:
            GeofenceVerdict with the distance rounded to the nearest meter
        """
        if center_lat is None or center_lon is None:
            return self.not_configured()

        radius = radius_meters if radius_meters is not None else self.default_radius_m
        distance = int(round(GeoLocationHelper.distance_meters(
            GeoPoint(float(observed_lat), float(observed_lon)),
            GeoPoint(float(center_lat), float(center_lon)),
        )))
        within = distance <= radius

        return GeofenceVerdict(
            GeofenceState.WITHIN if within else GeofenceState.OUTSIDE,
            within,
            distance,
            radius,
        )

    def evaluate_event(self, event, latitude: float, longitude: float) -> GeofenceVerdict:
        """Evaluate a position against an event's configured geofence"""
        if event is None:
            return self.not_configured()
        return self.evaluate(
            latitude,
            longitude,
            event.latitude,
            event.longitude,
            event.geofence_radius,
        )

    def guidance(self, latitude: float, longitude: float, center_lat: float, center_lon: float) -> Dict[str, Any]:
        """Bearing and compass direction from a position towards the center"""
        bearing = GeoLocationHelper.get_bearing(
            GeoPoint(float(latitude), float(longitude)),
            GeoPoint(float(center_lat), float(center_lon)),
        )
        return {
            "bearing": round(bearing, 1),
            "direction": GeoLocationHelper.cardinal_direction(bearing),
        }
