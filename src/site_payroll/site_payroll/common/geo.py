from __future__ import annotations

from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt
from numbers import Real
from typing import Any, Sequence

from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class GeoPoint:
    """A geographic fix, stored GeoJSON-style as [longitude, latitude]."""

    longitude: float
    latitude: float

    def as_coordinates(self) -> list[float]:
        return [self.longitude, self.latitude]


def parse_coordinates(value: Any) -> GeoPoint:
    """Validate a ``[longitude, latitude]`` pair."""
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)) or len(value) != 2:
        raise ValidationError("Coordinates must be [longitude, latitude]", coordinates=value)

    lng, lat = value
    if not all(isinstance(v, Real) and not isinstance(v, bool) for v in (lng, lat)):
        raise ValidationError("Coordinates must be numbers", coordinates=list(value))
    if not -180 <= lng <= 180 or not -90 <= lat <= 90:
        raise ValidationError("Coordinates out of range", coordinates=list(value))
    return GeoPoint(longitude=float(lng), latitude=float(lat))


def haversine_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points in meters."""
    lat1, lon1, lat2, lon2 = map(radians, [a.latitude, a.longitude, b.latitude, b.longitude])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))

    return EARTH_RADIUS_METERS * c
