"""Coordinate validation shared by fixes and status-change locations."""

import math

from supplytrack.errors import InvalidCoordinates


def validate_coordinates(latitude, longitude):
    """Return (lat, lng) as floats or raise InvalidCoordinates."""
    if isinstance(latitude, bool) or isinstance(longitude, bool):
        raise InvalidCoordinates()
    try:
        lat, lng = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinates()
    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidCoordinates()
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
        raise InvalidCoordinates()
    return lat, lng
