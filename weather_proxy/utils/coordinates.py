"""Geographic coordinate predicates."""

import math

# Tolerance for treating a point as the (0, 0) placeholder
ORIGIN_TOLERANCE_DEGREES = 0.001


def is_valid_latitude(latitude: float) -> bool:
    """Return True if latitude is finite and within [-90, 90]."""
    return math.isfinite(latitude) and -90.0 <= latitude <= 90.0


def is_valid_longitude(longitude: float) -> bool:
    """Return True if longitude is finite and within [-180, 180]."""
    return math.isfinite(longitude) and -180.0 <= longitude <= 180.0


def are_valid_coordinates(latitude: float, longitude: float) -> bool:
    """Return True if both latitude and longitude are valid."""
    return is_valid_latitude(latitude) and is_valid_longitude(longitude)


def are_meaningful_coordinates(latitude: float, longitude: float, allow_origin: bool = False) -> bool:
    """Return True if coordinates are valid and not an uninitialised (0, 0) placeholder.

    Args:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        allow_origin: Accept points within ORIGIN_TOLERANCE_DEGREES of (0, 0)

    Returns:
        True if the coordinates can be treated as a real location
    """
    if not are_valid_coordinates(latitude, longitude):
        return False

    if not allow_origin and abs(latitude) < ORIGIN_TOLERANCE_DEGREES and abs(longitude) < ORIGIN_TOLERANCE_DEGREES:
        return False

    return True
