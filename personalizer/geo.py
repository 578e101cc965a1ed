"""Great-circle distances between (longitude, latitude) coordinates."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from personalizer.models import Coordinate

EARTH_RADIUS_KM = 6371.0


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance in kilometres between *a* and *b*.

    Full precision is returned; use :func:`display_distance_km` for display.
    Coordinates are not validated.
    """
    lon1, lat1 = a
    lon2, lat2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distances_km(origin: Coordinate, points: Sequence[Coordinate] | np.ndarray) -> np.ndarray:
    """Vectorised :func:`distance_km` from *origin* to each of *points*.

    Args:
        origin: ``(lon, lat)`` of the reference point.
        points: Sequence (or ``(n, 2)`` array) of ``(lon, lat)`` pairs.

    Returns:
        Float64 array of length ``n``.  Empty input gives an empty array.
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    if pts.size == 0:
        return np.zeros(0, dtype=np.float64)

    lon1, lat1 = np.radians(origin[0]), np.radians(origin[1])
    lon2 = np.radians(pts[:, 0])
    lat2 = np.radians(pts[:, 1])

    h = (
        np.sin((lat2 - lat1) / 2) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lon2 - lon1) / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def display_distance_km(distance: float) -> float:
    """Round a distance to one decimal place for display."""
    return round(distance, 1)
