"""
Geographic helpers shared by the ranking pipeline and the route optimizer.
"""

from math import radians, sin, cos, sqrt, atan2
from typing import Sequence

import numpy as np

from models import Location


EARTH_RADIUS_M = 6_371_000


def distance_meters(a: Location, b: Location) -> float:
    """
    Great-circle distance between two points using the Haversine formula.

    Args:
        a, b: Locations in decimal degrees

    Returns:
        Distance in meters
    """
    lat1_rad = radians(a.latitude)
    lat2_rad = radians(b.latitude)
    delta_lat = radians(b.latitude - a.latitude)
    delta_lon = radians(b.longitude - a.longitude)

    h = sin(delta_lat / 2) ** 2 + cos(lat1_rad) * cos(lat2_rad) * sin(delta_lon / 2) ** 2
    c = 2 * atan2(sqrt(h), sqrt(1 - h))

    return EARTH_RADIUS_M * c


def is_within_radius(point: Location, center: Location, radius_meters: float) -> bool:
    return distance_meters(point, center) <= radius_meters


def format_distance(meters: float) -> str:
    """Render `750 m` below one kilometer, `1.2 km` from there on."""
    rounded = int(meters + 0.5)  # half up
    if rounded < 1000:
        return f"{rounded} m"
    return f"{meters / 1000:.1f} km"


def distance_matrix(points: Sequence[Location]) -> np.ndarray:
    """
    Pairwise Haversine distances (meters) for a list of locations.

    Row/column i corresponds to points[i]. The diagonal is zero.
    """
    if not points:
        return np.zeros((0, 0))

    lat = np.radians(np.array([p.latitude for p in points], dtype=float))
    lon = np.radians(np.array([p.longitude for p in points], dtype=float))

    dlat = lat[None, :] - lat[:, None]
    dlon = lon[None, :] - lon[:, None]

    h = np.sin(dlat / 2) ** 2 + np.cos(lat[:, None]) * np.cos(lat[None, :]) * np.sin(dlon / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))

    matrix = EARTH_RADIUS_M * c
    np.fill_diagonal(matrix, 0.0)
    return matrix
