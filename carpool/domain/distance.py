"""
Great-circle distance between pool endpoints.

Pools carry coordinates picked on the client map; the API reports the
straight-line trip length so riders can compare fares.  No routing
engine is involved.
"""

from __future__ import annotations

import math
from typing import Protocol

EARTH_RADIUS_KM = 6_371.0


class Point(Protocol):
    latitude: float
    longitude: float


def trip_length_km(origin: Point, destination: Point) -> float:
    """Haversine distance between two points, in km."""
    phi1 = math.radians(origin.latitude)
    phi2 = math.radians(destination.latitude)
    half_dphi = (phi2 - phi1) / 2
    half_dlambda = math.radians(destination.longitude - origin.longitude) / 2

    h = math.sin(half_dphi) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(
        half_dlambda
    ) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))
