"""
Geometry helpers for delivery zones.

Pure functions over (lat, lng) points in degrees:
- meters to degree deltas (equirectangular approximation)
- tolerance comparison of points and paths
- vertex centroid
- bounding box accumulation for viewport fitting
- great circle distance

No I/O and no state, so every helper can be tested in isolation.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import LatLng

# Meters per degree of latitude (and of longitude at the equator)
METERS_PER_DEGREE = 111320.0

# Tolerances used to decide whether a push to the widget is needed
DEGREE_EPSILON = 1e-6
RADIUS_EPSILON_M = 0.5

# Smallest cosine accepted when converting meters to longitude degrees
MIN_COS_LAT = 1e-6

EARTH_RADIUS_M = 6371000.0


def meters_to_lat_delta(meters: float) -> float:
    """Latitude span in degrees covered by a distance in meters."""
    return meters / METERS_PER_DEGREE


def meters_to_lng_delta(meters: float, lat: float) -> float:
    """
    Longitude span in degrees covered by a distance in meters at a latitude.

    The cosine is clamped near the poles, and the result never exceeds 180°.
    """
    cos_lat = abs(math.cos(math.radians(lat)))
    cos_lat = max(cos_lat, MIN_COS_LAT)
    return min(meters / (METERS_PER_DEGREE * cos_lat), 180.0)


def points_approx_equal(a: LatLng, b: LatLng, eps: float = DEGREE_EPSILON) -> bool:
    """True if both coordinates differ by no more than eps degrees."""
    return abs(a.lat - b.lat) <= eps and abs(a.lng - b.lng) <= eps


def path_approx_equal(
    path_a: Sequence[LatLng],
    path_b: Sequence[LatLng],
    eps: float = DEGREE_EPSILON,
) -> bool:
    """True if both paths have the same length and pairwise equal vertices."""
    if len(path_a) != len(path_b):
        return False
    return all(points_approx_equal(a, b, eps) for a, b in zip(path_a, path_b))


def centroid(path: Sequence[LatLng]) -> LatLng:
    """
    Arithmetic mean of the vertices (not the area centroid).

    Raises:
        ValueError: if the path is empty
    """
    if not path:
        raise ValueError("Cannot compute centroid of an empty path")
    n = len(path)
    return LatLng(
        lat=sum(p.lat for p in path) / n,
        lng=sum(p.lng for p in path) / n,
    )


def circle_corners(center: LatLng, radius_meters: float) -> List[LatLng]:
    """Corners of the box that encloses a circle."""
    lat_delta = meters_to_lat_delta(radius_meters)
    lng_delta = meters_to_lng_delta(radius_meters, center.lat)
    return [
        LatLng(center.lat + lat_delta, center.lng + lng_delta),
        LatLng(center.lat + lat_delta, center.lng - lng_delta),
        LatLng(center.lat - lat_delta, center.lng + lng_delta),
        LatLng(center.lat - lat_delta, center.lng - lng_delta),
    ]


def haversine_distance_m(a: LatLng, b: LatLng) -> float:
    """Great circle distance between two points in meters."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)

    h = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2)
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


@dataclass
class Bounds:
    """Mutable south-west / north-east accumulator."""
    south: float = math.inf
    west: float = math.inf
    north: float = -math.inf
    east: float = -math.inf

    @property
    def is_empty(self) -> bool:
        return self.south > self.north

    def extend(self, point: LatLng) -> "Bounds":
        self.south = min(self.south, point.lat)
        self.north = max(self.north, point.lat)
        self.west = min(self.west, point.lng)
        self.east = max(self.east, point.lng)
        return self

    def extend_all(self, points: Iterable[LatLng]) -> "Bounds":
        for point in points:
            self.extend(point)
        return self

    @property
    def center(self) -> Optional[LatLng]:
        if self.is_empty:
            return None
        return LatLng((self.south + self.north) / 2, (self.west + self.east) / 2)

    def corners(self) -> Tuple[LatLng, LatLng]:
        """(south_west, north_east)"""
        return LatLng(self.south, self.west), LatLng(self.north, self.east)

    def to_dict(self) -> Dict[str, float]:
        return {
            "south": self.south,
            "west": self.west,
            "north": self.north,
            "east": self.east,
        }
