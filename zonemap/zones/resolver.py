"""
Delivery fee resolution.

Given the configured zones and a customer's coordinates, pick the zone that
prices the delivery.

Matching:
- POLYGON: point inside the polygon (boundary included)
- RADIUS: great circle distance to the center <= radius

Ordering of overlapping matches:
- two circles: smaller radius, then nearer center, then higher priority
- otherwise: higher priority, then polygon before circle, then smaller
  radius, then nearer center
"""

import functools
import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from shapely.geometry import Point, Polygon

from zonemap.errors import InvalidCoordinates, NoActiveZones, OutOfDeliveryArea
from .geometry import haversine_distance_m
from .models import LatLng, PolygonZone, RadiusZone, Zone, is_renderable

logger = logging.getLogger(__name__)


@dataclass
class DeliveryQuote:
    """Zone chosen for a delivery and the values it prices with."""
    zone: Zone
    fee: float
    eta_minutes: Optional[int]
    distance_m: float


@dataclass
class _Match:
    zone: Zone
    distance_m: float
    type_rank: int  # 0 = polygon, 1 = circle

    @property
    def radius(self) -> float:
        return self.zone.radius_meters if isinstance(self.zone, RadiusZone) else 0.0


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def _compare(a: _Match, b: _Match) -> int:
    if a.type_rank == 1 and b.type_rank == 1:
        if a.radius != b.radius:
            return _sign(a.radius - b.radius)
        if a.distance_m != b.distance_m:
            return _sign(a.distance_m - b.distance_m)
        return _sign(b.zone.priority - a.zone.priority)

    if a.zone.priority != b.zone.priority:
        return _sign(b.zone.priority - a.zone.priority)
    if a.type_rank != b.type_rank:
        return a.type_rank - b.type_rank
    if a.radius != b.radius:
        return _sign(a.radius - b.radius)
    return _sign(a.distance_m - b.distance_m)


def _to_shapely(path: List[LatLng]) -> Polygon:
    # shapely works in (x, y) = (lng, lat)
    return Polygon([(p.lng, p.lat) for p in path])


def polygon_covers(zone: PolygonZone, point: LatLng) -> bool:
    """True if the point is inside the polygon or on its boundary."""
    polygon = _to_shapely(zone.path)
    if not polygon.is_valid:
        polygon = polygon.buffer(0)
    return polygon.covers(Point(point.lng, point.lat))


def _match(zone: Zone, point: LatLng) -> Optional[_Match]:
    if isinstance(zone, PolygonZone):
        if not polygon_covers(zone, point):
            return None
        return _Match(zone=zone, distance_m=0.0, type_rank=0)

    distance = haversine_distance_m(zone.center, point)
    if distance > zone.radius_meters:
        return None
    return _Match(zone=zone, distance_m=distance, type_rank=1)


def resolve_delivery_zone(zones: Iterable[Zone], point: Optional[LatLng]) -> DeliveryQuote:
    """
    Find the zone that prices a delivery to a point.

    Raises:
        NoActiveZones: no enabled zone with valid geometry
        InvalidCoordinates: point missing or not finite
        OutOfDeliveryArea: no zone covers the point
    """
    active = [z for z in zones if z.enabled and is_renderable(z)]
    if not active:
        raise NoActiveZones()

    if point is None or not point.is_finite:
        raise InvalidCoordinates()
    if abs(point.lat) > 90 or abs(point.lng) > 180:
        raise InvalidCoordinates()

    matches = [m for m in (_match(z, point) for z in active) if m is not None]
    if not matches:
        raise OutOfDeliveryArea()

    matches.sort(key=functools.cmp_to_key(_compare))
    best = matches[0]

    fee = best.zone.fee if math.isfinite(best.zone.fee) else 0.0
    logger.debug(
        f"Delivery to ({point.lat:.6f}, {point.lng:.6f}) priced by zone "
        f"{best.zone.id} ({len(matches)} candidates)"
    )
    return DeliveryQuote(
        zone=best.zone,
        fee=fee,
        eta_minutes=best.zone.eta_minutes,
        distance_m=best.distance_m,
    )
