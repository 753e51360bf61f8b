"""
Delivery zone domain model.

A delivery zone is either a circle (RADIUS) or a polygon (POLYGON), each
carrying the attributes the storefront uses to quote delivery:
- fee: delivery fee charged inside the zone
- eta_minutes: estimated delivery time
- priority: tie breaker for overlapping zones
- enabled: disabled zones stay editable on the map but are never quoted

Zones are stored as camelCase records (the platform's document format):

    {"id": "zone_1a2b3c4d", "name": "Centro", "type": "RADIUS",
     "centerLat": -23.56, "centerLng": -46.65, "radiusMeters": 2000,
     "fee": 5.0, "etaMinutes": 30, "enabled": true, "priority": 0}

For polygons, centerLat/centerLng hold the vertex centroid.
"""

import dataclasses
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from zonemap.errors import InvalidGeometry

DEFAULT_RADIUS_M = 2000.0
DEFAULT_POLYGON_HALF_SIZE_DEG = 0.01


class ZoneKind(Enum):
    """Geometry variant of a delivery zone."""
    RADIUS = "RADIUS"
    POLYGON = "POLYGON"


@dataclass(frozen=True)
class LatLng:
    """A point in degrees."""
    lat: float
    lng: float

    @property
    def is_finite(self) -> bool:
        return math.isfinite(self.lat) and math.isfinite(self.lng)

    def to_dict(self) -> Dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LatLng":
        return cls(lat=float(data["lat"]), lng=float(data["lng"]))


@dataclass
class RadiusZone:
    """Circular delivery zone."""
    id: str
    name: str
    center: LatLng
    radius_meters: float
    fee: float = 0.0
    eta_minutes: Optional[int] = None
    enabled: bool = True
    priority: int = 0

    kind: ClassVar[ZoneKind] = ZoneKind.RADIUS


@dataclass
class PolygonZone:
    """Polygonal delivery zone. The path is an open ring of vertices."""
    id: str
    name: str
    path: List[LatLng] = field(default_factory=list)
    centroid: Optional[LatLng] = None
    fee: float = 0.0
    eta_minutes: Optional[int] = None
    enabled: bool = True
    priority: int = 0

    kind: ClassVar[ZoneKind] = ZoneKind.POLYGON


Zone = Union[RadiusZone, PolygonZone]

ZONE_CLASSES = {
    ZoneKind.RADIUS: RadiusZone,
    ZoneKind.POLYGON: PolygonZone,
}


def validate_geometry(zone: Zone) -> None:
    """
    Check that a zone can be drawn.

    Raises:
        InvalidGeometry: radius <= 0, non-finite center, or fewer than 3 vertices
        TypeError: for objects that are not zones
    """
    if isinstance(zone, RadiusZone):
        if not zone.center.is_finite:
            raise InvalidGeometry(zone.id, "center is not a finite coordinate")
        if not math.isfinite(zone.radius_meters) or zone.radius_meters <= 0:
            raise InvalidGeometry(zone.id, f"radius must be > 0, got {zone.radius_meters}")
    elif isinstance(zone, PolygonZone):
        if len(zone.path) < 3:
            raise InvalidGeometry(zone.id, f"polygon needs at least 3 points, got {len(zone.path)}")
        if not all(p.is_finite for p in zone.path):
            raise InvalidGeometry(zone.id, "polygon has non-finite vertices")
    else:
        raise TypeError(f"Not a delivery zone: {type(zone).__name__}")


def is_renderable(zone: Zone) -> bool:
    """True if the zone passes the minimal validity check."""
    try:
        validate_geometry(zone)
    except InvalidGeometry:
        return False
    return True


def zone_to_record(zone: Zone) -> Dict[str, Any]:
    """Convert a zone to its camelCase store record."""
    record: Dict[str, Any] = {
        "id": zone.id,
        "name": zone.name,
        "type": zone.kind.value,
        "fee": zone.fee,
        "etaMinutes": zone.eta_minutes,
        "enabled": zone.enabled,
        "priority": zone.priority,
    }

    if isinstance(zone, RadiusZone):
        record["centerLat"] = zone.center.lat
        record["centerLng"] = zone.center.lng
        record["radiusMeters"] = zone.radius_meters
    elif isinstance(zone, PolygonZone):
        record["polygonPath"] = [p.to_dict() for p in zone.path]
        if zone.centroid is not None:
            record["centerLat"] = zone.centroid.lat
            record["centerLng"] = zone.centroid.lng
    else:
        raise TypeError(f"Not a delivery zone: {type(zone).__name__}")

    return record


def zone_from_record(record: Mapping[str, Any]) -> Zone:
    """
    Create a zone from a store record.

    Records written before polygons existed have no "type" and are circles.

    Raises:
        ValueError: unknown type or missing id
    """
    if not record.get("id"):
        raise ValueError("Zone record has no id")

    kind = ZoneKind(record.get("type") or ZoneKind.RADIUS.value)
    eta = record.get("etaMinutes")
    common = dict(
        id=str(record["id"]),
        name=str(record.get("name") or ""),
        fee=float(record.get("fee") or 0.0),
        eta_minutes=int(eta) if eta is not None else None,
        enabled=record.get("enabled", True) is not False,
        priority=int(record.get("priority") or 0),
    )

    if kind is ZoneKind.POLYGON:
        path = [LatLng.from_dict(p) for p in record.get("polygonPath") or []]
        center = None
        if record.get("centerLat") is not None and record.get("centerLng") is not None:
            center = LatLng(float(record["centerLat"]), float(record["centerLng"]))
        return PolygonZone(path=path, centroid=center, **common)

    return RadiusZone(
        center=LatLng(
            float(record.get("centerLat", math.nan)),
            float(record.get("centerLng", math.nan)),
        ),
        radius_meters=float(record.get("radiusMeters") or 0.0),
        **common,
    )


def apply_changes(zone: Zone, changes: Mapping[str, Any]) -> Zone:
    """
    Return a copy of the zone with the given fields replaced.

    Raises:
        ValueError: if a field does not belong to the zone's variant
    """
    allowed = {f.name for f in dataclasses.fields(zone)}
    updates = {k: v for k, v in changes.items() if k not in ("id", "type", "kind")}
    unknown = set(updates) - allowed
    if unknown:
        raise ValueError(
            f"Fields {sorted(unknown)} do not apply to {zone.kind.value} zone {zone.id}"
        )
    return dataclasses.replace(zone, **updates)


def new_zone_id() -> str:
    """Generate an id for a zone created from the dashboard."""
    return f"zone_{uuid.uuid4().hex[:8]}"


def new_radius_zone(
    center: LatLng,
    radius_meters: float = DEFAULT_RADIUS_M,
    name: str = "New area",
    **attributes: Any,
) -> RadiusZone:
    """Zone created by the "create area" action."""
    return RadiusZone(
        id=attributes.pop("id", None) or new_zone_id(),
        name=name,
        center=center,
        radius_meters=radius_meters,
        **attributes,
    )


def new_polygon_zone(
    path: Optional[List[LatLng]] = None,
    center: Optional[LatLng] = None,
    name: str = "New polygon",
    **attributes: Any,
) -> PolygonZone:
    """
    Zone created by the "draw polygon" action.

    Without a drawn path, a square of DEFAULT_POLYGON_HALF_SIZE_DEG around
    the center is used.
    """
    from .geometry import centroid

    if path is None:
        if center is None:
            raise ValueError("new_polygon_zone needs a path or a center")
        d = DEFAULT_POLYGON_HALF_SIZE_DEG
        path = [
            LatLng(center.lat + d, center.lng - d),
            LatLng(center.lat + d, center.lng + d),
            LatLng(center.lat - d, center.lng + d),
            LatLng(center.lat - d, center.lng - d),
        ]

    return PolygonZone(
        id=attributes.pop("id", None) or new_zone_id(),
        name=name,
        path=list(path),
        centroid=centroid(path) if path else None,
        **attributes,
    )
