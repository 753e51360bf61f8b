"""Delivery zones API schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from zonemap.zones.models import LatLng, PolygonZone, RadiusZone, Zone


class ZoneCoordinate(BaseModel):
    """A point of a zone."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_latlng(self) -> LatLng:
        return LatLng(self.lat, self.lng)

    @classmethod
    def from_latlng(cls, point: LatLng) -> "ZoneCoordinate":
        return cls(lat=point.lat, lng=point.lng)


class CreateRadiusZoneRequest(BaseModel):
    """Request to create a circular zone. Omitted center/radius use the defaults."""
    name: str = "New area"
    center: Optional[ZoneCoordinate] = None
    radius_meters: Optional[float] = Field(None, gt=0)
    fee: float = Field(0.0, ge=0)
    eta_minutes: Optional[int] = Field(None, ge=0)
    enabled: bool = True
    priority: int = 0


class CreatePolygonZoneRequest(BaseModel):
    """Request to create a polygonal zone. Without a path, a square around the center is drawn."""
    name: str = "New polygon"
    path: Optional[List[ZoneCoordinate]] = Field(None, min_length=3)
    center: Optional[ZoneCoordinate] = None
    fee: float = Field(0.0, ge=0)
    eta_minutes: Optional[int] = Field(None, ge=0)
    enabled: bool = True
    priority: int = 0


class UpdateZoneRequest(BaseModel):
    """Partial update of a zone. Geometry fields must match the zone's type."""
    name: Optional[str] = None
    fee: Optional[float] = Field(None, ge=0)
    eta_minutes: Optional[int] = Field(None, ge=0)
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    center: Optional[ZoneCoordinate] = None
    radius_meters: Optional[float] = Field(None, gt=0)
    path: Optional[List[ZoneCoordinate]] = Field(None, min_length=3)


class SelectZoneRequest(BaseModel):
    """Zone to highlight on the map (null clears the selection)."""
    zone_id: Optional[str] = None


class ZoneResponse(BaseModel):
    """Delivery zone."""
    id: str
    name: str
    type: str
    fee: float
    eta_minutes: Optional[int] = None
    enabled: bool
    priority: int
    center: Optional[ZoneCoordinate] = None
    radius_meters: Optional[float] = None
    path: Optional[List[ZoneCoordinate]] = None

    @classmethod
    def from_zone(cls, zone: Zone) -> "ZoneResponse":
        response = cls(
            id=zone.id,
            name=zone.name,
            type=zone.kind.value,
            fee=zone.fee,
            eta_minutes=zone.eta_minutes,
            enabled=zone.enabled,
            priority=zone.priority,
        )
        if isinstance(zone, RadiusZone):
            response.center = _coordinate_or_none(zone.center)
            response.radius_meters = zone.radius_meters
        elif isinstance(zone, PolygonZone):
            response.path = [_coordinate(p) for p in zone.path]
            if zone.centroid is not None:
                response.center = _coordinate_or_none(zone.centroid)
        return response


class ZoneListResponse(BaseModel):
    """All zones in store order."""
    zones: List[ZoneResponse]
    count: int
    selected_zone_id: Optional[str] = None


class DeliveryQuoteResponse(BaseModel):
    """Zone pricing a delivery to a point."""
    position: ZoneCoordinate
    zone_id: str
    zone_name: str
    zone_type: str
    fee: float
    eta_minutes: Optional[int] = None
    distance_m: float


def _coordinate(point: LatLng) -> ZoneCoordinate:
    # Stored geometry may come from older records, skip range validation
    return ZoneCoordinate.model_construct(lat=point.lat, lng=point.lng)


def _coordinate_or_none(point: LatLng) -> Optional[ZoneCoordinate]:
    return _coordinate(point) if point.is_finite else None
