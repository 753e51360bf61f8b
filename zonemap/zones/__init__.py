"""Delivery zone domain: model, geometry, store and fee resolution."""

from .models import (
    LatLng,
    PolygonZone,
    RadiusZone,
    Zone,
    ZoneKind,
    is_renderable,
    new_polygon_zone,
    new_radius_zone,
    validate_geometry,
    zone_from_record,
    zone_to_record,
)
from .store import InMemoryZoneStore, ZoneStore
from .resolver import DeliveryQuote, resolve_delivery_zone

__all__ = [
    'LatLng',
    'PolygonZone',
    'RadiusZone',
    'Zone',
    'ZoneKind',
    'is_renderable',
    'new_polygon_zone',
    'new_radius_zone',
    'validate_geometry',
    'zone_from_record',
    'zone_to_record',
    'InMemoryZoneStore',
    'ZoneStore',
    'DeliveryQuote',
    'resolve_delivery_zone',
]
