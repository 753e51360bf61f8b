"""
Delivery zones API router.

Handles CRUD for delivery zones (circles and polygons), the zone selected
on the dashboard map, and delivery fee quotes for a point.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Query

from api.schemas.zones import (
    CreatePolygonZoneRequest,
    CreateRadiusZoneRequest,
    DeliveryQuoteResponse,
    SelectZoneRequest,
    UpdateZoneRequest,
    ZoneCoordinate,
    ZoneListResponse,
    ZoneResponse,
)
from api.state import get_app_state, get_zone_store
from zonemap.config import settings as engine_settings
from zonemap.errors import DeliveryZoneError, ZoneNotFound
from zonemap.zones.geometry import centroid
from zonemap.zones.models import (
    LatLng,
    PolygonZone,
    new_polygon_zone,
    new_radius_zone,
)
from zonemap.zones.resolver import resolve_delivery_zone

router = APIRouter(prefix="/api/zones", tags=["zones"])

logger = logging.getLogger(__name__)

# Attributes that cannot be cleared with an explicit null
_NON_NULLABLE = ("name", "fee", "enabled", "priority", "center", "radius_meters", "path")


def _default_center() -> LatLng:
    return LatLng(engine_settings.default_lat, engine_settings.default_lng)


def _persist() -> None:
    try:
        get_app_state().persist_zones()
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save zones: {e}")


@router.get("", response_model=ZoneListResponse)
async def list_zones():
    """Get all delivery zones in display order, with the selected zone."""
    store = get_zone_store()
    zones = [ZoneResponse.from_zone(z) for z in store.list_zones()]
    return ZoneListResponse(
        zones=zones,
        count=len(zones),
        selected_zone_id=store.selected_zone_id,
    )


@router.get("/resolve", response_model=DeliveryQuoteResponse)
async def resolve_delivery(
    lat: float = Query(...),
    lng: float = Query(...),
):
    """
    Quote a delivery to a point.

    Returns the zone pricing the delivery, its fee and ETA. Responds 400 when
    no zone is active, the coordinates are invalid, or the point is outside
    every zone.
    """
    store = get_zone_store()
    try:
        quote = resolve_delivery_zone(store.list_zones(), LatLng(lat, lng))
    except DeliveryZoneError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return DeliveryQuoteResponse(
        position=ZoneCoordinate(lat=lat, lng=lng),
        zone_id=quote.zone.id,
        zone_name=quote.zone.name,
        zone_type=quote.zone.kind.value,
        fee=quote.fee,
        eta_minutes=quote.eta_minutes,
        distance_m=round(quote.distance_m, 1),
    )


@router.put("/selection")
async def select_zone(request: SelectZoneRequest):
    """Highlight a zone on the map, or clear the highlight with a null id."""
    store = get_zone_store()
    try:
        store.select_zone(request.zone_id)
    except ZoneNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"selected_zone_id": store.selected_zone_id}


@router.get("/{zone_id}", response_model=ZoneResponse)
async def get_zone(zone_id: str):
    """Get a specific zone by ID."""
    zone = get_zone_store().get_zone(zone_id)
    if zone is None:
        raise HTTPException(status_code=404, detail=f"Zone not found: {zone_id}")
    return ZoneResponse.from_zone(zone)


@router.post("/radius", response_model=ZoneResponse, status_code=201)
async def create_radius_zone(request: CreateRadiusZoneRequest):
    """
    Create a circular zone.

    Center and radius default to the dashboard's default area.
    """
    zone = new_radius_zone(
        center=request.center.to_latlng() if request.center else _default_center(),
        radius_meters=request.radius_meters or engine_settings.default_radius_m,
        name=request.name,
        fee=request.fee,
        eta_minutes=request.eta_minutes,
        enabled=request.enabled,
        priority=request.priority,
    )
    get_zone_store().upsert_zone(zone)
    _persist()

    logger.info(f"Radius zone created: {zone.id} ({zone.radius_meters:.0f} m)")
    return ZoneResponse.from_zone(zone)


@router.post("/polygon", response_model=ZoneResponse, status_code=201)
async def create_polygon_zone(request: CreatePolygonZoneRequest):
    """
    Create a polygonal zone.

    Path vertices form an open ring. Without a path, a square around the
    center (or the default center) is created for the user to reshape.
    """
    path = [c.to_latlng() for c in request.path] if request.path else None
    zone = new_polygon_zone(
        path=path,
        center=request.center.to_latlng() if request.center else _default_center(),
        name=request.name,
        fee=request.fee,
        eta_minutes=request.eta_minutes,
        enabled=request.enabled,
        priority=request.priority,
    )
    get_zone_store().upsert_zone(zone)
    _persist()

    logger.info(f"Polygon zone created: {zone.id} ({len(zone.path)} vertices)")
    return ZoneResponse.from_zone(zone)


@router.patch("/{zone_id}", response_model=ZoneResponse)
async def update_zone(zone_id: str, request: UpdateZoneRequest):
    """
    Update zone attributes or geometry.

    Only the fields present in the body change. center/radius_meters apply to
    circles, path to polygons (the centroid is recomputed).
    """
    store = get_zone_store()
    zone = store.get_zone(zone_id)
    if zone is None:
        raise HTTPException(status_code=404, detail=f"Zone not found: {zone_id}")

    fields = request.model_dump(exclude_unset=True)
    for name in _NON_NULLABLE:
        if name in fields and fields[name] is None:
            raise HTTPException(status_code=400, detail=f"{name} cannot be null")

    patch: Dict[str, Any] = {"id": zone_id}
    for name in ("name", "fee", "eta_minutes", "enabled", "priority", "radius_meters"):
        if name in fields:
            patch[name] = fields[name]
    if request.center is not None:
        patch["center"] = request.center.to_latlng()
    if request.path is not None:
        path = [c.to_latlng() for c in request.path]
        patch["path"] = path
        if isinstance(zone, PolygonZone):
            patch["centroid"] = centroid(path)

    try:
        updated = store.upsert_zone(patch)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _persist()

    logger.info(f"Zone updated: {zone_id} ({', '.join(sorted(set(patch) - {'id'}))})")
    return ZoneResponse.from_zone(updated)


@router.delete("/{zone_id}")
async def delete_zone(zone_id: str):
    """Delete a zone. Deleting the selected zone clears the selection."""
    try:
        get_zone_store().delete_zone(zone_id)
    except ZoneNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    _persist()

    return {"status": "deleted", "zone_id": zone_id}
