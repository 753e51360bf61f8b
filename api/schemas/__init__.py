"""
zonemap API Pydantic schemas.

Re-exports all schema classes:
    from api.schemas import ZoneResponse, CreateRadiusZoneRequest, ...
"""

from .zones import (  # noqa: F401
    ZoneCoordinate,
    CreateRadiusZoneRequest,
    CreatePolygonZoneRequest,
    UpdateZoneRequest,
    SelectZoneRequest,
    ZoneResponse,
    ZoneListResponse,
    DeliveryQuoteResponse,
)
