"""
Error taxonomy for the zone map engine.

Only WidgetUnavailable crosses the reconciler boundary. InvalidGeometry and
StaleCommit are raised and handled inside the engine (skip, discard, log).
"""

from typing import Optional


class ZoneMapError(Exception):
    """Base class for zone map errors."""
    pass


class WidgetUnavailable(ZoneMapError):
    """The external map widget failed to initialize or is not ready."""

    def __init__(self, message: str = "Map widget is not available", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class InvalidGeometry(ZoneMapError):
    """A zone's geometry fails the minimal validity check."""

    def __init__(self, zone_id: str, reason: str):
        super().__init__(f"Invalid geometry for zone {zone_id}: {reason}")
        self.zone_id = zone_id
        self.reason = reason


class StaleCommit(ZoneMapError):
    """A debounced commit fired for a zone that no longer has an overlay."""

    def __init__(self, zone_id: str):
        super().__init__(f"Discarding commit for removed zone {zone_id}")
        self.zone_id = zone_id


class ZoneNotFound(ZoneMapError):
    """Zone id is not present in the store."""

    def __init__(self, zone_id: str):
        super().__init__(f"Zone not found: {zone_id}")
        self.zone_id = zone_id


class DeliveryZoneError(ZoneMapError):
    """Delivery fee could not be resolved for a point."""
    pass


class NoActiveZones(DeliveryZoneError):
    """No enabled, renderable delivery zone is configured."""

    def __init__(self):
        super().__init__("No delivery zone configured")


class InvalidCoordinates(DeliveryZoneError):
    """The delivery point has no valid coordinates."""

    def __init__(self):
        super().__init__("Delivery address has no valid coordinates")


class OutOfDeliveryArea(DeliveryZoneError):
    """The point is not covered by any active zone."""

    def __init__(self):
        super().__init__("Address is outside every delivery zone")
