"""
Viewport fitting.

Frames the map around the zones whenever the set of zone ids changes.
Geometry edits alone (same ids, same order) never move the viewport, so
dragging a shape does not make the map jump.
"""

import logging
from typing import Optional, Sequence

from zonemap.zones.geometry import Bounds, circle_corners
from zonemap.zones.models import PolygonZone, RadiusZone, Zone, is_renderable
from .widget import MapWidget

logger = logging.getLogger(__name__)


def zones_fingerprint(zones: Sequence[Zone]) -> str:
    return ",".join(zone.id for zone in zones)


def zones_bounds(zones: Sequence[Zone]) -> Bounds:
    """Box enclosing every renderable zone. Empty if there is none."""
    bounds = Bounds()
    for zone in zones:
        if not is_renderable(zone):
            continue
        if isinstance(zone, RadiusZone):
            bounds.extend_all(circle_corners(zone.center, zone.radius_meters))
        elif isinstance(zone, PolygonZone):
            bounds.extend_all(zone.path)
    return bounds


class ViewportFitter:
    """Remembers which zone set the viewport was last fitted to."""

    def __init__(self):
        self._fingerprint: Optional[str] = None

    @property
    def fingerprint(self) -> Optional[str]:
        return self._fingerprint

    def fit(self, zones: Sequence[Zone], widget: MapWidget) -> Optional[Bounds]:
        """
        Fit the widget to the zones if their ids changed since the last fit.

        Returns:
            The bounds passed to the widget, or None if the viewport was left alone
        """
        fingerprint = zones_fingerprint(zones)
        if fingerprint == self._fingerprint:
            return None
        self._fingerprint = fingerprint

        if not zones:
            return None

        bounds = zones_bounds(zones)
        if bounds.is_empty:
            logger.debug("No drawable zones, viewport left alone")
            return None

        widget.fit_bounds(bounds)
        logger.debug(f"Viewport fitted to {len(zones)} zones: {bounds.to_dict()}")
        return bounds

    def reset(self) -> None:
        """Forget the last fit, e.g. after the widget was replaced."""
        self._fingerprint = None
