"""
Map widget adapter.

The engine talks to the map only through these protocols, so any mapping
library (or a headless fake) that can draw circles and polygons, report
their geometry and emit change events can be plugged in.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

from zonemap.zones.geometry import Bounds
from zonemap.zones.models import LatLng


class OverlayEvent(Enum):
    """Events emitted by overlay handles."""
    CENTER_CHANGED = "center_changed"
    RADIUS_CHANGED = "radius_changed"
    INSERT_AT = "insert_at"
    REMOVE_AT = "remove_at"
    SET_AT = "set_at"
    DRAGEND = "dragend"
    CLICK = "click"


CIRCLE_EDIT_EVENTS = (
    OverlayEvent.CENTER_CHANGED,
    OverlayEvent.RADIUS_CHANGED,
    OverlayEvent.DRAGEND,
)

POLYGON_EDIT_EVENTS = (
    OverlayEvent.INSERT_AT,
    OverlayEvent.REMOVE_AT,
    OverlayEvent.SET_AT,
    OverlayEvent.DRAGEND,
)


@dataclass(frozen=True)
class OverlayStyle:
    """Visual options applied to an overlay."""
    stroke_color: str
    fill_color: str
    fill_opacity: float = 0.15
    stroke_weight: int = 2
    editable: bool = True
    draggable: bool = True


EventCallback = Callable[[], Any]


class ListenerHandle(Protocol):
    def remove(self) -> None:
        ...


class OverlayHandle(Protocol):
    """Capabilities shared by circle and polygon overlays."""

    def set_map(self, widget: Optional["MapWidget"]) -> None:
        ...

    def set_options(self, style: OverlayStyle) -> None:
        ...

    def add_listener(self, event: OverlayEvent, callback: EventCallback) -> ListenerHandle:
        ...


class CircleHandle(OverlayHandle, Protocol):
    def get_center(self) -> LatLng:
        ...

    def get_radius(self) -> float:
        ...

    def set_center(self, center: LatLng) -> None:
        ...

    def set_radius(self, radius_meters: float) -> None:
        ...


class PolygonHandle(OverlayHandle, Protocol):
    def get_path(self) -> List[LatLng]:
        ...

    def set_path(self, path: List[LatLng]) -> None:
        ...


class MapWidget(Protocol):
    """The interactive map the overlays are drawn on."""

    def is_ready(self) -> bool:
        ...

    def create_circle(self, center: LatLng, radius_meters: float, style: OverlayStyle) -> CircleHandle:
        ...

    def create_polygon(self, path: List[LatLng], style: OverlayStyle) -> PolygonHandle:
        ...

    def fit_bounds(self, bounds: Bounds) -> None:
        ...


WidgetLoader = Callable[[], MapWidget]
