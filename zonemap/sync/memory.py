"""
Headless map widget.

InMemoryMapWidget implements the widget adapter without drawing anything.
It keeps overlay geometry in memory, records every mutating call made on
its overlays, and can simulate the user dragging shapes around. Like
browser map widgets, it echoes change events when geometry is set
programmatically; the echo can be synchronous, deferred to a scheduler, or
disabled.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from zonemap.errors import WidgetUnavailable
from zonemap.zones.geometry import Bounds
from zonemap.zones.models import LatLng
from .scheduler import Scheduler
from .widget import EventCallback, OverlayEvent, OverlayStyle

logger = logging.getLogger(__name__)

ECHO_SYNC = "sync"
ECHO_ASYNC = "async"
ECHO_NONE = "none"


class MemoryListener:
    """Registration of a callback on a memory overlay."""

    def __init__(self, event: OverlayEvent, callback: EventCallback):
        self.event = event
        self.callback = callback
        self.removed = False

    def remove(self) -> None:
        self.removed = True


class MemoryOverlay:
    """Common state of in-memory circles and polygons."""

    def __init__(self, widget: "InMemoryMapWidget", style: OverlayStyle):
        self._widget = widget
        self.style = style
        self.map: Optional["InMemoryMapWidget"] = None
        self.writes: List[str] = []
        self._listeners: Dict[OverlayEvent, List[MemoryListener]] = defaultdict(list)

    @property
    def is_attached(self) -> bool:
        return self.map is not None

    def set_map(self, widget: Optional["InMemoryMapWidget"]) -> None:
        self.writes.append("set_map")
        self.map = widget

    def set_options(self, style: OverlayStyle) -> None:
        self.writes.append("set_options")
        self.style = style

    def add_listener(self, event: OverlayEvent, callback: EventCallback) -> MemoryListener:
        listener = MemoryListener(event, callback)
        self._listeners[event].append(listener)
        return listener

    def listener_count(self) -> int:
        return sum(
            1 for listeners in self._listeners.values()
            for listener in listeners if not listener.removed
        )

    def emit(self, event: OverlayEvent) -> None:
        """Deliver an event to every live listener."""
        for listener in list(self._listeners[event]):
            if not listener.removed:
                listener.callback()

    def _echo(self, *events: OverlayEvent) -> None:
        mode = self._widget.echo
        if mode == ECHO_NONE:
            return
        for event in events:
            if mode == ECHO_ASYNC:
                self._widget.scheduler.call_soon(self.emit, event)
            else:
                self.emit(event)

    def click(self) -> None:
        self.emit(OverlayEvent.CLICK)


class MemoryCircle(MemoryOverlay):
    """In-memory circle overlay."""

    def __init__(self, widget: "InMemoryMapWidget", center: LatLng, radius_meters: float,
                 style: OverlayStyle):
        super().__init__(widget, style)
        self.center = center
        self.radius = radius_meters

    def get_center(self) -> LatLng:
        return self.center

    def get_radius(self) -> float:
        return self.radius

    def set_center(self, center: LatLng) -> None:
        self.writes.append("set_center")
        self.center = center
        self._echo(OverlayEvent.CENTER_CHANGED)

    def set_radius(self, radius_meters: float) -> None:
        self.writes.append("set_radius")
        self.radius = radius_meters
        self._echo(OverlayEvent.RADIUS_CHANGED)

    # User interaction

    def drag_center(self, center: LatLng) -> None:
        self.center = center
        self.emit(OverlayEvent.CENTER_CHANGED)
        self.emit(OverlayEvent.DRAGEND)

    def drag_radius(self, radius_meters: float) -> None:
        self.radius = radius_meters
        self.emit(OverlayEvent.RADIUS_CHANGED)


class MemoryPolygon(MemoryOverlay):
    """In-memory polygon overlay."""

    def __init__(self, widget: "InMemoryMapWidget", path: List[LatLng], style: OverlayStyle):
        super().__init__(widget, style)
        self.path = list(path)

    def get_path(self) -> List[LatLng]:
        return list(self.path)

    def set_path(self, path: List[LatLng]) -> None:
        self.writes.append("set_path")
        self.path = list(path)
        self._echo(OverlayEvent.SET_AT)

    # User interaction

    def move_vertex(self, index: int, point: LatLng) -> None:
        self.path[index] = point
        self.emit(OverlayEvent.SET_AT)

    def insert_vertex(self, index: int, point: LatLng) -> None:
        self.path.insert(index, point)
        self.emit(OverlayEvent.INSERT_AT)

    def remove_vertex(self, index: int) -> None:
        del self.path[index]
        self.emit(OverlayEvent.REMOVE_AT)

    def drag_by(self, dlat: float, dlng: float) -> None:
        self.path = [LatLng(p.lat + dlat, p.lng + dlng) for p in self.path]
        for _ in self.path:
            self.emit(OverlayEvent.SET_AT)
        self.emit(OverlayEvent.DRAGEND)


class InMemoryMapWidget:
    """
    Map widget that keeps everything in memory.

    Args:
        ready: whether the widget reports itself loaded
        echo: "sync", "async" (needs scheduler) or "none"
        scheduler: used to deliver async echoes
    """

    def __init__(self, ready: bool = True, echo: str = ECHO_SYNC,
                 scheduler: Optional[Scheduler] = None):
        if echo not in (ECHO_SYNC, ECHO_ASYNC, ECHO_NONE):
            raise ValueError(f"Unknown echo mode: {echo}")
        if echo == ECHO_ASYNC and scheduler is None:
            raise ValueError("Async echo needs a scheduler")

        self.ready = ready
        self.echo = echo
        self.scheduler = scheduler
        self.overlays: List[MemoryOverlay] = []
        self.fitted_bounds: List[Bounds] = []

    def is_ready(self) -> bool:
        return self.ready

    def _check_ready(self) -> None:
        if not self.ready:
            raise WidgetUnavailable("Map library not loaded")

    def create_circle(self, center: LatLng, radius_meters: float, style: OverlayStyle) -> MemoryCircle:
        self._check_ready()
        circle = MemoryCircle(self, center, radius_meters, style)
        self.overlays.append(circle)
        return circle

    def create_polygon(self, path: List[LatLng], style: OverlayStyle) -> MemoryPolygon:
        self._check_ready()
        polygon = MemoryPolygon(self, path, style)
        self.overlays.append(polygon)
        return polygon

    def fit_bounds(self, bounds: Bounds) -> None:
        self.fitted_bounds.append(bounds)

    @property
    def visible_overlays(self) -> List[MemoryOverlay]:
        """Overlays currently attached to this widget."""
        return [o for o in self.overlays if o.map is self]

    def total_writes(self) -> int:
        return sum(len(o.writes) for o in self.overlays)
