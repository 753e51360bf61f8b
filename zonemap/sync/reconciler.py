"""
Zone overlay reconciler.

Makes the overlays on the map match the zones in the store:

1. overlays whose zone disappeared are detached and forgotten
2. renderable zones without an overlay get one (invalid zones are skipped)
3. existing overlays are restyled or have their geometry pushed only when
   they differ from the domain beyond the tolerances

Pushing a geometry the widget already shows is a no-op, which is what keeps
widget echoes from looping back into the store. Pushes that do happen run
under the registry guard.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from zonemap.errors import InvalidGeometry, WidgetUnavailable
from zonemap.metrics import PerformanceMetrics, get_metrics
from zonemap.zones.geometry import (
    DEGREE_EPSILON,
    RADIUS_EPSILON_M,
    path_approx_equal,
    points_approx_equal,
)
from zonemap.zones.models import PolygonZone, RadiusZone, Zone, validate_geometry
from .debouncer import EditDebouncer
from .registry import OverlayEntry, OverlayRegistry
from .widget import MapWidget, OverlayStyle

logger = logging.getLogger(__name__)


class ReconcilerState(Enum):
    """Whether the reconciler may write to the widget."""
    IDLE = "idle"
    READY = "ready"
    UNAVAILABLE = "unavailable"


@dataclass
class ZonePalette:
    """Colours of selected and unselected overlays."""
    color: str = "#2563eb"
    selected_color: str = "#f97316"
    fill_opacity: float = 0.15
    editable: bool = True

    def style_for(self, selected: bool) -> OverlayStyle:
        color = self.selected_color if selected else self.color
        return OverlayStyle(
            stroke_color=color,
            fill_color=color,
            fill_opacity=self.fill_opacity,
            stroke_weight=3 if selected else 2,
            editable=self.editable,
            draggable=self.editable,
        )


@dataclass
class ReconcileReport:
    """What a reconciliation pass changed."""
    created: List[str] = field(default_factory=list)
    destroyed: List[str] = field(default_factory=list)
    restyled: List[str] = field(default_factory=list)
    pushed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    writes: int = 0

    @property
    def changed(self) -> bool:
        return self.writes > 0


class Reconciler:
    """
    Diffs the zone list against the overlay registry.

    Args:
        registry: overlays, timers and guards
        debouncer: receives the listeners of created overlays
        palette: overlay colours
        degree_epsilon: tolerance for centers and vertices, in degrees
        radius_epsilon_m: tolerance for radii, in meters
    """

    def __init__(
        self,
        registry: OverlayRegistry,
        debouncer: EditDebouncer,
        palette: Optional[ZonePalette] = None,
        degree_epsilon: float = DEGREE_EPSILON,
        radius_epsilon_m: float = RADIUS_EPSILON_M,
        metrics: Optional[PerformanceMetrics] = None,
    ):
        self.registry = registry
        self.debouncer = debouncer
        self.palette = palette or ZonePalette()
        self.degree_epsilon = degree_epsilon
        self.radius_epsilon_m = radius_epsilon_m
        self.metrics = metrics or get_metrics()

        self.state = ReconcilerState.IDLE
        self.last_error: Optional[WidgetUnavailable] = None

    def reconcile(
        self,
        zones: Sequence[Zone],
        widget: Optional[MapWidget],
        selected_id: Optional[str] = None,
    ) -> ReconcileReport:
        """
        Bring the registry and the widget in line with the zones.

        Raises:
            WidgetUnavailable: widget missing, not ready, or failing to build
                overlays. No further writes happen in this pass.
        """
        if widget is None or not widget.is_ready():
            self._fail(WidgetUnavailable("Map widget is not ready"))

        report = ReconcileReport()
        with self.metrics.timer("zone_reconcile"):
            try:
                self._reconcile(zones, widget, selected_id, report)
            except WidgetUnavailable as e:
                self._fail(e)

        self.state = ReconcilerState.READY
        self.last_error = None
        self.metrics.increment("overlay_writes", report.writes)
        self.metrics.set_gauge("overlays_live", len(self.registry))

        if report.changed:
            logger.debug(
                f"Reconciled {len(zones)} zones: created={len(report.created)} "
                f"destroyed={len(report.destroyed)} restyled={len(report.restyled)} "
                f"pushed={len(report.pushed)} skipped={len(report.skipped)}"
            )
        return report

    def _fail(self, error: WidgetUnavailable) -> None:
        self.state = ReconcilerState.UNAVAILABLE
        self.last_error = error
        logger.error(f"Zone map unavailable: {error}")
        raise error

    def _reconcile(self, zones: Sequence[Zone], widget: MapWidget,
                   selected_id: Optional[str], report: ReconcileReport) -> None:
        active_ids = {zone.id for zone in zones}

        for zone_id in self.registry.ids():
            if zone_id not in active_ids:
                self._destroy(zone_id, report)

        seen = set()
        for zone in zones:
            if zone.id in seen:
                logger.warning(f"Duplicate zone id {zone.id}, keeping the first one")
                continue
            seen.add(zone.id)

            try:
                validate_geometry(zone)
            except InvalidGeometry as e:
                if zone.id in self.registry:
                    self._destroy(zone.id, report)
                self.metrics.increment("invalid_zones_skipped")
                report.skipped.append(zone.id)
                logger.warning(f"Not drawing zone: {e}")
                continue

            style = self.palette.style_for(zone.id == selected_id)
            entry = self.registry.get(zone.id)

            if entry is not None and entry.kind is not zone.kind:
                self._destroy(zone.id, report)
                entry = None

            if entry is None:
                self._create(zone, widget, style, report)
            else:
                self._update(entry, zone, style, report)

    def _destroy(self, zone_id: str, report: ReconcileReport) -> None:
        if self.registry.destroy(zone_id):
            report.destroyed.append(zone_id)
            report.writes += 1

    def _create(self, zone: Zone, widget: MapWidget, style: OverlayStyle,
                report: ReconcileReport) -> None:
        try:
            if isinstance(zone, RadiusZone):
                handle = widget.create_circle(zone.center, zone.radius_meters, style)
            else:
                handle = widget.create_polygon(list(zone.path), style)
            handle.set_map(widget)
        except WidgetUnavailable:
            raise
        except Exception as e:
            self.metrics.increment("invalid_zones_skipped")
            report.skipped.append(zone.id)
            logger.error(f"Could not draw zone {zone.id}: {e}", exc_info=True)
            return

        # Listeners go on after set_map so attaching cannot trigger a commit
        listeners = self.debouncer.bind(zone.id, zone.kind, handle)
        self.registry.create(zone.id, zone.kind, handle, style, listeners)
        report.created.append(zone.id)
        report.writes += 1

    def _update(self, entry: OverlayEntry, zone: Zone, style: OverlayStyle,
                report: ReconcileReport) -> None:
        if entry.style != style:
            entry.handle.set_options(style)
            entry.style = style
            report.restyled.append(zone.id)
            report.writes += 1

        # A map edit waiting to be committed is newer than the stored geometry
        if self.registry.has_pending_timer(zone.id):
            logger.debug(f"Zone {zone.id} has an uncommitted map edit, not pushing geometry")
            return

        if isinstance(zone, RadiusZone):
            writes = self._push_circle(entry, zone)
        elif isinstance(zone, PolygonZone):
            writes = self._push_polygon(entry, zone)
        else:
            raise TypeError(f"Not a delivery zone: {type(zone).__name__}")

        if writes:
            report.pushed.append(zone.id)
            report.writes += writes

    def _push_circle(self, entry: OverlayEntry, zone: RadiusZone) -> int:
        handle = entry.handle
        center_ok = points_approx_equal(handle.get_center(), zone.center, self.degree_epsilon)
        radius_ok = abs(handle.get_radius() - zone.radius_meters) <= self.radius_epsilon_m
        if center_ok and radius_ok:
            return 0

        writes = 0
        with self.registry.guarded(zone.id):
            if not center_ok:
                handle.set_center(zone.center)
                writes += 1
            if not radius_ok:
                handle.set_radius(zone.radius_meters)
                writes += 1
        return writes

    def _push_polygon(self, entry: OverlayEntry, zone: PolygonZone) -> int:
        handle = entry.handle
        if path_approx_equal(handle.get_path(), zone.path, self.degree_epsilon):
            return 0

        with self.registry.guarded(zone.id):
            handle.set_path(list(zone.path))
        return 1
