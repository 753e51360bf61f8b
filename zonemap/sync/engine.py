"""
Zone map engine.

Wires the store, the overlay registry, the reconciler, the edit debouncer
and the viewport fitter to one map widget:

    engine = ZoneMapEngine(store, AsyncioScheduler())
    engine.mount(load_widget)      # draws the zones, fits the viewport
    ...                            # store changes and map edits flow both ways
    engine.unmount()               # detaches everything

Store changes trigger a synchronous refresh (reconcile, then fit). Map edits
reach the store through the debouncer, whose commits trigger a refresh that
finds nothing to push.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from zonemap.config import Settings, get_settings
from zonemap.errors import WidgetUnavailable, ZoneNotFound
from zonemap.metrics import PerformanceMetrics, get_metrics
from zonemap.zones.geometry import Bounds
from zonemap.zones.store import ZoneStore
from .debouncer import EditDebouncer
from .reconciler import ReconcileReport, Reconciler, ZonePalette
from .registry import OverlayRegistry
from .scheduler import Scheduler
from .viewport import ViewportFitter
from .widget import MapWidget, WidgetLoader

logger = logging.getLogger(__name__)

UNAVAILABLE_PLACEHOLDER = "Map unavailable. Delivery zones can still be edited in the list."


class EngineStatus(Enum):
    UNMOUNTED = "unmounted"
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"


class ZoneMapEngine:
    """
    Two-way synchronization between a zone store and a map widget.

    Args:
        store: source of truth for zones and the selection
        scheduler: deferred tasks (debounce timers, guard releases)
        settings: engine settings, defaults to the environment settings
        on_zone_click: called with the zone id when an overlay is clicked;
            defaults to selecting the zone in the store
    """

    def __init__(
        self,
        store: ZoneStore,
        scheduler: Scheduler,
        settings: Optional[Settings] = None,
        metrics: Optional[PerformanceMetrics] = None,
        on_zone_click: Optional[Callable[[str], None]] = None,
    ):
        self.store = store
        self.scheduler = scheduler
        self.settings = settings or get_settings()
        self.metrics = metrics or get_metrics()

        self.registry = OverlayRegistry(scheduler)
        self.debouncer = EditDebouncer(
            self.registry,
            store,
            quiet_interval=self.settings.quiet_interval,
            on_click=on_zone_click or self._select_zone,
            metrics=self.metrics,
        )
        self.reconciler = Reconciler(
            self.registry,
            self.debouncer,
            palette=ZonePalette(
                color=self.settings.zone_color,
                selected_color=self.settings.selected_zone_color,
                fill_opacity=self.settings.fill_opacity,
                editable=self.settings.overlays_editable,
            ),
            degree_epsilon=self.settings.degree_epsilon,
            radius_epsilon_m=self.settings.radius_epsilon_m,
            metrics=self.metrics,
        )
        self.viewport = ViewportFitter()

        self.status = EngineStatus.UNMOUNTED
        self.placeholder_text: Optional[str] = None
        self.last_fit: Optional[Bounds] = None
        self._widget: Optional[MapWidget] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def widget(self) -> Optional[MapWidget]:
        return self._widget

    @property
    def is_mounted(self) -> bool:
        return self._unsubscribe is not None

    def mount(self, widget_loader: WidgetLoader) -> ReconcileReport:
        """
        Load the widget, draw the current zones and start following the store.

        Raises:
            WidgetUnavailable: the widget could not be loaded or is not ready.
                The engine shows the placeholder and keeps no overlays.
        """
        if self.is_mounted:
            self.unmount()

        self.status = EngineStatus.LOADING
        try:
            widget = widget_loader()
        except WidgetUnavailable as e:
            self._set_unavailable(e)
            raise
        except Exception as e:
            error = WidgetUnavailable(f"Map widget failed to load: {e}", cause=e)
            self._set_unavailable(error)
            raise error from e

        self._widget = widget
        self.viewport.reset()
        try:
            report = self.refresh()
        except WidgetUnavailable:
            self._widget = None
            raise

        self._unsubscribe = self.store.subscribe(self._on_store_change)
        logger.info(f"Zone map mounted with {len(self.registry)} overlays")
        return report

    def refresh(self) -> ReconcileReport:
        """
        Reconcile the overlays with the store and fit the viewport.

        Raises:
            WidgetUnavailable: no ready widget
        """
        zones = self.store.list_zones()
        try:
            report = self.reconciler.reconcile(zones, self._widget, self.store.selected_zone_id)
        except WidgetUnavailable as e:
            # The placeholder replaces the map, no overlay may stay attached
            self.registry.clear()
            self.viewport.reset()
            self.last_fit = None
            self.metrics.set_gauge("overlays_live", 0)
            self._set_unavailable(e)
            raise

        self.status = EngineStatus.READY
        self.placeholder_text = None

        bounds = self.viewport.fit(zones, self._widget)
        if bounds is not None:
            self.last_fit = bounds
        return report

    def _on_store_change(self) -> None:
        try:
            self.refresh()
        except WidgetUnavailable:
            # The store mutation stands; the map shows the placeholder
            logger.debug("Store changed while the map is unavailable")

    def _set_unavailable(self, error: WidgetUnavailable) -> None:
        self.status = EngineStatus.UNAVAILABLE
        self.placeholder_text = UNAVAILABLE_PLACEHOLDER
        logger.warning(f"Zone map unavailable: {error}")

    def _select_zone(self, zone_id: str) -> None:
        try:
            self.store.select_zone(zone_id)
        except ZoneNotFound:
            logger.debug(f"Clicked zone {zone_id} is no longer in the store")

    def unmount(self) -> None:
        """Stop following the store and detach every overlay."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        self.debouncer.cancel_all()
        overlays = len(self.registry)
        self.registry.clear()
        self.viewport.reset()
        self._widget = None
        self.last_fit = None

        self.status = EngineStatus.UNMOUNTED
        self.placeholder_text = None
        self.metrics.set_gauge("overlays_live", 0)
        logger.info(f"Zone map unmounted, {overlays} overlays detached")
