"""
Edit debouncer.

Dragging a circle or a polygon vertex fires change events on every frame.
The debouncer turns each burst into a single store update:

1. events for a guarded zone are echoes of a domain push and are dropped
2. any other event (re)starts the zone's quiet-interval timer
3. when the timer fires, the overlay's current geometry is read back and
   committed with one upsert_zone() call
"""

import logging
from typing import Callable, Dict, List, Optional, Any

from zonemap.errors import InvalidGeometry, StaleCommit
from zonemap.metrics import PerformanceMetrics, get_metrics
from zonemap.zones.geometry import centroid
from zonemap.zones.models import ZoneKind
from zonemap.zones.store import ZoneStore
from .registry import OverlayRegistry
from .widget import (
    CIRCLE_EDIT_EVENTS,
    POLYGON_EDIT_EVENTS,
    ListenerHandle,
    OverlayEvent,
    OverlayHandle,
)

logger = logging.getLogger(__name__)

DEFAULT_QUIET_INTERVAL = 0.150  # seconds


class EditDebouncer:
    """
    Coalesces overlay edit events into store commits.

    Args:
        registry: shared overlay registry (timers and guards live there)
        store: where commits go
        quiet_interval: seconds without events before committing
        on_click: called with the zone id when an overlay is clicked
    """

    def __init__(
        self,
        registry: OverlayRegistry,
        store: ZoneStore,
        quiet_interval: float = DEFAULT_QUIET_INTERVAL,
        on_click: Optional[Callable[[str], Any]] = None,
        metrics: Optional[PerformanceMetrics] = None,
    ):
        self.registry = registry
        self.store = store
        self.quiet_interval = quiet_interval
        self.on_click = on_click
        self.metrics = metrics or get_metrics()

    def bind(self, zone_id: str, kind: ZoneKind, handle: OverlayHandle) -> List[ListenerHandle]:
        """Attach edit and click listeners to a freshly created overlay."""
        events = CIRCLE_EDIT_EVENTS if kind is ZoneKind.RADIUS else POLYGON_EDIT_EVENTS
        listeners = [
            handle.add_listener(event, self._make_callback(zone_id, event))
            for event in events
        ]
        listeners.append(handle.add_listener(OverlayEvent.CLICK, lambda: self._clicked(zone_id)))
        return listeners

    def _make_callback(self, zone_id: str, event: OverlayEvent) -> Callable[[], None]:
        return lambda: self.on_geometry_event(zone_id, event)

    def _clicked(self, zone_id: str) -> None:
        if self.on_click is not None:
            self.on_click(zone_id)

    def on_geometry_event(self, zone_id: str, event: OverlayEvent) -> None:
        """Handle a raw change event from an overlay."""
        if self.registry.is_guarded(zone_id):
            self.metrics.increment("echo_events_suppressed")
            logger.debug(f"Ignoring {event.value} echo for guarded zone {zone_id}")
            return

        self.registry.schedule_timer(zone_id, self.quiet_interval, self.commit, zone_id)

    def commit(self, zone_id: str) -> bool:
        """
        Read the overlay's current geometry and write it to the store.

        Returns:
            True if an update was committed
        """
        try:
            patch = self._read_geometry(zone_id)
        except StaleCommit as e:
            self.metrics.increment("stale_commits_discarded")
            logger.debug(str(e))
            return False
        except InvalidGeometry as e:
            self.metrics.increment("invalid_zones_skipped")
            logger.warning(f"Not committing edit: {e}")
            return False

        try:
            self.store.upsert_zone(patch)
        except Exception as e:
            self.metrics.increment("zone_commit_failures")
            logger.error(f"Failed to commit geometry of zone {zone_id}: {e}", exc_info=True)
            return False

        self.metrics.increment("zone_commits")
        logger.debug(f"Committed map edit for zone {zone_id}")
        return True

    def _read_geometry(self, zone_id: str) -> Dict[str, Any]:
        entry = self.registry.get(zone_id)
        if entry is None:
            raise StaleCommit(zone_id)

        handle = entry.handle
        if entry.kind is ZoneKind.RADIUS:
            radius = round(handle.get_radius())
            if radius <= 0:
                raise InvalidGeometry(zone_id, f"radius must be > 0, got {radius}")
            return {
                "id": zone_id,
                "center": handle.get_center(),
                "radius_meters": float(radius),
            }

        path = list(handle.get_path())
        if len(path) < 3:
            raise InvalidGeometry(zone_id, f"polygon needs at least 3 points, got {len(path)}")
        return {
            "id": zone_id,
            "path": path,
            "centroid": centroid(path),
        }

    def cancel_all(self) -> None:
        """Discard every pending commit."""
        cancelled = self.registry.cancel_all_timers()
        if cancelled:
            logger.debug(f"Discarded {cancelled} pending map edits")
