"""
Zone store.

The store is the single source of truth for delivery zones. The map engine
only reads it (list_zones, selected_zone_id) and proposes geometry updates
through upsert_zone. InMemoryZoneStore is the reference implementation used
by the HTTP API and the tests; it persists to a JSON file.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Union

from zonemap.errors import ZoneNotFound
from zonemap.metrics import timed
from .models import (
    ZONE_CLASSES,
    PolygonZone,
    RadiusZone,
    Zone,
    ZoneKind,
    apply_changes,
    zone_from_record,
    zone_to_record,
)

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
ZonePatch = Union[Zone, Mapping[str, Any]]


class ZoneStore(Protocol):
    """Capabilities the map engine needs from the surrounding store."""

    @property
    def selected_zone_id(self) -> Optional[str]:
        ...

    def list_zones(self) -> List[Zone]:
        ...

    def get_zone(self, zone_id: str) -> Optional[Zone]:
        ...

    def upsert_zone(self, patch: ZonePatch) -> Zone:
        ...

    def delete_zone(self, zone_id: str) -> None:
        ...

    def select_zone(self, zone_id: Optional[str]) -> None:
        ...

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        ...


class InMemoryZoneStore:
    """
    Thread-safe in-memory zone store.

    Zones keep insertion order. Listeners are notified after every mutation,
    outside the lock, so a listener may read the store again.

    Usage:
        store = InMemoryZoneStore()
        store.upsert_zone(new_radius_zone(LatLng(-23.56, -46.65)))
        store.upsert_zone({"id": "zone_1a2b3c4d", "fee": 7.5})
    """

    def __init__(self, zones: Optional[List[Zone]] = None):
        self._lock = threading.RLock()
        self._zones: Dict[str, Zone] = {}
        self._selected_id: Optional[str] = None
        self._listeners: List[Listener] = []

        for zone in zones or []:
            self._zones[zone.id] = zone

    @property
    def selected_zone_id(self) -> Optional[str]:
        with self._lock:
            return self._selected_id

    def list_zones(self) -> List[Zone]:
        with self._lock:
            return list(self._zones.values())

    def get_zone(self, zone_id: str) -> Optional[Zone]:
        with self._lock:
            return self._zones.get(zone_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._zones)

    def upsert_zone(self, patch: ZonePatch) -> Zone:
        """
        Insert a zone or update some of its fields.

        Args:
            patch: a full zone, or a mapping with "id" and the fields to
                change. A mapping for a new id must carry "type" and the
                variant's geometry fields.

        Raises:
            ValueError: missing id, unknown field, or incomplete new zone
        """
        with self._lock:
            if isinstance(patch, (RadiusZone, PolygonZone)):
                zone = patch
            else:
                zone = self._merge(patch)
            self._zones[zone.id] = zone

        logger.debug(f"Zone upserted: {zone.id}")
        self._notify()
        return zone

    def _merge(self, patch: Mapping[str, Any]) -> Zone:
        zone_id = patch.get("id")
        if not zone_id:
            raise ValueError("Zone patch has no id")

        existing = self._zones.get(zone_id)
        if existing is not None:
            return apply_changes(existing, patch)

        if "type" not in patch:
            raise ValueError(f"New zone {zone_id} needs a type")
        kind = ZoneKind(patch["type"])
        fields = {k: v for k, v in patch.items() if k != "type"}
        fields.setdefault("name", "")
        try:
            return ZONE_CLASSES[kind](**fields)
        except TypeError as e:
            raise ValueError(f"Incomplete {kind.value} zone {zone_id}: {e}") from e

    def delete_zone(self, zone_id: str) -> None:
        """
        Remove a zone; clears the selection if it pointed at it.

        Raises:
            ZoneNotFound: unknown id
        """
        with self._lock:
            if zone_id not in self._zones:
                raise ZoneNotFound(zone_id)
            del self._zones[zone_id]
            if self._selected_id == zone_id:
                self._selected_id = None

        logger.info(f"Zone deleted: {zone_id}")
        self._notify()

    def select_zone(self, zone_id: Optional[str]) -> None:
        """
        Set the zone highlighted on the map (None clears the selection).

        Raises:
            ZoneNotFound: unknown id
        """
        with self._lock:
            if zone_id is not None and zone_id not in self._zones:
                raise ZoneNotFound(zone_id)
            if zone_id == self._selected_id:
                return
            self._selected_id = zone_id

        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()

    def to_records(self) -> List[Dict[str, Any]]:
        return [zone_to_record(z) for z in self.list_zones()]

    @timed("zone_store_save")
    def save_json(self, filepath: Path) -> None:
        """Save all zones to a JSON file."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w") as f:
            json.dump({"deliveryZones": self.to_records()}, f, indent=2)

    @timed("zone_store_load")
    def load_json(self, filepath: Path) -> int:
        """
        Replace the zones with the ones saved in a JSON file.

        A missing file leaves the store untouched. Malformed records are
        skipped with a warning.

        Returns:
            Number of zones loaded
        """
        filepath = Path(filepath)
        if not filepath.exists():
            return 0

        with open(filepath, "r") as f:
            data = json.load(f)

        zones: Dict[str, Zone] = {}
        for record in data.get("deliveryZones", []):
            if not isinstance(record, Mapping):
                logger.warning(f"Skipping zone record that is not an object: {record!r}")
                continue
            try:
                zone = zone_from_record(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed zone record {record.get('id')!r}: {e}")
                continue
            zones[zone.id] = zone

        with self._lock:
            self._zones = zones
            if self._selected_id not in zones:
                self._selected_id = None

        logger.info(f"Loaded {len(zones)} delivery zones from {filepath}")
        self._notify()
        return len(zones)
