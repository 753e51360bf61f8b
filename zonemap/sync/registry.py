"""
Overlay registry.

Owns the only mutable state shared by the reconciler and the debouncer:
- zone id -> live overlay handle (with its listeners and applied style)
- zone id -> pending debounce timer (at most one)
- zone id -> guard depth and the deferred tasks that release it

Nothing outside the sync package mutates it.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional

from zonemap.zones.models import ZoneKind
from .scheduler import Scheduler, TaskHandle
from .widget import ListenerHandle, OverlayHandle, OverlayStyle

logger = logging.getLogger(__name__)


@dataclass
class OverlayEntry:
    """A live overlay bound to a zone id."""
    zone_id: str
    kind: ZoneKind
    handle: OverlayHandle
    style: OverlayStyle
    listeners: List[ListenerHandle] = field(default_factory=list)


class OverlayRegistry:
    """
    Bookkeeping for overlays, debounce timers and write guards.

    Guards nest: each guarded() block schedules its own release on the next
    scheduler tick, and the zone stays guarded until all of them ran.
    """

    def __init__(self, scheduler: Scheduler):
        self._scheduler = scheduler
        self._entries: Dict[str, OverlayEntry] = {}
        self._timers: Dict[str, TaskHandle] = {}
        self._guards: Dict[str, int] = {}
        self._guard_releases: Dict[str, List[TaskHandle]] = {}

    # Overlays

    def get(self, zone_id: str) -> Optional[OverlayEntry]:
        return self._entries.get(zone_id)

    def __contains__(self, zone_id: str) -> bool:
        return zone_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[OverlayEntry]:
        return iter(list(self._entries.values()))

    def ids(self) -> List[str]:
        return list(self._entries)

    def create(self, zone_id: str, kind: ZoneKind, handle: OverlayHandle,
               style: OverlayStyle, listeners: Optional[List[ListenerHandle]] = None) -> OverlayEntry:
        """
        Register a new overlay.

        Raises:
            ValueError: if the zone already has an overlay
        """
        if zone_id in self._entries:
            raise ValueError(f"Zone {zone_id} already has an overlay")
        entry = OverlayEntry(zone_id, kind, handle, style, list(listeners or []))
        self._entries[zone_id] = entry
        return entry

    def destroy(self, zone_id: str) -> bool:
        """
        Detach and forget a zone's overlay, its timer and its guard.

        Returns:
            True if an overlay was removed
        """
        self.cancel_timer(zone_id)
        self.clear_guard(zone_id)

        entry = self._entries.pop(zone_id, None)
        if entry is None:
            return False

        for listener in entry.listeners:
            listener.remove()
        entry.listeners.clear()
        entry.handle.set_map(None)
        logger.debug(f"Overlay destroyed: {zone_id}")
        return True

    def clear(self) -> None:
        """Destroy every overlay and cancel every pending task."""
        for zone_id in list(self._entries):
            self.destroy(zone_id)
        self.cancel_all_timers()
        for zone_id in list(self._guards) + list(self._guard_releases):
            self.clear_guard(zone_id)

    # Debounce timers

    def schedule_timer(self, zone_id: str, delay: float, callback: Callable[..., Any],
                       *args: Any) -> TaskHandle:
        """Schedule the zone's timer, replacing any pending one."""
        self.cancel_timer(zone_id)
        handle = self._scheduler.call_later(delay, self._fire_timer, zone_id, callback, args)
        self._timers[zone_id] = handle
        return handle

    def _fire_timer(self, zone_id: str, callback: Callable[..., Any], args: tuple) -> None:
        self._timers.pop(zone_id, None)
        callback(*args)

    def cancel_timer(self, zone_id: str) -> bool:
        handle = self._timers.pop(zone_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all_timers(self) -> int:
        """Cancel every pending debounce timer. Returns how many were pending."""
        count = 0
        for zone_id in list(self._timers):
            count += self.cancel_timer(zone_id)
        return count

    def has_pending_timer(self, zone_id: str) -> bool:
        return zone_id in self._timers

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    # Guards

    def set_guard(self, zone_id: str) -> None:
        """Mark the zone as receiving a domain push."""
        self._guards[zone_id] = self._guards.get(zone_id, 0) + 1

    def release_guard_next_tick(self, zone_id: str) -> None:
        """Release one guard level on the next scheduler tick, never synchronously."""
        release = self._scheduler.call_soon(self._release_guard, zone_id)
        self._guard_releases.setdefault(zone_id, []).append(release)

    @contextmanager
    def guarded(self, zone_id: str):
        """
        Guard the zone while geometry is pushed to its overlay.

        The release is scheduled after the push, so change events the widget
        queues while applying it are still delivered under the guard.
        """
        self.set_guard(zone_id)
        try:
            yield
        finally:
            self.release_guard_next_tick(zone_id)

    def _release_guard(self, zone_id: str) -> None:
        releases = self._guard_releases.get(zone_id)
        if releases:
            releases.pop(0)
            if not releases:
                del self._guard_releases[zone_id]

        depth = self._guards.get(zone_id, 0) - 1
        if depth > 0:
            self._guards[zone_id] = depth
        else:
            self._guards.pop(zone_id, None)

    def is_guarded(self, zone_id: str) -> bool:
        return self._guards.get(zone_id, 0) > 0

    def clear_guard(self, zone_id: str) -> None:
        """Drop the guard now and cancel its pending releases."""
        for release in self._guard_releases.pop(zone_id, []):
            release.cancel()
        self._guards.pop(zone_id, None)
