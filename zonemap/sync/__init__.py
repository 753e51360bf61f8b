"""Synchronization between the zone store and an interactive map widget."""

from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .widget import MapWidget, OverlayEvent, OverlayStyle
from .memory import InMemoryMapWidget
from .registry import OverlayRegistry
from .debouncer import EditDebouncer
from .reconciler import ReconcileReport, Reconciler, ReconcilerState, ZonePalette
from .viewport import ViewportFitter
from .engine import EngineStatus, ZoneMapEngine

__all__ = [
    'AsyncioScheduler',
    'ManualScheduler',
    'Scheduler',
    'MapWidget',
    'OverlayEvent',
    'OverlayStyle',
    'InMemoryMapWidget',
    'OverlayRegistry',
    'EditDebouncer',
    'ReconcileReport',
    'Reconciler',
    'ReconcilerState',
    'ZonePalette',
    'ViewportFitter',
    'EngineStatus',
    'ZoneMapEngine',
]
