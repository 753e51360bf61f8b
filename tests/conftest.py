"""
Shared pytest fixtures for zonemap tests.

Environment variables are set at module-import time so that api.config and
zonemap.config read the test values before any api.* import happens.
"""

import os

import pytest
from fastapi.testclient import TestClient

# ---------------------------------------------------------------------------
# Section 1: Environment setup (before ANY api.* imports)
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOG_LEVEL", "warning")
os.environ.pop("ZONES_DATA_PATH", None)

from zonemap.config import Settings  # noqa: E402
from zonemap.metrics import PerformanceMetrics  # noqa: E402
from zonemap.sync.engine import ZoneMapEngine  # noqa: E402
from zonemap.sync.memory import InMemoryMapWidget  # noqa: E402
from zonemap.sync.scheduler import ManualScheduler  # noqa: E402
from zonemap.zones.models import LatLng, PolygonZone, RadiusZone  # noqa: E402
from zonemap.zones.store import InMemoryZoneStore  # noqa: E402

# ---------------------------------------------------------------------------
# Section 2: Engine fixtures
# ---------------------------------------------------------------------------

SAO_PAULO = LatLng(-23.561684, -46.655981)


def make_radius_zone(zone_id="zone_circle", radius=2000.0, center=SAO_PAULO, **kwargs):
    """Circle zone with sensible defaults."""
    return RadiusZone(
        id=zone_id,
        name=kwargs.pop("name", "Centro"),
        center=center,
        radius_meters=radius,
        **kwargs,
    )


def make_polygon_zone(zone_id="zone_poly", path=None, **kwargs):
    """Polygon zone with sensible defaults (a small square north of the center)."""
    if path is None:
        path = [
            LatLng(-23.55, -46.66),
            LatLng(-23.55, -46.64),
            LatLng(-23.53, -46.64),
            LatLng(-23.53, -46.66),
        ]
    return PolygonZone(
        id=zone_id,
        name=kwargs.pop("name", "Jardins"),
        path=list(path),
        **kwargs,
    )


@pytest.fixture
def scheduler():
    """Virtual clock scheduler."""
    return ManualScheduler()


@pytest.fixture
def widget(scheduler):
    """Ready in-memory widget echoing geometry changes synchronously."""
    return InMemoryMapWidget(ready=True, echo="sync", scheduler=scheduler)


@pytest.fixture
def store():
    """Store with one circle and one polygon."""
    return InMemoryZoneStore([
        make_radius_zone(fee=5.0, eta_minutes=30),
        make_polygon_zone(fee=8.0, eta_minutes=45, priority=1),
    ])


@pytest.fixture
def engine_metrics():
    """Isolated metrics instance, without periodic summary logging."""
    return PerformanceMetrics(enable_logging=False)


@pytest.fixture
def engine_settings():
    """Engine settings with the default tunables."""
    return Settings(
        debounce_ms=150,
        degree_epsilon=1e-6,
        radius_epsilon_m=0.5,
    )


@pytest.fixture
def engine(store, scheduler, engine_settings, engine_metrics):
    """Unmounted engine bound to the store."""
    eng = ZoneMapEngine(store, scheduler, settings=engine_settings, metrics=engine_metrics)
    yield eng
    eng.unmount()


@pytest.fixture
def mounted_engine(engine, widget, scheduler):
    """Engine mounted on the widget, with the initial guard releases flushed."""
    engine.mount(lambda: widget)
    scheduler.run_pending()
    return engine


# ---------------------------------------------------------------------------
# Section 3: API client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app_state():
    """Application state with an empty zone store, in memory only."""
    from api.state import get_app_state

    state = get_app_state()
    state.reset()
    saved_path = state._data_path
    state._data_path = None
    yield state
    state._data_path = saved_path
    state.reset()


@pytest.fixture
def client(app_state):
    """Create a FastAPI TestClient over a fresh zone store."""
    from api.main import app

    with TestClient(app) as test_client:
        yield test_client
