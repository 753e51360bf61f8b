"""
Thread-safe state management for the zonemap API.

Holds the zone store shared by every request handler. The store is loaded
once from the configured JSON file and saved back after each mutation.
"""
import threading
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from zonemap.zones.store import InMemoryZoneStore

logger = logging.getLogger(__name__)


class ApplicationState:
    """
    Singleton application state manager.

    Use get_app_state() to access the singleton instance.
    """

    _instance: Optional['ApplicationState'] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls):
        """Ensure singleton pattern."""
        if cls._instance is None:
            with cls._lock:
                # Double-check locking
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize application state (only once)."""
        if self._initialized:
            return

        self._initialized = True
        self._zone_store = InMemoryZoneStore()
        self._data_path = self._configured_data_path()
        self._startup_time = datetime.now(timezone.utc)

        if self._data_path is not None:
            self._zone_store.load_json(self._data_path)

        logger.info("Application state initialized")

    @staticmethod
    def _configured_data_path() -> Optional[Path]:
        from api.config import settings
        return Path(settings.zones_data_path) if settings.zones_data_path else None

    @property
    def zones(self) -> InMemoryZoneStore:
        """Get the delivery zone store."""
        return self._zone_store

    @property
    def data_path(self) -> Optional[Path]:
        return self._data_path

    def persist_zones(self) -> None:
        """Save the zones to the data file, if one is configured."""
        if self._data_path is None:
            return
        try:
            self._zone_store.save_json(self._data_path)
        except OSError as e:
            logger.error(f"Failed to save delivery zones to {self._data_path}: {e}")
            raise

    def reset(self) -> None:
        """Drop every zone (used by tests)."""
        self._zone_store = InMemoryZoneStore()

    @property
    def uptime_seconds(self) -> float:
        """Get application uptime in seconds."""
        return (datetime.now(timezone.utc) - self._startup_time).total_seconds()

    def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on all components.

        Returns:
            Dict with health status of each component
        """
        return {
            'zone_store': 'healthy' if self._zone_store is not None else 'unhealthy',
            'zones': len(self._zone_store),
            'persistence': str(self._data_path) if self._data_path else 'memory',
            'uptime_seconds': self.uptime_seconds,
        }


def get_app_state() -> ApplicationState:
    """
    Get the application state singleton.

    Returns:
        ApplicationState: The singleton application state instance
    """
    return ApplicationState()


def get_zone_store() -> InMemoryZoneStore:
    """Get the delivery zone store."""
    return get_app_state().zones
