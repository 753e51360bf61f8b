"""
zonemap Configuration Module.

Engine settings loaded from environment variables.
Supports .env files for local development.

Usage:
    from zonemap.config import settings

    print(settings.debounce_ms)
    print(settings.selected_zone_color)
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
import logging

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def get_float(key: str, default: float) -> float:
    """Get float from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


@dataclass
class Settings:
    """Engine settings loaded from environment."""

    # Debounce of map edits before they are committed to the store
    debounce_ms: int = field(default_factory=lambda: get_int("ZONE_DEBOUNCE_MS", 150))

    # Tolerances below which the widget is considered in sync
    degree_epsilon: float = field(default_factory=lambda: get_float("ZONE_DEGREE_EPSILON", 1e-6))
    radius_epsilon_m: float = field(default_factory=lambda: get_float("ZONE_RADIUS_EPSILON_M", 0.5))

    # Overlay styling
    zone_color: str = field(default_factory=lambda: os.getenv("ZONE_COLOR", "#2563eb"))
    selected_zone_color: str = field(default_factory=lambda: os.getenv("ZONE_SELECTED_COLOR", "#f97316"))
    fill_opacity: float = field(default_factory=lambda: get_float("ZONE_FILL_OPACITY", 0.15))
    overlays_editable: bool = field(default_factory=lambda: get_bool("ZONE_OVERLAYS_EDITABLE", True))

    # Defaults for zones created from the dashboard
    default_radius_m: float = field(default_factory=lambda: get_float("ZONE_DEFAULT_RADIUS_M", 2000.0))
    default_lat: float = field(default_factory=lambda: get_float("ZONE_DEFAULT_LAT", -23.561684))
    default_lng: float = field(default_factory=lambda: get_float("ZONE_DEFAULT_LNG", -46.655981))

    def __post_init__(self):
        """Validate settings after initialization."""
        if self.debounce_ms < 0:
            logging.warning(f"ZONE_DEBOUNCE_MS {self.debounce_ms} is negative, using 150")
            self.debounce_ms = 150

        if self.degree_epsilon <= 0:
            logging.warning(f"ZONE_DEGREE_EPSILON {self.degree_epsilon} must be positive, using 1e-6")
            self.degree_epsilon = 1e-6

        if self.radius_epsilon_m <= 0:
            logging.warning(f"ZONE_RADIUS_EPSILON_M {self.radius_epsilon_m} must be positive, using 0.5")
            self.radius_epsilon_m = 0.5

        if not 0.0 <= self.fill_opacity <= 1.0:
            logging.warning(f"ZONE_FILL_OPACITY {self.fill_opacity} outside [0, 1], using 0.15")
            self.fill_opacity = 0.15

        if self.default_radius_m <= 0:
            logging.warning(f"ZONE_DEFAULT_RADIUS_M {self.default_radius_m} must be positive, using 2000")
            self.default_radius_m = 2000.0

    @property
    def quiet_interval(self) -> float:
        """Debounce interval in seconds."""
        return self.debounce_ms / 1000.0


# Singleton instance
settings = Settings()


def get_settings() -> Settings:
    """Get the settings instance (useful for dependency injection)."""
    return settings
