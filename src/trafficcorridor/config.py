"""Runtime configuration for the traffic corridor engine.

Defaults mirror the live-traffic widget. ``TrafficSettings.from_env()``
reads overrides from the environment:

    MAPQUEST_API_KEY            MapQuest key (required for live fetches)
    TRAFFIC_REFRESH_SECONDS     Poll interval, also the cache TTL (>= 15)
    TRAFFIC_AREA_RADIUS_MILES   Area-mode radius
    TRAFFIC_CORRIDOR_MILES      Route-mode corridor half-width
"""

import os
from datetime import timedelta

from pydantic import BaseModel, Field, field_validator

DEFAULT_ZOOM = 14
MIN_ZOOM = 1
MAX_ZOOM = 18

DEFAULT_REFRESH_SECONDS = 120
MIN_REFRESH_SECONDS = 15

DEFAULT_AREA_RADIUS_MILES = 5.0
DEFAULT_CORRIDOR_MILES = 1.0

DEFAULT_FILTERS = ("construction", "incidents", "event", "congestion")

MAPQUEST_BASE_URL = "https://www.mapquestapi.com"
REQUEST_TIMEOUT = 10


class TrafficSettings(BaseModel):
    """Validated settings for one widget session.

    Attributes:
        api_key: MapQuest API key
        zoom: Map zoom level, clamped to 1-18
        refresh_seconds: Poll interval in seconds (>= 15); doubles as cache TTL
        area_radius_miles: Radius of the area-mode query
        corridor_miles: Corridor half-width in route mode
        filters: Incident categories requested upstream
        request_timeout: HTTP timeout in seconds
    """

    api_key: str = ""
    zoom: int = Field(default=DEFAULT_ZOOM)
    refresh_seconds: int = Field(default=DEFAULT_REFRESH_SECONDS, ge=MIN_REFRESH_SECONDS)
    area_radius_miles: float = Field(default=DEFAULT_AREA_RADIUS_MILES, gt=0)
    corridor_miles: float = Field(default=DEFAULT_CORRIDOR_MILES, gt=0)
    filters: tuple[str, ...] = DEFAULT_FILTERS
    request_timeout: float = Field(default=REQUEST_TIMEOUT, gt=0)

    @field_validator("zoom", mode="before")
    @classmethod
    def clamp_zoom(cls, value):
        return min(MAX_ZOOM, max(MIN_ZOOM, round(float(value))))

    @field_validator("filters", mode="before")
    @classmethod
    def default_filters(cls, value):
        # An empty filter list means "everything", same as the default
        if not value:
            return DEFAULT_FILTERS
        return tuple(value)

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.refresh_seconds)

    @classmethod
    def from_env(cls, **overrides) -> "TrafficSettings":
        """Build settings from environment variables plus explicit overrides."""
        values = {}
        env_map = {
            "api_key": "MAPQUEST_API_KEY",
            "refresh_seconds": "TRAFFIC_REFRESH_SECONDS",
            "area_radius_miles": "TRAFFIC_AREA_RADIUS_MILES",
            "corridor_miles": "TRAFFIC_CORRIDOR_MILES",
        }
        for field_name, env_name in env_map.items():
            value = os.environ.get(env_name)
            if value:
                values[field_name] = value
        values.update(overrides)
        return cls(**values)
