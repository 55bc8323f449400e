"""Refresh scheduling for the live traffic engine.

One refresh is fetch -> normalize -> (route mode) corridor filter, run
on whichever thread triggered it. Triggers are a fixed-interval timer, a
change of area center/radius/mode/corridor, and a manual refresh; they all
go through the same pipeline.

Every started refresh takes the next generation number. A completion is
applied only if its generation is still the newest one started, so an
older, slower fetch can never overwrite a newer result. A failed refresh
keeps the previous incidents and last-updated time next to the error.

Usage:
    python -m trafficcorridor.scheduler.refresh --lat 34.05 --lng -118.24
    python -m trafficcorridor.scheduler.refresh --lat 34.05 --lng -118.24 \\
        --to-lat 34.14 --to-lng -118.13 --corridor 0.5
"""

import argparse
import logging
import sys
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from trafficcorridor.cache.incident_cache import IncidentCache, make_cache_key
from trafficcorridor.config import TrafficSettings
from trafficcorridor.incidents.corridor import CorridorQuery, filter_to_corridor
from trafficcorridor.incidents.models import Incident, Severity
from trafficcorridor.incidents.normalizer import normalize_incidents
from trafficcorridor.incidents.summary import (
    filter_by_severity,
    incidents_to_dataframe,
    severity_counts,
)
from trafficcorridor.providers.mapquest import MapQuestClient
from trafficcorridor.routing.route import RouteResponse, RouteSession, build_route_session
from trafficcorridor.utils.geo import (
    BoundingBox,
    GeoPoint,
    bbox_from_radius_miles,
    bbox_from_zoom,
)

logger = logging.getLogger(__name__)

# Smallest area radius queried, matching the widget's radius circle
MIN_AREA_RADIUS_MILES = 0.25

FetchIncidentsFn = Callable[[BoundingBox, list[str]], Sequence[Mapping[str, Any]]]
RouteProviderFn = Callable[[GeoPoint, GeoPoint], RouteResponse]
ReverseGeocodeFn = Callable[[GeoPoint], Optional[str]]


class RefreshStatus(Enum):
    """Incident snapshot state."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class Mode(Enum):
    """Query incidents around a point, or along a route corridor."""

    AREA = "area"
    ROUTE = "route"


@dataclass(frozen=True)
class RouteState:
    """State of the current route request."""

    status: RefreshStatus = RefreshStatus.IDLE
    session: Optional[RouteSession] = None
    error_message: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.status == RefreshStatus.READY and self.session is not None


@dataclass(frozen=True)
class Snapshot:
    """Read-only view handed to the presentation layer."""

    incidents: tuple[Incident, ...] = ()
    last_updated: Optional[datetime] = None
    status: RefreshStatus = RefreshStatus.IDLE
    error_message: Optional[str] = None
    mode: Mode = Mode.AREA
    route: RouteState = field(default_factory=RouteState)
    generation: int = 0


@dataclass(frozen=True)
class RefreshQuery:
    """Everything one refresh needs, captured when it starts."""

    generation: int
    mode: Mode
    bbox: BoundingBox
    center: GeoPoint
    filters: tuple[str, ...]
    corridor: Optional[CorridorQuery] = None


@dataclass(frozen=True)
class RefreshResult:
    """Output of one executed refresh."""

    incidents: tuple[Incident, ...]
    fetched_at: datetime


class RefreshScheduler:
    """Coordinates incident refreshes for one widget session.

    Example:
        >>> client = MapQuestClient(api_key)
        >>> scheduler = RefreshScheduler(
        ...     fetch_incidents=client.fetch_incidents,
        ...     center=GeoPoint(34.05, -118.24),
        ...     route_provider=client.fetch_route,
        ... )
        >>> scheduler.trigger_refresh().status
        <RefreshStatus.READY: 'ready'>
    """

    def __init__(
        self,
        fetch_incidents: FetchIncidentsFn,
        center: GeoPoint,
        settings: Optional[TrafficSettings] = None,
        cache: Optional[IncidentCache] = None,
        route_provider: Optional[RouteProviderFn] = None,
        reverse_geocode: Optional[ReverseGeocodeFn] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the scheduler.

        Args:
            fetch_incidents: Upstream fetch returning raw incident records
            center: Initial area-mode center
            settings: Session settings (defaults if None)
            cache: Shared or private incident cache (private if None)
            route_provider: Computes routes for set_route
            reverse_geocode: Optional advisory address lookup
            clock: Returns the current time in seconds
        """
        self.settings = settings or TrafficSettings()
        self.cache = cache or IncidentCache(clock=clock)
        self._fetch_incidents = fetch_incidents
        self._route_provider = route_provider
        self._reverse_geocode = reverse_geocode
        self._clock = clock

        self._lock = threading.Lock()
        self._area_center = center
        self._area_radius_miles = self.settings.area_radius_miles
        self._corridor_miles = self.settings.corridor_miles
        self._mode = Mode.AREA
        self._generation = 0
        self._route_generation = 0
        self._last_started: Optional[float] = None
        self._snapshot = Snapshot()
        self._labels: dict[str, Optional[str]] = {}

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Snapshot access
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    def visible_incidents(
        self, severities: Optional[Iterable[Severity]] = None
    ) -> list[Incident]:
        """Snapshot incidents, optionally limited to some severities."""
        incidents = list(self.snapshot().incidents)
        if severities is None:
            return incidents
        return filter_by_severity(incidents, severities)

    def viewport_bbox(self) -> BoundingBox:
        """Approximate map viewport around the area center at the set zoom."""
        with self._lock:
            center = self._area_center
        return bbox_from_zoom(center, self.settings.zoom)

    # ------------------------------------------------------------------
    # Refresh pipeline
    # ------------------------------------------------------------------

    def begin_refresh(self) -> RefreshQuery:
        """Start a refresh: bump the generation and capture the query."""
        with self._lock:
            self._generation += 1
            self._last_started = self._clock()
            query = self._build_query(self._generation)
            self._snapshot = replace(
                self._snapshot,
                status=RefreshStatus.LOADING,
                mode=query.mode,
                generation=self._generation,
            )
        logger.debug(f"Refresh #{query.generation} started ({query.mode.value})")
        return query

    def _build_query(self, generation: int) -> RefreshQuery:
        route = self._snapshot.route
        filters = tuple(self.settings.filters)

        if self._mode == Mode.ROUTE and route.ready:
            session = route.session
            corridor = CorridorQuery(polyline=session.polyline, width_miles=self._corridor_miles)
            return RefreshQuery(
                generation=generation,
                mode=Mode.ROUTE,
                bbox=session.bbox.expand_miles(corridor.effective_width_miles),
                center=session.origin,
                filters=filters,
                corridor=corridor,
            )

        radius = max(MIN_AREA_RADIUS_MILES, self._area_radius_miles)
        return RefreshQuery(
            generation=generation,
            mode=self._mode,
            bbox=bbox_from_radius_miles(self._area_center, radius),
            center=self._area_center,
            filters=filters,
        )

    def execute(self, query: RefreshQuery) -> RefreshResult:
        """Run fetch -> normalize -> filter for a query.

        Touches no scheduler state; only the cache is shared.

        Raises:
            FetchError: If the upstream fetch fails.
        """
        # Cached incidents carry distances from query.center, so it is part of the key
        namespace = f"{self.settings.api_key}@{query.center.lat:.5f},{query.center.lng:.5f}"
        key = make_cache_key(query.bbox, query.filters, namespace=namespace)

        def fetch() -> list[Incident]:
            raw = self._fetch_incidents(query.bbox, list(query.filters))
            return normalize_incidents(raw, query.center)

        incidents = self.cache.get_or_fetch(key, self.settings.cache_ttl, fetch)

        if query.corridor is not None:
            incidents = filter_to_corridor(
                query.corridor.polyline, query.corridor.width_miles, incidents
            )

        entry = self.cache.peek(key)
        fetched_at = entry.timestamp if entry is not None else self._clock()
        return RefreshResult(
            incidents=tuple(incidents),
            fetched_at=datetime.fromtimestamp(fetched_at),
        )

    def complete_refresh(
        self,
        query: RefreshQuery,
        result: Optional[RefreshResult] = None,
        error: Optional[BaseException] = None,
    ) -> bool:
        """Apply a finished refresh unless a newer one has started.

        Returns:
            True if applied, False if discarded as superseded.
        """
        with self._lock:
            if query.generation != self._generation:
                logger.warning(
                    f"Discarding refresh #{query.generation}; "
                    f"#{self._generation} is newer"
                )
                return False

            if error is not None:
                self._snapshot = replace(
                    self._snapshot,
                    status=RefreshStatus.ERROR,
                    error_message=str(error) or type(error).__name__,
                )
            else:
                self._snapshot = replace(
                    self._snapshot,
                    incidents=result.incidents,
                    last_updated=result.fetched_at,
                    status=RefreshStatus.READY,
                    error_message=None,
                )
        return True

    def trigger_refresh(self) -> Snapshot:
        """Run one refresh now (manual refresh) and return the snapshot."""
        query = self.begin_refresh()
        try:
            result = self.execute(query)
        except Exception as e:
            logger.error(f"Refresh #{query.generation} failed: {e}")
            self.complete_refresh(query, error=e)
        else:
            if self.complete_refresh(query, result=result):
                logger.info(
                    f"Refresh #{query.generation}: {len(result.incidents)} incidents "
                    f"({query.mode.value})"
                )
        return self.snapshot()

    def refresh_if_due(self, now: Optional[float] = None) -> bool:
        """Trigger a refresh if the refresh interval has elapsed.

        Returns:
            True if a refresh ran
        """
        now = self._clock() if now is None else now
        with self._lock:
            last = self._last_started
        if last is not None and now - last < self.settings.refresh_seconds:
            return False
        self.trigger_refresh()
        return True

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def set_mode(self, mode: Mode) -> Snapshot:
        with self._lock:
            changed = mode != self._mode
            self._mode = mode
        return self.trigger_refresh() if changed else self.snapshot()

    def set_area_center(self, center: GeoPoint) -> Snapshot:
        with self._lock:
            changed = center != self._area_center
            self._area_center = center
        return self.trigger_refresh() if changed else self.snapshot()

    def set_area_radius(self, miles: float) -> Snapshot:
        if miles <= 0:
            raise ValueError(f"Area radius must be positive, got {miles}")
        with self._lock:
            changed = miles != self._area_radius_miles
            self._area_radius_miles = miles
        return self.trigger_refresh() if changed else self.snapshot()

    def set_corridor_width(self, miles: float) -> Snapshot:
        if miles <= 0:
            raise ValueError(f"Corridor width must be positive, got {miles}")
        with self._lock:
            changed = miles != self._corridor_miles
            self._corridor_miles = miles
            affects_query = self._mode == Mode.ROUTE
        if changed and affects_query:
            return self.trigger_refresh()
        return self.snapshot()

    def set_route(self, origin: GeoPoint, destination: GeoPoint) -> RouteState:
        """Request a route and, in route mode, refresh along it.

        Any failure of the route attempt (DecodeError, FetchError or a bad
        provider payload) marks only the route as failed; the incident
        snapshot is left alone.
        """
        if self._route_provider is None:
            raise RuntimeError("No route provider configured")

        with self._lock:
            self._route_generation += 1
            route_generation = self._route_generation
            self._snapshot = replace(
                self._snapshot, route=RouteState(status=RefreshStatus.LOADING)
            )

        try:
            session = build_route_session(self._route_provider(origin, destination))
            state = RouteState(status=RefreshStatus.READY, session=session)
        except Exception as e:
            logger.error(f"Route {origin.to_tuple()} -> {destination.to_tuple()} failed: {e}")
            state = RouteState(
                status=RefreshStatus.ERROR, error_message=str(e) or type(e).__name__
            )

        with self._lock:
            if route_generation != self._route_generation:
                logger.warning(f"Discarding superseded route #{route_generation}")
                return self._snapshot.route
            self._snapshot = replace(self._snapshot, route=state)
            in_route_mode = self._mode == Mode.ROUTE

        if state.ready and in_route_mode:
            self.trigger_refresh()
        return state

    def clear_route(self) -> Snapshot:
        with self._lock:
            self._route_generation += 1
            self._snapshot = replace(self._snapshot, route=RouteState())
            in_route_mode = self._mode == Mode.ROUTE
        return self.trigger_refresh() if in_route_mode else self.snapshot()

    # ------------------------------------------------------------------
    # Advisory labels
    # ------------------------------------------------------------------

    def nearby_label(self, incident: Incident) -> Optional[str]:
        """Nearest-address label for an incident, cached per incident id."""
        if self._reverse_geocode is None:
            return None
        with self._lock:
            if incident.id in self._labels:
                return self._labels[incident.id]

        try:
            label = self._reverse_geocode(incident.location)
        except Exception as e:
            logger.warning(f"Reverse geocode failed for {incident.id}: {e}")
            return None

        if label:
            with self._lock:
                self._labels[incident.id] = label
        return label

    # ------------------------------------------------------------------
    # Background timer
    # ------------------------------------------------------------------

    def start(self, immediate: bool = True) -> None:
        """Refresh every ``settings.refresh_seconds`` on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()

        def run() -> None:
            if immediate:
                self.trigger_refresh()
            while not self._stop_event.wait(self.settings.refresh_seconds):
                self.trigger_refresh()

        self._thread = threading.Thread(target=run, name="traffic-refresh", daemon=True)
        self._thread.start()
        logger.info(f"Refresh timer started ({self.settings.refresh_seconds}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def print_snapshot(snapshot: Snapshot) -> None:
    """Print a snapshot in human-readable format."""
    print()
    print("=" * 60)
    print(f"Live Traffic ({snapshot.mode.value} mode)")
    print("=" * 60)
    print(f"Status: {snapshot.status.value}")
    if snapshot.error_message:
        print(f"Error: {snapshot.error_message}")
    if snapshot.last_updated:
        print(f"Last updated: {snapshot.last_updated:%Y-%m-%d %H:%M:%S}")

    session = snapshot.route.session
    if session is not None:
        print(
            f"Route: {len(session.polyline)} points, {len(session.segments)} segments, "
            f"{session.real_time_minutes} min ({session.delay_minutes} min delay)"
        )
    elif snapshot.route.error_message:
        print(f"Route error: {snapshot.route.error_message}")

    counts = severity_counts(snapshot.incidents)
    print("Severity: " + ", ".join(f"{s.label}={n}" for s, n in sorted(counts.items(), reverse=True)))
    print("-" * 60)

    df = incidents_to_dataframe(snapshot.incidents)
    if df.empty:
        print("No incidents")
    else:
        columns = ["severity_label", "kind", "short_description", "distance_from_center_miles"]
        print(df[columns].to_string(index=False))
    print("=" * 60)


def main():
    """CLI entry point: one refresh against MapQuest."""
    parser = argparse.ArgumentParser(
        description="Fetch live traffic incidents for an area or route corridor",
        epilog="""
Examples:
  python -m trafficcorridor.scheduler.refresh --lat 34.05 --lng -118.24
  python -m trafficcorridor.scheduler.refresh --lat 34.05 --lng -118.24 --radius 10
  python -m trafficcorridor.scheduler.refresh --lat 34.05 --lng -118.24 --to-lat 34.14 --to-lng -118.13

The API key is read from MAPQUEST_API_KEY unless --api-key is given.
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--lat", type=float, required=True, help="Center / origin latitude")
    parser.add_argument("--lng", type=float, required=True, help="Center / origin longitude")
    parser.add_argument("--radius", type=float, default=None, help="Area radius in miles")
    parser.add_argument("--to-lat", type=float, default=None, help="Route destination latitude")
    parser.add_argument("--to-lng", type=float, default=None, help="Route destination longitude")
    parser.add_argument("--corridor", type=float, default=None, help="Corridor width in miles")
    parser.add_argument("--api-key", default=None, help="MapQuest API key")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output except errors",
    )

    args = parser.parse_args()

    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    overrides = {}
    if args.api_key:
        overrides["api_key"] = args.api_key
    if args.radius is not None:
        overrides["area_radius_miles"] = args.radius
    if args.corridor is not None:
        overrides["corridor_miles"] = args.corridor

    try:
        settings = TrafficSettings.from_env(**overrides)
        client = MapQuestClient(settings.api_key, timeout=settings.request_timeout)
        center = GeoPoint(args.lat, args.lng)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    scheduler = RefreshScheduler(
        fetch_incidents=client.fetch_incidents,
        center=center,
        settings=settings,
        route_provider=client.fetch_route,
    )

    if args.to_lat is not None and args.to_lng is not None:
        route = scheduler.set_route(center, GeoPoint(args.to_lat, args.to_lng))
        if not route.ready:
            print_snapshot(scheduler.snapshot())
            return 1
        snapshot = scheduler.set_mode(Mode.ROUTE)
    else:
        snapshot = scheduler.trigger_refresh()

    print_snapshot(snapshot)
    return 1 if snapshot.status == RefreshStatus.ERROR else 0


if __name__ == "__main__":
    sys.exit(main())
