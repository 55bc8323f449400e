"""MapQuest client for incidents, directions and reverse geocoding.

Implements the three upstream collaborators the refresh scheduler consumes:

- ``fetch_incidents(bbox, filters)``: raw incident records
- ``fetch_route(origin, destination)``: a RouteResponse
- ``reverse_geocode(point)``: an advisory address label

Failed requests are not retried here; the scheduler retries on its next
tick so a failing upstream is not hammered.

API docs:
- https://developer.mapquest.com/documentation/api/traffic/
- https://developer.mapquest.com/documentation/api/directions/
"""

import logging
from math import isfinite, nan
from typing import Any, Optional, Sequence

import requests

from trafficcorridor.config import MAPQUEST_BASE_URL, REQUEST_TIMEOUT
from trafficcorridor.exceptions import FetchError
from trafficcorridor.routing.congestion import ManeuverTiming
from trafficcorridor.routing.route import RouteResponse
from trafficcorridor.utils.geo import BoundingBox, GeoPoint

logger = logging.getLogger(__name__)

INCIDENTS_PATH = "/traffic/v2/incidents"
DIRECTIONS_PATH = "/directions/v2/route"
REVERSE_GEOCODE_PATH = "/geocoding/v1/reverse"

USER_AGENT = "trafficcorridor/0.1"


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class MapQuestClient:
    """Thin MapQuest API client.

    Example:
        >>> client = MapQuestClient(api_key="...")
        >>> records = client.fetch_incidents(bbox, ["incidents", "construction"])
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = MAPQUEST_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            api_key: MapQuest API key
            base_url: API root, overridable for a proxy
            timeout: Per-request timeout in seconds
            session: Optional pre-configured requests session
        """
        if not api_key:
            raise ValueError("Missing MapQuest API key")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    def _get_json(self, path: str, params: dict) -> Any:
        """GET a MapQuest endpoint and decode its JSON body.

        Raises:
            FetchError: On network errors, non-2xx status or invalid JSON.
        """
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(
                url, params={"key": self.api_key, **params}, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise FetchError(f"Request to {path} failed: {e}") from e

        if not response.ok:
            raise FetchError(
                f"Request to {path} failed ({response.status_code})",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {path}: {e}") from e

    def fetch_incidents(
        self, bbox: BoundingBox, filters: Sequence[str]
    ) -> list[dict[str, Any]]:
        """Fetch raw incident records inside a bounding box.

        Args:
            bbox: Query area
            filters: Categories (construction, incidents, event, congestion)

        Returns:
            Raw incident dicts (body "incidents" or "results"; empty if neither)

        Raises:
            FetchError: If the request fails.
        """
        data = self._get_json(
            INCIDENTS_PATH,
            {"boundingBox": bbox.to_mapquest(), "filters": ",".join(filters)},
        )

        records: Any = []
        if isinstance(data, dict):
            records = data.get("incidents")
            if not isinstance(records, list):
                records = data.get("results")
        if not isinstance(records, list):
            records = []

        logger.info(f"Fetched {len(records)} incident records for {bbox.to_mapquest()}")
        return records

    def fetch_route(self, origin: GeoPoint, destination: GeoPoint) -> RouteResponse:
        """Fetch a traffic-aware fastest route.

        Raises:
            FetchError: If the request fails or MapQuest reports a route error.
        """
        data = self._get_json(
            DIRECTIONS_PATH,
            {
                "from": f"{origin.lat},{origin.lng}",
                "to": f"{destination.lat},{destination.lng}",
                "routeType": "fastest",
                "useTraffic": "true",
                "fullShape": "true",
            },
        )
        return parse_route(data)

    def reverse_geocode(self, point: GeoPoint) -> Optional[str]:
        """Best-effort "street, city, state" label for a point.

        Advisory only: any failure is logged and returns None.
        """
        try:
            data = self._get_json(
                REVERSE_GEOCODE_PATH,
                {"location": f"{point.lat},{point.lng}", "maxResults": 1},
            )
            location = data["results"][0]["locations"][0]
        except (FetchError, KeyError, IndexError, TypeError) as e:
            logger.warning(f"Reverse geocode failed for {point.to_tuple()}: {e}")
            return None

        if not isinstance(location, dict):
            return None
        parts = [location.get(k) for k in ("street", "adminArea5", "adminArea3")]
        label = ", ".join(p for p in parts if isinstance(p, str) and p.strip())
        return label or None


def parse_route(data: Any) -> RouteResponse:
    """Convert a MapQuest directions body into a RouteResponse.

    Raises:
        FetchError: If the body has no route or carries a routeError.
    """
    route = data.get("route") if isinstance(data, dict) else None
    if not isinstance(route, dict):
        raise FetchError("Could not calculate route")

    error = route.get("routeError")
    if isinstance(error, dict) and (error.get("errorCode", -400) != -400 or error.get("message")):
        raise FetchError(error.get("message") or "Could not calculate route")

    shape = route.get("shape") or {}
    # maneuverIndexes run across the whole shape, so legs are concatenated
    raw_maneuvers = []
    for leg in route.get("legs") or []:
        if isinstance(leg, dict):
            raw_maneuvers.extend(leg.get("maneuvers") or [])

    maneuvers = []
    for m in raw_maneuvers:
        if not isinstance(m, dict):
            continue
        distance = _to_float(m.get("distance"))
        time_s = _to_float(m.get("time"))
        maneuvers.append(
            ManeuverTiming(
                distance_miles=distance if distance is not None else nan,
                time_seconds=time_s if time_s is not None else nan,
            )
        )

    indexes = []
    for value in shape.get("maneuverIndexes") or []:
        number = _to_float(value)
        indexes.append(int(number) if number is not None and isfinite(number) else 0)

    return RouteResponse(
        shape_points=list(shape.get("shapePoints") or []),
        maneuvers=maneuvers,
        maneuver_indexes=indexes,
        time_seconds=_to_float(route.get("time")),
        real_time_seconds=_to_float(route.get("realTime")),
    )
