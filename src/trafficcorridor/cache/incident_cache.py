"""In-memory incident query cache.

Wraps an upstream incident fetch with a time-bounded cache so a polling
UI does not re-hit the traffic API inside one refresh window.

- Keys come from the rounded bounding box plus the sorted filter set.
- Entries expire lazily: a stale entry is only replaced, never swept.
- A failed fetch leaves the cache untouched and the error propagates; a
  stale entry is never served in its place.
- Concurrent callers for the same key share one in-flight fetch.
"""

import json
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Optional, Union

from trafficcorridor.incidents.models import Incident
from trafficcorridor.utils.geo import BoundingBox

logger = logging.getLogger(__name__)

# Decimal places kept when keying on a bounding box (~11 m)
KEY_PRECISION = 4

CacheKey = str
FetchFn = Callable[[], list[Incident]]


@dataclass(frozen=True)
class CacheEntry:
    """Cached result of one incident query."""

    key: CacheKey
    timestamp: float
    incidents: tuple[Incident, ...]

    def age_seconds(self, now: float) -> float:
        return now - self.timestamp

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return self.age_seconds(now) < ttl_seconds


def make_cache_key(
    bbox: BoundingBox,
    filters: Iterable[str],
    namespace: str = "",
) -> CacheKey:
    """Build a cache key insensitive to float jitter and filter order.

    Args:
        bbox: Query bounding box
        filters: Incident filter names
        namespace: Optional partition (e.g. API key) so callers don't share

    Examples:
        >>> make_cache_key(BoundingBox(34.0, -118.3, 34.1, -118.2), ["incidents", "construction"])
        '{"bbox": [34.0, -118.3, 34.1, -118.2], "filters": ["construction", "incidents"], "ns": ""}'
    """
    return json.dumps(
        {
            "bbox": [
                round(bbox.south, KEY_PRECISION),
                round(bbox.west, KEY_PRECISION),
                round(bbox.north, KEY_PRECISION),
                round(bbox.east, KEY_PRECISION),
            ],
            "filters": sorted(set(filters)),
            "ns": namespace,
        }
    )


def _ttl_seconds(ttl: Union[timedelta, float]) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)


class IncidentCache:
    """Time-bounded, single-flight cache of normalized incident lists.

    Example:
        >>> cache = IncidentCache()
        >>> key = make_cache_key(bbox, ["incidents"])
        >>> incidents = cache.get_or_fetch(key, timedelta(minutes=2), fetch)
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize an empty cache.

        Args:
            clock: Returns the current time in seconds
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._inflight: dict[CacheKey, Future] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def peek(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the entry for key regardless of age, without fetching."""
        with self._lock:
            return self._entries.get(key)

    def invalidate(self, key: Optional[CacheKey] = None) -> None:
        """Drop one entry, or every entry when key is None."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def get_or_fetch(
        self,
        key: CacheKey,
        ttl: Union[timedelta, float],
        fetch: FetchFn,
    ) -> list[Incident]:
        """Return cached incidents for key, fetching on a miss.

        Args:
            key: Cache key (see make_cache_key)
            ttl: Maximum age served without refetching (timedelta or seconds)
            fetch: Called at most once per miss, shared by concurrent callers

        Returns:
            Incidents for the key

        Raises:
            Exception: Whatever fetch raised; the cache is left unchanged.
        """
        ttl_seconds = _ttl_seconds(ttl)

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(self._clock(), ttl_seconds):
                logger.debug(f"Cache HIT for {key}")
                return list(entry.incidents)

            pending = self._inflight.get(key)
            leader = pending is None
            if leader:
                pending = Future()
                self._inflight[key] = pending

        if not leader:
            logger.debug(f"Cache WAIT for in-flight fetch of {key}")
            return list(pending.result())

        logger.debug(f"Cache MISS for {key}")
        try:
            incidents = tuple(fetch())
        except BaseException as e:
            # BaseException too: the key must never stay in flight
            with self._lock:
                self._inflight.pop(key, None)
            pending.set_exception(e)
            raise

        with self._lock:
            self._entries[key] = CacheEntry(key=key, timestamp=self._clock(), incidents=incidents)
            self._inflight.pop(key, None)
        pending.set_result(incidents)
        return list(incidents)
