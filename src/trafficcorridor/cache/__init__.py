"""In-memory caching of incident queries.

Entries live only as long as the process; nothing is persisted.
"""

from trafficcorridor.cache.incident_cache import (
    KEY_PRECISION,
    CacheEntry,
    CacheKey,
    IncidentCache,
    make_cache_key,
)

__all__ = [
    "KEY_PRECISION",
    "CacheEntry",
    "CacheKey",
    "IncidentCache",
    "make_cache_key",
]
