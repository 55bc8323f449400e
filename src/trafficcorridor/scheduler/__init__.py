"""Refresh scheduling: timer, triggers, stale-result discard, snapshots."""

from .refresh import (
    Mode,
    RefreshQuery,
    RefreshResult,
    RefreshScheduler,
    RefreshStatus,
    RouteState,
    Snapshot,
)

__all__ = [
    "Mode",
    "RefreshQuery",
    "RefreshResult",
    "RefreshScheduler",
    "RefreshStatus",
    "RouteState",
    "Snapshot",
]
