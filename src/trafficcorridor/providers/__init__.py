"""Upstream data providers (traffic incidents, directions, geocoding)."""

from trafficcorridor.providers.mapquest import MapQuestClient, parse_route

__all__ = ["MapQuestClient", "parse_route"]
