"""POI discovery along a route (OpenTripMap + static fallback)."""

from .service import (
    DEFAULT_SUMMARY,
    STATIC_POIS,
    DiscoveryResult,
    OpenTripMapPlacesProvider,
    PlacesProvider,
    POIDiscoveryService,
    area_bucket,
    dedup_key,
    map_kinds,
    parse_rating,
)

__all__ = [
    "DEFAULT_SUMMARY",
    "STATIC_POIS",
    "DiscoveryResult",
    "OpenTripMapPlacesProvider",
    "PlacesProvider",
    "POIDiscoveryService",
    "area_bucket",
    "dedup_key",
    "map_kinds",
    "parse_rating",
]
