"""Road Trip Planner Services.

Service layer components:
- Cache: Redis-backed shared cache tier
- Geocoding: Nominatim place resolution with LRU cache and static table
- Routing: OpenRouteService -> OSRM -> GraphHopper chain, synthetic fallback
- POI: OpenTripMap discovery along the route corridor, static fallback
- Summarizer: Groq (primary) + Gemini (fallback) POI summaries and tips
- Planner: the end-to-end pipeline
"""

from .cache import CacheService, RedisCacheService
from .geocoding import GeoResolver, GeocoderService, NominatimGeocoderService
from .routing import RouteProvider, RouteProviderChain, WaypointSampler
from .poi import OpenTripMapPlacesProvider, PlacesProvider, POIDiscoveryService
from .summarizer import SummarizerService, create_summarizer
from .planner import RoutePlannerService, create_planner

__all__ = [
    # Cache
    "CacheService",
    "RedisCacheService",
    # Geocoding
    "GeoResolver",
    "GeocoderService",
    "NominatimGeocoderService",
    # Routing
    "RouteProvider",
    "RouteProviderChain",
    "WaypointSampler",
    # POI
    "OpenTripMapPlacesProvider",
    "PlacesProvider",
    "POIDiscoveryService",
    # Summarizer
    "SummarizerService",
    "create_summarizer",
    # Planner
    "RoutePlannerService",
    "create_planner",
]
