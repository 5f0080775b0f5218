"""Data models for the Road Trip planner."""

from .core import (
    BoundingBox,
    Coordinates,
    EnrichmentMetadata,
    EnrichmentResult,
    NearbyResult,
    PlaceResolution,
    POI,
    POICategory,
    RouteResult,
    RouteSource,
)
from .errors import (
    AppError,
    ErrorCode,
    LocationNotFound,
    PlanningFailed,
    ProviderUnavailable,
    RoadTripError,
)

__all__ = [
    "BoundingBox",
    "Coordinates",
    "EnrichmentMetadata",
    "EnrichmentResult",
    "NearbyResult",
    "PlaceResolution",
    "POI",
    "POICategory",
    "RouteResult",
    "RouteSource",
    "AppError",
    "ErrorCode",
    "LocationNotFound",
    "PlanningFailed",
    "ProviderUnavailable",
    "RoadTripError",
]
