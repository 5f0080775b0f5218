"""Core data models for the Road Trip planner.

Pydantic models for coordinates, resolved places, route results, points of
interest (POIs) and the final enrichment result returned to the
presentation layer.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Coordinates(BaseModel):
    """Geographic coordinates with validation.

    Latitude must be between -90 and 90 degrees.
    Longitude must be between -180 and 180 degrees.
    Instances are immutable so they can be used as dict keys.
    """

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(..., ge=-180, le=180, description="Longitude in degrees")


class PlaceResolution(BaseModel):
    """A free-text place name resolved to a coordinate."""

    coordinates: Coordinates = Field(..., description="Resolved location")
    display_name: str = Field(..., description="Human-readable name from the geocoder")


class BoundingBox(BaseModel):
    """Axis-aligned lat/lng bounding box."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, point: Coordinates) -> bool:
        return (
            self.min_lat <= point.lat <= self.max_lat
            and self.min_lng <= point.lng <= self.max_lng
        )


class RouteSource(str, Enum):
    """Where a route's geometry came from."""

    OPENROUTESERVICE = "openrouteservice"
    OSRM = "osrm"
    GRAPHHOPPER = "graphhopper"
    SYNTHETIC = "synthetic"


class RouteResult(BaseModel):
    """A computed route between two coordinates.

    Geometry is always stored as ``[lat, lng]`` coordinates regardless of
    the wire order used by the provider that produced it.
    """

    geometry: list[Coordinates] = Field(
        ..., min_length=2, description="Ordered route polyline"
    )
    distance_meters: float = Field(..., ge=0, description="Total distance in meters")
    duration_seconds: float = Field(..., ge=0, description="Total duration in seconds")
    instructions: list[dict[str, Any]] = Field(
        default_factory=list, description="Opaque provider step records"
    )
    bounding_box: BoundingBox = Field(..., description="Bounds of the geometry")
    source: RouteSource = Field(..., description="Provider that produced the route")
    attempted_providers: list[str] = Field(
        default_factory=list, description="Providers tried, in order, for this route"
    )

    @property
    def is_synthetic(self) -> bool:
        return self.source == RouteSource.SYNTHETIC


class POICategory(str, Enum):
    """POI categories, serialized as these exact identifiers."""

    MUSEUM = "Museum"
    CULTURAL_SITE = "CulturalSite"
    NATURE = "Nature"
    HISTORICAL_SITE = "HistoricalSite"
    ARCHITECTURE = "Architecture"
    RELIGIOUS_SITE = "ReligiousSite"
    SPORTS_RECREATION = "SportsRecreation"
    ENTERTAINMENT = "Entertainment"
    ATTRACTION = "Attraction"

    @property
    def label(self) -> str:
        """Display label, e.g. ``Cultural Site``."""
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    POICategory.MUSEUM: "Museum",
    POICategory.CULTURAL_SITE: "Cultural Site",
    POICategory.NATURE: "Nature",
    POICategory.HISTORICAL_SITE: "Historical Site",
    POICategory.ARCHITECTURE: "Architecture",
    POICategory.RELIGIOUS_SITE: "Religious Site",
    POICategory.SPORTS_RECREATION: "Sports & Recreation",
    POICategory.ENTERTAINMENT: "Entertainment",
    POICategory.ATTRACTION: "Attraction",
}


class POI(BaseModel):
    """Point of Interest found near the route.

    ``id`` is the provider-native identifier (OpenTripMap ``xid`` or a slug
    for static fallback entries).
    """

    id: str = Field(..., min_length=1, description="Provider identifier")
    name: str = Field(..., min_length=1, description="Display name of the place")
    summary: str = Field(default="", description="Provider description")
    category: POICategory = Field(default=POICategory.ATTRACTION)
    location: Coordinates = Field(..., description="Geographic location")
    rating: Optional[float] = Field(None, ge=0, le=5, description="Rating 0-5")
    address: Optional[str] = Field(None, description="Formatted address")
    wikipedia_url: Optional[str] = Field(None, description="Wikipedia article")
    website_url: Optional[str] = Field(None, description="Official website")
    image_url: Optional[str] = Field(None, description="Preview image")
    ai_summary: Optional[str] = Field(
        None, description="Enriched description from the summarizer"
    )


class EnrichmentMetadata(BaseModel):
    """Human-readable facts about a plan, for display."""

    total_pois: int = 0
    route_distance: str = ""
    estimated_duration: str = ""
    route_source: RouteSource
    poi_source: str = Field(..., description="'live' or 'static'")


class EnrichmentResult(BaseModel):
    """Final output of a road-trip plan.

    ``degraded`` is True whenever any fallback tier produced part of the
    result (synthetic route, static POIs or the coarse retry).
    """

    route: RouteResult
    start: PlaceResolution
    end: PlaceResolution
    pois: list[POI] = Field(default_factory=list)
    sampling_points: list[Coordinates] = Field(default_factory=list)
    route_tips: str = ""
    attempted_providers: list[str] = Field(default_factory=list)
    metadata: EnrichmentMetadata
    generated_at: datetime
    degraded: bool = False


class NearbyResult(BaseModel):
    """POIs around a single resolved location."""

    location: PlaceResolution
    pois: list[POI] = Field(default_factory=list)
    search_radius_km: float
    generated_at: datetime
    degraded: bool = False
