"""Place-name geocoding with cache and static fallback."""

from .service import (
    STATIC_PLACES,
    GeocoderService,
    GeoResolver,
    NominatimGeocoderService,
    ResolutionOutcome,
)

__all__ = [
    "STATIC_PLACES",
    "GeocoderService",
    "GeoResolver",
    "NominatimGeocoderService",
    "ResolutionOutcome",
]
