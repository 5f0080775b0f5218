"""Place-name resolution: Nominatim + bounded cache + static fallback table.

Resolution order for a name:
1. In-process LRU cache (keyed by the lower-cased name)
2. Optional shared cache tier (Redis)
3. Live geocoder, first candidate wins
4. Static table of well-known places

Only when every tier comes up empty does ``LocationNotFound`` propagate.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from roadtrip.models import Coordinates, LocationNotFound, PlaceResolution, ProviderUnavailable
from roadtrip.services.cache import CacheService
from roadtrip.utils.cache import LRUCache

logger = logging.getLogger(__name__)


def _place(lat: float, lng: float, display_name: str) -> PlaceResolution:
    return PlaceResolution(coordinates=Coordinates(lat=lat, lng=lng), display_name=display_name)


# Well-known places used when the live geocoder is down or finds nothing
STATIC_PLACES: dict[str, PlaceResolution] = {
    "islamabad": _place(33.6844, 73.0479, "Islamabad, Pakistan"),
    "lahore": _place(31.5204, 74.3587, "Lahore, Pakistan"),
    "karachi": _place(24.8607, 67.0011, "Karachi, Pakistan"),
    "peshawar": _place(34.015, 71.5249, "Peshawar, Pakistan"),
    "skardu": _place(35.2971, 75.6333, "Skardu, Pakistan"),
    "gilgit": _place(35.9197, 74.3089, "Gilgit, Pakistan"),
    "murree": _place(33.9062, 73.3903, "Murree, Pakistan"),
    "faisalabad": _place(31.4504, 73.135, "Faisalabad, Pakistan"),
    "rawalpindi": _place(33.5651, 73.0169, "Rawalpindi, Pakistan"),
    "multan": _place(30.1575, 71.5249, "Multan, Pakistan"),
}


@dataclass
class ResolutionOutcome:
    """Settled result of resolving one name in a batch."""
    name: str
    success: bool
    resolution: Optional[PlaceResolution] = None
    error: Optional[str] = None


class GeocoderService(ABC):
    """A live geocoding provider: name -> candidate places."""

    name: str = "geocoder"

    @abstractmethod
    async def search(self, query: str) -> list[PlaceResolution]:
        """Return candidates for ``query``, best first.

        Raises:
            ProviderUnavailable: If the provider could not be reached.
        """
        ...

    async def close(self) -> None:
        pass


class NominatimGeocoderService(GeocoderService):
    """OpenStreetMap Nominatim search (free, no API key)."""

    name = "nominatim"
    NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "RoadTripPlanner/1.0 (contact@roadtrip.app)",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent}
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=self._headers)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def search(self, query: str) -> list[PlaceResolution]:
        params = {"format": "json", "q": query, "limit": 1, "addressdetails": 1}
        try:
            response = await self._get_client().get(
                self.NOMINATIM_URL, params=params, headers=self._headers
            )
            response.raise_for_status()
            results = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderUnavailable(self.name, str(e) or type(e).__name__) from e

        candidates = []
        for item in results if isinstance(results, list) else []:
            try:
                candidates.append(_place(
                    float(item["lat"]),
                    float(item["lon"]),
                    item.get("display_name") or query,
                ))
            except (KeyError, TypeError, ValueError):
                continue
        return candidates


class GeoResolver:
    """Resolves free-text place names to coordinates.

    The static table is the only retry: a failed or empty live lookup goes
    straight to it, never back to the network.
    Shared-tier calls are bounded by ``shared_cache_timeout``; a slow tier
    counts as a miss.
    """

    def __init__(
        self,
        geocoder: GeocoderService | None,
        cache: LRUCache[PlaceResolution] | None = None,
        shared_cache: CacheService | None = None,
        static_places: dict[str, PlaceResolution] | None = None,
        shared_cache_timeout: float = 2.0,
    ) -> None:
        self._geocoder = geocoder
        self._shared_timeout = shared_cache_timeout
        self._cache: LRUCache[PlaceResolution] = cache or LRUCache(max_size=256)
        self._shared_cache = shared_cache
        self._static = STATIC_PLACES if static_places is None else static_places

    @staticmethod
    def cache_key(name: str) -> str:
        return name.strip().lower()

    async def resolve(self, name: str) -> PlaceResolution:
        """Resolve ``name`` to a place.

        Raises:
            LocationNotFound: If neither the live geocoder nor the static
                table knows the name.
        """
        key = self.cache_key(name)
        if not key:
            raise LocationNotFound(name, "empty location name")

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        shared = await self._shared_get(key)
        if shared is not None:
            self._cache.set(key, shared)
            return shared

        failure: str | None = None
        if self._geocoder is not None:
            try:
                candidates = await self._geocoder.search(name)
                if candidates:
                    result = candidates[0]
                    logger.info(
                        f"[GEO] {name} -> ({result.coordinates.lat:.4f}, "
                        f"{result.coordinates.lng:.4f}) via {self._geocoder.name}"
                    )
                    self._cache.set(key, result)
                    await self._shared_set(key, result)
                    return result
                failure = "no candidates"
            except ProviderUnavailable as e:
                failure = e.reason
                logger.info(f"[GEO] Live lookup failed for {name}: {e}")
        else:
            failure = "no geocoder configured"

        fallback = self._static.get(key)
        if fallback is not None:
            logger.info(f"[GEO] Using static coordinates for {name}")
            self._cache.set(key, fallback)
            return fallback

        raise LocationNotFound(name, failure)

    async def resolve_many(self, names: list[str]) -> list[ResolutionOutcome]:
        """Resolve several names concurrently, settling every one."""
        results = await asyncio.gather(
            *(self.resolve(n) for n in names), return_exceptions=True
        )
        outcomes = []
        for name, result in zip(names, results):
            if isinstance(result, PlaceResolution):
                outcomes.append(ResolutionOutcome(name=name, success=True, resolution=result))
            elif isinstance(result, Exception):
                outcomes.append(ResolutionOutcome(name=name, success=False, error=str(result)))
            else:
                raise result
        return outcomes

    async def _shared_get(self, key: str) -> PlaceResolution | None:
        if self._shared_cache is None:
            return None
        try:
            data = await asyncio.wait_for(
                self._shared_cache.get(CacheService.build_geocode_key(key)),
                timeout=self._shared_timeout,
            )
            return PlaceResolution.model_validate(data) if data else None
        except Exception as e:
            logger.info(f"[CACHE] Shared geocode lookup failed: {e!r}")
            return None

    async def _shared_set(self, key: str, value: PlaceResolution) -> None:
        if self._shared_cache is None:
            return
        try:
            await asyncio.wait_for(
                self._shared_cache.set(
                    CacheService.build_geocode_key(key), value.model_dump(mode="json")
                ),
                timeout=self._shared_timeout,
            )
        except Exception as e:
            logger.info(f"[CACHE] Shared geocode store failed: {e!r}")

    async def close(self) -> None:
        if self._geocoder is not None:
            await self._geocoder.close()
        if self._shared_cache is not None:
            await self._shared_cache.close()
