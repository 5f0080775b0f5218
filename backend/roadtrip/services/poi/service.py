"""POI discovery along a route using the OpenTripMap places API.

Pipeline for one route:
1. Skip the first sampling point (it sits on the origin)
2. Query every remaining point concurrently (bounded fan-out), settle all
3. Merge and deduplicate (provider id and ~11 m rounded coordinate)
4. Keep only POIs within the corridor around the real route geometry
5. Sort by rating, then pick greedily with a per-area quota so one dense
   city centre cannot crowd out the rest of the trip

When no places provider is configured, or every query fails, a small
static set of well-known stops near the sampling points is used instead.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx
from pydantic import ValidationError

from roadtrip.models import POI, Coordinates, POICategory, ProviderUnavailable, RouteResult
from roadtrip.utils.geo import distance_to_path_km, haversine_km, to_array

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Interesting place to visit"

SEARCH_KINDS = (
    "interesting_places,cultural,natural,historic,architecture,museums,sport,amusements"
)

# First matching kind wins
KIND_TO_CATEGORY: list[tuple[str, POICategory]] = [
    ("museums", POICategory.MUSEUM),
    ("cultural", POICategory.CULTURAL_SITE),
    ("natural", POICategory.NATURE),
    ("historic", POICategory.HISTORICAL_SITE),
    ("architecture", POICategory.ARCHITECTURE),
    ("religion", POICategory.RELIGIOUS_SITE),
    ("sport", POICategory.SPORTS_RECREATION),
    ("amusements", POICategory.ENTERTAINMENT),
]


def map_kinds(kinds: Optional[str]) -> POICategory:
    """Map an OpenTripMap comma-separated ``kinds`` string to a category."""
    if not kinds:
        return POICategory.ATTRACTION
    for key, category in KIND_TO_CATEGORY:
        if key in kinds:
            return category
    return POICategory.ATTRACTION


def parse_rating(rate: Any) -> Optional[float]:
    """Parse OpenTripMap ``rate`` (e.g. ``3`` or ``"3h"``) into ``[0, 5]``."""
    if rate is None:
        return None
    digits = "".join(ch for ch in str(rate) if ch.isdigit() or ch == ".")
    try:
        return max(0.0, min(5.0, float(digits)))
    except ValueError:
        return None


def _format_address(address: Any) -> Optional[str]:
    if isinstance(address, str):
        return address or None
    if not isinstance(address, dict):
        return None
    if address.get("formatted"):
        return address["formatted"]
    parts = [
        address.get(k)
        for k in ("road", "city", "state", "country")
        if address.get(k)
    ]
    return ", ".join(parts) or None


def dedup_key(poi: POI) -> str:
    """Rounded-coordinate identity (4 decimals, about 11 m)."""
    return f"{poi.location.lat:.4f},{poi.location.lng:.4f}"


def area_bucket(poi: POI) -> tuple[float, float]:
    """0.2 degree grid cell used for the per-area quota."""
    # Halves round up, so 0.1 lands in the 0.2 cell
    return (
        math.floor(poi.location.lat * 5 + 0.5) / 5,
        math.floor(poi.location.lng * 5 + 0.5) / 5,
    )


def _static_poi(
    poi_id: str,
    name: str,
    summary: str,
    category: POICategory,
    lat: float,
    lng: float,
    rating: float,
) -> POI:
    return POI(
        id=poi_id,
        name=name,
        summary=summary,
        category=category,
        location=Coordinates(lat=lat, lng=lng),
        rating=rating,
    )


STATIC_POIS: list[POI] = [
    _static_poi(
        "faisal-mosque", "Faisal Mosque",
        "Iconic modern mosque and one of the largest in the world, featuring stunning "
        "contemporary Islamic architecture.",
        POICategory.RELIGIOUS_SITE, 33.7294, 73.0386, 4.8,
    ),
    _static_poi(
        "daman-e-koh", "Daman-e-Koh",
        "Scenic viewpoint in the Margalla Hills offering panoramic views of Islamabad "
        "and surrounding valleys.",
        POICategory.NATURE, 33.742, 73.0835, 4.6,
    ),
    _static_poi(
        "badshahi-mosque", "Badshahi Mosque",
        "Magnificent 17th-century Mughal mosque, one of the largest in the world with "
        "stunning red sandstone architecture.",
        POICategory.RELIGIOUS_SITE, 31.5889, 74.3107, 4.9,
    ),
    _static_poi(
        "lahore-fort", "Lahore Fort",
        "Historic Mughal fortress complex featuring palaces, gardens, and museums "
        "showcasing centuries of history.",
        POICategory.HISTORICAL_SITE, 31.5888, 74.3142, 4.7,
    ),
    _static_poi(
        "shalimar-gardens", "Shalimar Gardens",
        "UNESCO World Heritage Mughal garden with terraced lawns, fountains, and "
        "pavilions from the 17th century.",
        POICategory.CULTURAL_SITE, 31.5827, 74.3755, 4.5,
    ),
    _static_poi(
        "deosai-plains", "Deosai Plains",
        'High-altitude plateau known as "Land of Giants" with stunning wildflower '
        "blooms and wildlife viewing.",
        POICategory.NATURE, 35.0289, 75.0731, 4.9,
    ),
    _static_poi(
        "shangrila-resort", "Shangrila Resort",
        "Beautiful lakeside resort in Skardu offering stunning views of Lower Kachura "
        "Lake and surrounding mountains.",
        POICategory.NATURE, 35.2433, 75.5089, 4.4,
    ),
    _static_poi(
        "k2-base-camp", "K2 Base Camp Trek",
        "World-renowned trekking destination leading to the base of K2, the second "
        "highest mountain in the world.",
        POICategory.NATURE, 35.8825, 76.5133, 5.0,
    ),
]


@dataclass
class DiscoveryResult:
    """POIs found for a route and whether the static set supplied them."""
    pois: list[POI]
    from_fallback: bool = False


class PlacesProvider(ABC):
    """A places API: area search for stubs, then per-stub details."""

    name: str = "places"

    @abstractmethod
    async def search(self, center: Coordinates, radius_meters: int) -> list[str]:
        """Return provider ids of places near ``center``.

        Raises:
            ProviderUnavailable: If the search request failed.
        """
        ...

    @abstractmethod
    async def details(self, place_id: str) -> Optional[POI]:
        """Fetch one place; None when it lacks a name or location."""
        ...

    async def close(self) -> None:
        pass


class OpenTripMapPlacesProvider(PlacesProvider):
    """OpenTripMap ``/places/radius`` + ``/places/xid`` client."""

    name = "opentripmap"
    BASE_URL = "https://api.opentripmap.com/0.1/en/places"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def search(self, center: Coordinates, radius_meters: int) -> list[str]:
        params = {
            "radius": radius_meters,
            "lon": center.lng,
            "lat": center.lat,
            "kinds": SEARCH_KINDS,
            "format": "json",
            "limit": 50,
            "apikey": self._api_key,
        }
        try:
            response = await self._get_client().get(f"{self.BASE_URL}/radius", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderUnavailable(self.name, str(e) or type(e).__name__) from e

        # format=json gives a plain list; the default GeoJSON gives features
        if isinstance(data, dict):
            items = [f.get("properties", {}) for f in data.get("features", [])]
        elif isinstance(data, list):
            items = data
        else:
            items = []
        return [item["xid"] for item in items if isinstance(item, dict) and item.get("xid")]

    async def details(self, place_id: str) -> Optional[POI]:
        try:
            response = await self._get_client().get(
                f"{self.BASE_URL}/xid/{place_id}", params={"apikey": self._api_key}
            )
            if response.status_code != 200:
                return None
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info(f"[POI] Details error for {place_id}: {e}")
            return None
        return self.parse_details(data)

    @staticmethod
    def parse_details(data: dict) -> Optional[POI]:
        point = data.get("point") or {}
        if not data.get("name") or "lat" not in point or "lon" not in point:
            return None
        try:
            return POI(
                id=str(data.get("xid") or f"{point['lat']},{point['lon']}"),
                name=data["name"],
                summary=(
                    (data.get("wikipedia_extracts") or {}).get("text")
                    or (data.get("info") or {}).get("descr")
                    or DEFAULT_SUMMARY
                ),
                category=map_kinds(data.get("kinds")),
                location=Coordinates(lat=float(point["lat"]), lng=float(point["lon"])),
                rating=parse_rating(data.get("rate")),
                address=_format_address(data.get("address")),
                wikipedia_url=data.get("wikipedia") or None,
                website_url=data.get("url") or None,
                image_url=(data.get("preview") or {}).get("source") or data.get("image") or None,
            )
        except (ValidationError, TypeError, ValueError) as e:
            logger.info(f"[POI] Skipping malformed place {data.get('xid')}: {e}")
            return None


class POIDiscoveryService:
    """Finds, filters and spreads POIs along a route."""

    def __init__(
        self,
        provider: PlacesProvider | None,
        corridor_km: float = 25.0,
        area_quota: int = 5,
        candidates_per_point: int = 10,
        max_concurrency: int = 5,
        static_pois: list[POI] | None = None,
        static_radius_km: float = 100.0,
    ) -> None:
        self._provider = provider
        self._corridor_km = corridor_km
        self._area_quota = area_quota
        self._candidates_per_point = candidates_per_point
        self._max_concurrency = max(1, max_concurrency)
        self._static_pois = STATIC_POIS if static_pois is None else static_pois
        self._static_radius_km = static_radius_km

    @property
    def has_provider(self) -> bool:
        return self._provider is not None

    async def discover(
        self,
        route: RouteResult,
        sampling_points: Sequence[Coordinates],
        search_radius_km: float = 15.0,
        max_results: int = 25,
        corridor_km: float | None = None,
    ) -> DiscoveryResult:
        """Discover POIs along ``route``; never raises on provider failure."""
        if self._provider is None:
            logger.info("[POI] No places provider configured, using static POIs")
            return self._fallback(sampling_points, max_results)

        search_points = list(sampling_points[1:])
        if not search_points:
            return DiscoveryResult(pois=[])

        try:
            found = await self._query_all(search_points, search_radius_km)
        except ProviderUnavailable as e:
            logger.info(f"[POI] {e}, using static POIs")
            return self._fallback(sampling_points, max_results)

        unique = self.deduplicate(found)
        near = self.filter_near_route(
            unique, route.geometry, corridor_km if corridor_km is not None else self._corridor_km
        )
        logger.info(f"[POI] POIs near route: {len(near)} out of {len(unique)} total")
        selected = self.select_with_area_quota(near, max_results, self._area_quota)
        return DiscoveryResult(pois=selected)

    async def search_near(self, center: Coordinates, radius_km: float) -> list[POI]:
        """Places around one point: first N candidates, details settled."""
        if self._provider is None:
            raise ProviderUnavailable("places", "no places provider configured")
        ids = await self._provider.search(center, int(radius_km * 1000))
        ids = ids[: self._candidates_per_point]
        results = await asyncio.gather(
            *(self._provider.details(pid) for pid in ids), return_exceptions=True
        )
        pois = []
        for result in results:
            if isinstance(result, POI):
                pois.append(result)
            elif isinstance(result, Exception):
                logger.info(f"[POI] Details failed: {result}")
            elif isinstance(result, BaseException):
                raise result
        return pois

    async def _query_all(
        self, points: list[Coordinates], radius_km: float
    ) -> list[POI]:
        """Query every point concurrently and keep the successes.

        Raises:
            ProviderUnavailable: If every single query failed.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def query(point: Coordinates) -> list[POI]:
            async with semaphore:
                return await self.search_near(point, radius_km)

        results = await asyncio.gather(*(query(p) for p in points), return_exceptions=True)

        merged: list[POI] = []
        failures = 0
        for point, result in zip(points, results):
            if isinstance(result, list):
                merged.extend(result)
            elif isinstance(result, Exception):
                failures += 1
                logger.info(f"[POI] Query at ({point.lat:.4f}, {point.lng:.4f}) failed: {result}")
            else:
                raise result

        logger.info(f"[POI] {len(points) - failures}/{len(points)} queries succeeded, {len(merged)} POIs")
        if failures == len(points):
            name = self._provider.name if self._provider else "places"
            raise ProviderUnavailable(name, "every query failed")
        return merged

    def _fallback(self, sampling_points: Sequence[Coordinates], max_results: int) -> DiscoveryResult:
        return DiscoveryResult(
            pois=self.static_fallback(sampling_points, max_results), from_fallback=True
        )

    def static_fallback(
        self, sampling_points: Sequence[Coordinates], max_results: int = 25
    ) -> list[POI]:
        """Static POIs within the fallback radius of any sampling point."""
        nearby = [
            poi for poi in self._static_pois
            if any(
                haversine_km(point, poi.location) <= self._static_radius_km
                for point in sampling_points
            )
        ]
        return self.select_with_area_quota(
            self.deduplicate(nearby), max_results, self._area_quota
        )

    @staticmethod
    def deduplicate(pois: list[POI]) -> list[POI]:
        """Keep the first POI per provider id and per rounded coordinate."""
        seen_ids: set[str] = set()
        seen_coords: set[str] = set()
        unique = []
        for poi in pois:
            key = dedup_key(poi)
            if poi.id in seen_ids or key in seen_coords:
                continue
            seen_ids.add(poi.id)
            seen_coords.add(key)
            unique.append(poi)
        return unique

    @staticmethod
    def filter_near_route(
        pois: list[POI], geometry: Sequence[Coordinates], max_distance_km: float
    ) -> list[POI]:
        """POIs within ``max_distance_km`` of some segment of ``geometry``."""
        if len(geometry) < 2:
            return list(pois)
        path = to_array(geometry)
        return [p for p in pois if distance_to_path_km(p.location, path) <= max_distance_km]

    @staticmethod
    def select_with_area_quota(
        pois: list[POI], max_results: int, area_quota: int = 5
    ) -> list[POI]:
        """Rating-ordered greedy pick, at most ``area_quota`` per 0.2 degree cell."""
        ranked = sorted(pois, key=lambda p: p.rating or 0.0, reverse=True)
        buckets: dict[tuple[float, float], int] = {}
        selected: list[POI] = []
        for poi in ranked:
            if len(selected) >= max_results:
                break
            bucket = area_bucket(poi)
            if buckets.get(bucket, 0) >= area_quota:
                continue
            buckets[bucket] = buckets.get(bucket, 0) + 1
            selected.append(poi)
        return selected

    async def close(self) -> None:
        if self._provider is not None:
            await self._provider.close()
