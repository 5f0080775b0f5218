"""Road-trip planning pipeline.

Sequence for one plan:
1. Resolve start and end names (concurrently)
2. Route through the provider chain (synthetic fallback inside)
3. Sample waypoints along the route
4. Discover POIs around the waypoints
5. Summarize POIs and generate travel tips (optional adapter)

Only ``LocationNotFound`` and ``PlanningFailed`` ever reach the caller;
every other failure degrades the result and sets ``degraded=True``.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from roadtrip.config import Settings
from roadtrip.models import (
    EnrichmentMetadata,
    EnrichmentResult,
    NearbyResult,
    PlaceResolution,
    PlanningFailed,
    POI,
    ProviderUnavailable,
)
from roadtrip.services.cache import CacheService, RedisCacheService
from roadtrip.services.geocoding import GeoResolver, NominatimGeocoderService
from roadtrip.services.poi import OpenTripMapPlacesProvider, POIDiscoveryService
from roadtrip.services.routing import (
    GraphHopperRouteProvider,
    OpenRouteServiceProvider,
    OSRMRouteProvider,
    RouteProvider,
    RouteProviderChain,
    WaypointSampler,
)
from roadtrip.services.summarizer import (
    SummarizerService,
    create_summarizer,
    fallback_route_tips,
)
from roadtrip.utils.cache import LRUCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanTier:
    """Sampling/search parameters for one assembly attempt."""
    sampling_interval_km: float
    search_radius_km: float
    corridor_km: float
    coarse: bool = False


class RoutePlannerService:
    """Sequences geocoding, routing, sampling and POI discovery.

    Every collaborator is injected so tests can substitute fakes.
    """

    def __init__(
        self,
        resolver: GeoResolver,
        route_chain: RouteProviderChain,
        sampler: WaypointSampler,
        discovery: POIDiscoveryService,
        summarizer: Optional[SummarizerService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._resolver = resolver
        self._route_chain = route_chain
        self._sampler = sampler
        self._discovery = discovery
        self._summarizer = summarizer
        self._settings = settings or Settings()

    @property
    def primary_tier(self) -> PlanTier:
        s = self._settings
        return PlanTier(s.sampling_interval_km, s.poi_search_radius_km, s.poi_corridor_km)

    @property
    def coarse_tier(self) -> PlanTier:
        s = self._settings
        return PlanTier(
            s.coarse_sampling_interval_km,
            s.coarse_search_radius_km,
            s.coarse_corridor_km,
            coarse=True,
        )

    async def plan(self, start_name: str, end_name: str) -> EnrichmentResult:
        """Plan a road trip from ``start_name`` to ``end_name``.

        Raises:
            LocationNotFound: If either name cannot be resolved.
            PlanningFailed: If route and POI assembly fails on both the
                primary and the coarse tier.
        """
        logger.info(f"[PLAN] Planning {start_name} -> {end_name}")
        start, end = await self._resolve_pair(start_name, end_name)

        attempts: list[str] = []
        try:
            return await self._assemble(start_name, end_name, start, end, self.primary_tier, attempts)
        except Exception as e:
            logger.warning(f"[PLAN] Assembly failed ({e!r}), retrying with coarse sampling")

        attempts.clear()
        try:
            return await self._assemble(start_name, end_name, start, end, self.coarse_tier, attempts)
        except Exception as e:
            logger.error(f"[PLAN] Coarse retry failed: {e!r}")
            raise PlanningFailed(attempts or self._route_chain.provider_names, cause=e) from e

    async def _resolve_pair(
        self, start_name: str, end_name: str
    ) -> tuple[PlaceResolution, PlaceResolution]:
        results = await asyncio.gather(
            self._resolver.resolve(start_name),
            self._resolver.resolve(end_name),
            return_exceptions=True,
        )
        # Report the start location first when both fail
        for result in results:
            if isinstance(result, BaseException):
                raise result
        start, end = results
        return start, end

    async def _assemble(
        self,
        start_name: str,
        end_name: str,
        start: PlaceResolution,
        end: PlaceResolution,
        tier: PlanTier,
        attempts: list[str],
    ) -> EnrichmentResult:
        route = await self._route_chain.route(
            start.coordinates, end.coordinates, destination_name=end.display_name
        )
        attempts.extend(route.attempted_providers)

        samples = self._sampler.sample(route.geometry, tier.sampling_interval_km)
        discovery = await self._discovery.discover(
            route,
            samples,
            search_radius_km=tier.search_radius_km,
            max_results=self._settings.poi_result_cap,
            corridor_km=tier.corridor_km,
        )
        pois, tips = await self._enrich(start_name, end_name, discovery.pois)

        degraded = tier.coarse or route.is_synthetic or discovery.from_fallback
        km = route.distance_meters / 1000
        logger.info(
            f"[PLAN] Done: {km:.1f} km via {route.source.value}, {len(pois)} POIs"
            f"{' (degraded)' if degraded else ''}"
        )
        return EnrichmentResult(
            route=route,
            start=start,
            end=end,
            pois=pois,
            sampling_points=samples,
            route_tips=tips,
            attempted_providers=list(route.attempted_providers),
            metadata=EnrichmentMetadata(
                total_pois=len(pois),
                route_distance=f"{km:.1f} km",
                estimated_duration=f"{round(route.duration_seconds / 60)} minutes",
                route_source=route.source,
                poi_source="static" if discovery.from_fallback else "live",
            ),
            generated_at=datetime.now(timezone.utc),
            degraded=degraded,
        )

    async def _enrich(
        self, start_name: str, end_name: str, pois: list[POI]
    ) -> tuple[list[POI], str]:
        if self._summarizer is None:
            return pois, fallback_route_tips(start_name, end_name)
        enriched, tips = await asyncio.gather(
            self._summarizer.summarize_pois(pois),
            self._summarizer.generate_route_tips(start_name, end_name, pois),
        )
        return enriched, tips

    async def search_nearby(self, location: str, radius_km: float = 20.0) -> NearbyResult:
        """POIs around a single place, without route planning.

        Raises:
            LocationNotFound: If ``location`` cannot be resolved.
        """
        place = await self._resolver.resolve(location)
        cap = self._settings.poi_result_cap
        degraded = False

        pois: list[POI]
        if self._discovery.has_provider:
            try:
                found = await self._discovery.search_near(place.coordinates, radius_km)
                pois = self._discovery.deduplicate(found)
                pois = sorted(pois, key=lambda p: p.rating or 0.0, reverse=True)[:cap]
            except ProviderUnavailable as e:
                logger.info(f"[POI] Nearby search failed ({e}), using static POIs")
                pois = self._discovery.static_fallback([place.coordinates], cap)
                degraded = True
        else:
            pois = self._discovery.static_fallback([place.coordinates], cap)
            degraded = True

        if self._summarizer is not None:
            pois = await self._summarizer.summarize_pois(pois)

        return NearbyResult(
            location=place,
            pois=pois,
            search_radius_km=radius_km,
            generated_at=datetime.now(timezone.utc),
            degraded=degraded,
        )

    def service_status(self) -> dict[str, bool | str]:
        """Which providers are configured (no network calls)."""
        routes = set(self._route_chain.provider_names)
        return {
            "openrouteservice": "openrouteservice" in routes,
            "osrm": "osrm" in routes,
            "graphhopper": "graphhopper" in routes,
            "opentripmap": self._discovery.has_provider,
            "summarizer": self._summarizer.provider_name if self._summarizer else "none",
        }

    async def close(self) -> None:
        await self._resolver.close()
        await self._route_chain.close()
        await self._discovery.close()
        if self._summarizer is not None:
            await self._summarizer.close()


# ═══════════════════════════════════════════════════════════════════════
# Factory: wire providers from settings
# ═══════════════════════════════════════════════════════════════════════

def create_planner(
    settings: Optional[Settings] = None,
    client: httpx.AsyncClient | None = None,
    shared_cache: CacheService | None = None,
) -> RoutePlannerService:
    """Build a planner with every provider whose credentials are present.

    Args:
        settings: Configuration; read from the environment when omitted.
        client: Optional shared HTTP client for every provider.
        shared_cache: Optional second geocode cache tier. When omitted and
            ``REDIS_URL`` is set, a Redis tier is created.
    """
    settings = settings or Settings.from_env()
    timeout = settings.http_timeout_seconds

    if shared_cache is None and settings.redis_url:
        shared_cache = RedisCacheService(redis_url=settings.redis_url, timeout_seconds=timeout)

    resolver = GeoResolver(
        NominatimGeocoderService(
            timeout=timeout, user_agent=settings.nominatim_user_agent, client=client
        ),
        cache=LRUCache(
            max_size=settings.geocode_cache_size, ttl_seconds=settings.geocode_cache_ttl_seconds
        ),
        shared_cache=shared_cache,
        shared_cache_timeout=timeout,
    )

    providers: list[RouteProvider] = []
    if settings.openrouteservice_api_key:
        providers.append(OpenRouteServiceProvider(
            settings.openrouteservice_api_key,
            profile=settings.routing_profile,
            timeout=timeout,
            client=client,
        ))
    providers.append(OSRMRouteProvider(timeout=timeout, client=client))
    if settings.graphhopper_api_key:
        providers.append(GraphHopperRouteProvider(
            settings.graphhopper_api_key, timeout=timeout, client=client
        ))

    places = (
        OpenTripMapPlacesProvider(settings.opentripmap_api_key, timeout=timeout, client=client)
        if settings.opentripmap_api_key
        else None
    )

    logger.info(
        f"[PLAN] Route providers: {[p.name for p in providers]}, "
        f"places: {places.name if places else 'static'}"
    )
    return RoutePlannerService(
        resolver=resolver,
        route_chain=RouteProviderChain(
            providers,
            synthetic_points=settings.synthetic_route_points,
            synthetic_speed_kmh=settings.synthetic_speed_kmh,
        ),
        sampler=WaypointSampler(
            interval_km=settings.sampling_interval_km,
            min_samples=settings.min_samples,
            max_samples=settings.max_samples,
        ),
        discovery=POIDiscoveryService(
            places,
            corridor_km=settings.poi_corridor_km,
            area_quota=settings.poi_area_quota,
            candidates_per_point=settings.poi_candidates_per_point,
            max_concurrency=settings.poi_query_concurrency,
            static_radius_km=settings.static_poi_radius_km,
        ),
        summarizer=create_summarizer(settings),
        settings=settings,
    )
