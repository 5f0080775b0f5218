"""Route computation with an ordered provider fallback chain.

Providers are tried strictly in order (OpenRouteService → OSRM →
GraphHopper); the first one that returns usable geometry wins. When every
live provider fails the chain synthesizes a straight interpolated path, so
``RouteProviderChain.route`` never raises.

All providers speak GeoJSON on the wire, i.e. ``[lng, lat]`` pairs.
Everything inside this package is ``Coordinates(lat, lng)``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from roadtrip.models import Coordinates, ProviderUnavailable, RouteResult, RouteSource
from roadtrip.utils.geo import bounding_box, haversine_km, interpolate

logger = logging.getLogger(__name__)

DEFAULT_SPEED_KMH = 60.0


def lnglat_to_coordinates(pairs: Sequence[Sequence[float]]) -> list[Coordinates]:
    """Convert wire-order ``[lng, lat]`` pairs to ``Coordinates``."""
    return [Coordinates(lat=float(pair[1]), lng=float(pair[0])) for pair in pairs]


def build_route_result(
    geometry: list[Coordinates],
    source: RouteSource,
    distance_meters: float | None = None,
    duration_seconds: float | None = None,
    instructions: list[dict[str, Any]] | None = None,
    speed_kmh: float = DEFAULT_SPEED_KMH,
) -> RouteResult:
    """Assemble a ``RouteResult``, estimating missing distance/duration.

    Provider-supplied figures always win. Missing ones are estimated from
    the geometry endpoints at ``speed_kmh``.
    """
    if len(geometry) < 2:
        raise ValueError("A route needs at least two points")

    if distance_meters is None:
        distance_meters = haversine_km(geometry[0], geometry[-1]) * 1000
    if duration_seconds is None:
        duration_seconds = (distance_meters / 1000) / speed_kmh * 3600

    return RouteResult(
        geometry=geometry,
        distance_meters=max(0.0, float(distance_meters)),
        duration_seconds=max(0.0, float(duration_seconds)),
        instructions=instructions or [],
        bounding_box=bounding_box(geometry),
        source=source,
    )


class RouteProvider(ABC):
    """One directions provider in the fallback chain."""

    source: RouteSource

    @property
    def name(self) -> str:
        return self.source.value

    @abstractmethod
    async def fetch_route(self, start: Coordinates, end: Coordinates) -> RouteResult:
        """Compute a route.

        Raises:
            ProviderUnavailable: On transport errors, error statuses or a
                reply without usable geometry.
        """
        ...


class HttpRouteProvider(RouteProvider):
    """Shared httpx client handling for HTTP-based providers."""

    def __init__(self, timeout: float = 10.0, client: httpx.AsyncClient | None = None) -> None:
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

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._get_client().request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderUnavailable(self.name, f"HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderUnavailable(self.name, str(e) or type(e).__name__) from e

    def _normalize(
        self,
        lnglat: Any,
        distance: Any = None,
        duration: Any = None,
        steps: Any = None,
    ) -> RouteResult:
        if not lnglat or len(lnglat) < 2:
            raise ProviderUnavailable(self.name, "reply has no geometry")
        try:
            geometry = lnglat_to_coordinates(lnglat)
            return build_route_result(
                geometry,
                self.source,
                distance_meters=float(distance) if distance is not None else None,
                duration_seconds=float(duration) if duration is not None else None,
                instructions=list(steps) if isinstance(steps, list) else None,
            )
        except (ValidationError, ValueError, TypeError, IndexError) as e:
            raise ProviderUnavailable(self.name, f"malformed geometry: {e}") from e


class OpenRouteServiceProvider(HttpRouteProvider):
    """OpenRouteService directions (requires an API key)."""

    source = RouteSource.OPENROUTESERVICE
    BASE_URL = "https://api.openrouteservice.org/v2"

    def __init__(
        self,
        api_key: str,
        profile: str = "driving-car",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._api_key = api_key
        self._profile = profile

    async def fetch_route(self, start: Coordinates, end: Coordinates) -> RouteResult:
        body = {
            "coordinates": [[start.lng, start.lat], [end.lng, end.lat]],
            "instructions": True,
            "geometry_simplify": False,
            "continue_straight": False,
        }
        data = await self._request_json(
            "POST",
            f"{self.BASE_URL}/directions/{self._profile}/geojson",
            json=body,
            headers={
                "Authorization": self._api_key,
                "Content-Type": "application/json",
                "Accept": "application/json, application/geo+json",
            },
        )

        # FeatureCollection, or occasionally a bare Feature
        if data.get("features"):
            feature = data["features"][0]
        elif data.get("geometry", {}).get("coordinates"):
            feature = data
        else:
            raise ProviderUnavailable(self.name, "reply has no route features")

        segments = (feature.get("properties") or {}).get("segments") or [{}]
        segment = segments[0]
        return self._normalize(
            feature.get("geometry", {}).get("coordinates"),
            distance=segment.get("distance"),
            duration=segment.get("duration"),
            steps=segment.get("steps"),
        )


class OSRMRouteProvider(HttpRouteProvider):
    """OSRM public demo server (free, no key)."""

    source = RouteSource.OSRM
    OSRM_URL = "https://router.project-osrm.org"

    async def fetch_route(self, start: Coordinates, end: Coordinates) -> RouteResult:
        coords = f"{start.lng},{start.lat};{end.lng},{end.lat}"
        data = await self._request_json(
            "GET",
            f"{self.OSRM_URL}/route/v1/driving/{coords}",
            params={"overview": "full", "geometries": "geojson", "steps": "true"},
        )
        if data.get("code", "Ok") != "Ok" or not data.get("routes"):
            raise ProviderUnavailable(self.name, f"no route ({data.get('code')})")

        route = data["routes"][0]
        legs = route.get("legs") or [{}]
        return self._normalize(
            (route.get("geometry") or {}).get("coordinates"),
            distance=route.get("distance"),
            duration=route.get("duration"),
            steps=legs[0].get("steps"),
        )


class GraphHopperRouteProvider(HttpRouteProvider):
    """GraphHopper Directions API (requires an API key)."""

    source = RouteSource.GRAPHHOPPER
    BASE_URL = "https://graphhopper.com/api/1/route"

    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(timeout=timeout, client=client)
        self._api_key = api_key

    async def fetch_route(self, start: Coordinates, end: Coordinates) -> RouteResult:
        # GraphHopper takes lat,lng on input but answers in GeoJSON order
        params = [
            ("point", f"{start.lat},{start.lng}"),
            ("point", f"{end.lat},{end.lng}"),
            ("profile", "car"),
            ("key", self._api_key),
            ("instructions", "true"),
            ("calc_points", "true"),
            ("points_encoded", "false"),
        ]
        data = await self._request_json("GET", self.BASE_URL, params=params)
        paths = data.get("paths") or []
        if not paths:
            raise ProviderUnavailable(self.name, "reply has no paths")

        path = paths[0]
        time_ms = path.get("time")
        return self._normalize(
            (path.get("points") or {}).get("coordinates"),
            distance=path.get("distance"),
            duration=time_ms / 1000 if time_ms is not None else None,
            steps=path.get("instructions"),
        )


class RouteProviderChain:
    """Ordered fallback over route providers, ending in a synthetic route."""

    def __init__(
        self,
        providers: list[RouteProvider],
        synthetic_points: int = 20,
        synthetic_speed_kmh: float = DEFAULT_SPEED_KMH,
    ) -> None:
        self._providers = list(providers)
        self._synthetic_points = max(1, synthetic_points)
        self._speed_kmh = synthetic_speed_kmh

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    async def route(
        self,
        start: Coordinates,
        end: Coordinates,
        destination_name: str | None = None,
    ) -> RouteResult:
        """Route from ``start`` to ``end``; never raises.

        The returned ``attempted_providers`` lists every provider tried, in
        order, ending with ``synthetic`` when the fallback was used.
        """
        attempted: list[str] = []
        for provider in self._providers:
            attempted.append(provider.name)
            try:
                result = await provider.fetch_route(start, end)
            except ProviderUnavailable as e:
                logger.info(f"[ROUTE] {e}, trying next provider")
                continue
            except Exception as e:
                logger.warning(f"[ROUTE] {provider.name} error: {e!r}, trying next provider")
                continue

            logger.info(
                f"[ROUTE] {provider.name} success: {result.distance_meters / 1000:.1f} km, "
                f"{len(result.geometry)} points"
            )
            return result.model_copy(update={"attempted_providers": attempted})

        logger.info("[ROUTE] All providers failed, using synthetic route")
        attempted.append(RouteSource.SYNTHETIC.value)
        result = self.synthetic_route(start, end, destination_name)
        return result.model_copy(update={"attempted_providers": attempted})

    def synthetic_route(
        self,
        start: Coordinates,
        end: Coordinates,
        destination_name: str | None = None,
    ) -> RouteResult:
        """Straight-line route with evenly interpolated points."""
        steps = self._synthetic_points
        geometry = [interpolate(start, end, i / steps) for i in range(steps + 1)]
        return build_route_result(
            geometry,
            RouteSource.SYNTHETIC,
            distance_meters=haversine_km(start, end) * 1000,
            instructions=[{"instruction": f"Head towards {destination_name or 'destination'}"}],
            speed_kmh=self._speed_kmh,
        )

    async def close(self) -> None:
        for provider in self._providers:
            if isinstance(provider, HttpRouteProvider):
                await provider.close()
