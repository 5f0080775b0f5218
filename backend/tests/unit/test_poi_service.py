"""Unit tests for POI discovery along a route."""

import asyncio
from typing import Optional

import httpx
import pytest

from roadtrip.models import POI, Coordinates, POICategory, ProviderUnavailable
from roadtrip.services.poi import (
    DEFAULT_SUMMARY,
    OpenTripMapPlacesProvider,
    PlacesProvider,
    POIDiscoveryService,
    area_bucket,
    dedup_key,
    map_kinds,
    parse_rating,
)
from roadtrip.services.routing import RouteProviderChain, WaypointSampler

ISLAMABAD = Coordinates(lat=33.6844, lng=73.0479)
LAHORE = Coordinates(lat=31.5204, lng=74.3587)


def make_poi(
    poi_id: str,
    lat: float,
    lng: float,
    rating: Optional[float] = 4.0,
    category: POICategory = POICategory.ATTRACTION,
) -> POI:
    return POI(
        id=poi_id,
        name=poi_id.replace("-", " ").title(),
        category=category,
        location=Coordinates(lat=lat, lng=lng),
        rating=rating,
    )


class FakePlacesProvider(PlacesProvider):
    """Returns the same candidate ids everywhere, optionally failing some searches."""

    name = "fake"

    def __init__(
        self,
        pois: list[POI],
        fail_every: bool = False,
        fail_first_n: int = 0,
        delay: float = 0.0,
    ) -> None:
        self.pois = {p.id: p for p in pois}
        self.fail_every = fail_every
        self.fail_first_n = fail_first_n
        self.delay = delay
        self.centers: list[Coordinates] = []
        self.active = 0
        self.peak = 0

    async def search(self, center: Coordinates, radius_meters: int) -> list[str]:
        self.centers.append(center)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.fail_every or len(self.centers) <= self.fail_first_n:
                raise ProviderUnavailable(self.name, "HTTP 500")
            return list(self.pois)
        finally:
            self.active -= 1

    async def details(self, place_id: str) -> Optional[POI]:
        return self.pois.get(place_id)


def corridor_route():
    return RouteProviderChain([]).synthetic_route(ISLAMABAD, LAHORE)


def sampling_points(route) -> list[Coordinates]:
    return WaypointSampler().sample(route.geometry)


class TestHelpers:
    """Tests for kind mapping, rating parsing and identity keys."""

    def test_map_kinds(self) -> None:
        assert map_kinds("religion,mosques,interesting_places") == POICategory.RELIGIOUS_SITE
        assert map_kinds("historic,architecture") == POICategory.HISTORICAL_SITE
        assert map_kinds("museums,cultural") == POICategory.MUSEUM
        assert map_kinds("natural,beaches") == POICategory.NATURE
        assert map_kinds("foods") == POICategory.ATTRACTION
        assert map_kinds(None) == POICategory.ATTRACTION

    def test_parse_rating(self) -> None:
        assert parse_rating("3h") == 3.0
        assert parse_rating(2) == 2.0
        assert parse_rating(7) == 5.0
        assert parse_rating(None) is None
        assert parse_rating("n/a") is None

    def test_category_labels(self) -> None:
        assert POICategory.CULTURAL_SITE.value == "CulturalSite"
        assert POICategory.CULTURAL_SITE.label == "Cultural Site"
        assert POICategory.SPORTS_RECREATION.label == "Sports & Recreation"

    def test_dedup_key_rounds_to_four_decimals(self) -> None:
        a = make_poi("a", 31.58881, 74.31071)
        b = make_poi("b", 31.58884, 74.31069)
        assert dedup_key(a) == dedup_key(b) == "31.5888,74.3107"

    def test_area_bucket(self) -> None:
        assert area_bucket(make_poi("a", 31.5889, 74.3107)) == (31.6, 74.4)

    def test_area_bucket_rounds_halves_up(self) -> None:
        assert area_bucket(make_poi("a", 0.1, 0.3)) == (0.2, 0.4)
        assert area_bucket(make_poi("b", -0.1, 74.31)) == (0.0, 74.4)


class TestOpenTripMapPlacesProvider:
    """Tests for the OpenTripMap client."""

    @pytest.mark.asyncio
    async def test_search_list_format(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"xid": "N1"}, {"xid": "W2"}, {"name": "no id"}])

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = OpenTripMapPlacesProvider("otm-key", client=client)

        ids = await provider.search(LAHORE, 15000)

        assert ids == ["N1", "W2"]
        params = seen[0].url.params
        assert params["radius"] == "15000"
        assert params["lat"] == str(LAHORE.lat)
        assert params["lon"] == str(LAHORE.lng)
        assert params["apikey"] == "otm-key"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_search_geojson_format(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"features": [{"properties": {"xid": "R9"}}]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        ids = await OpenTripMapPlacesProvider("k", client=client).search(LAHORE, 1000)

        assert ids == ["R9"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_search_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderUnavailable):
            await OpenTripMapPlacesProvider("k", client=client).search(LAHORE, 1000)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_details(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/xid/N123")
            return httpx.Response(200, json={
                "xid": "N123",
                "name": "Badshahi Mosque",
                "kinds": "religion,mosques,interesting_places",
                "rate": "3h",
                "point": {"lat": 31.5881, "lon": 74.3099},
                "wikipedia_extracts": {"text": "A Mughal-era congregational mosque."},
                "address": {"road": "Fort Road", "city": "Lahore", "country": "Pakistan"},
                "wikipedia": "https://en.wikipedia.org/wiki/Badshahi_Mosque",
                "preview": {"source": "https://example.org/badshahi.jpg"},
            })

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        poi = await OpenTripMapPlacesProvider("k", client=client).details("N123")

        assert poi is not None
        assert poi.id == "N123"
        assert poi.category == POICategory.RELIGIOUS_SITE
        assert poi.rating == 3.0
        assert poi.summary == "A Mughal-era congregational mosque."
        assert poi.address == "Fort Road, Lahore, Pakistan"
        assert poi.image_url == "https://example.org/badshahi.jpg"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_details_not_found(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        assert await OpenTripMapPlacesProvider("k", client=client).details("gone") is None
        await client.aclose()

    def test_parse_details_defaults(self) -> None:
        poi = OpenTripMapPlacesProvider.parse_details({
            "xid": "X1", "name": "Viewpoint", "point": {"lat": 33.7, "lon": 73.1},
        })
        assert poi is not None
        assert poi.summary == DEFAULT_SUMMARY
        assert poi.rating is None
        assert poi.category == POICategory.ATTRACTION

    def test_parse_details_requires_name_and_point(self) -> None:
        assert OpenTripMapPlacesProvider.parse_details({"xid": "X", "point": {"lat": 1, "lon": 2}}) is None
        assert OpenTripMapPlacesProvider.parse_details({"xid": "X", "name": "No point"}) is None


class TestSelection:
    """Tests for dedupe, corridor filter and area quota."""

    def test_deduplicate_by_id_and_coordinate(self) -> None:
        pois = [
            make_poi("a", 31.0, 74.0),
            make_poi("a", 32.0, 74.0),
            make_poi("b", 31.00001, 74.00001),
            make_poi("c", 33.0, 74.0),
        ]
        unique = POIDiscoveryService.deduplicate(pois)
        assert [p.id for p in unique] == ["a", "c"]

    def test_filter_near_route(self) -> None:
        route = corridor_route()
        mid = route.geometry[10]
        near = make_poi("near", mid.lat, mid.lng + 0.1)
        far = make_poi("far", mid.lat, mid.lng + 1.0)

        kept = POIDiscoveryService.filter_near_route([near, far], route.geometry, 25)

        assert [p.id for p in kept] == ["near"]

    def test_area_quota_limits_dense_cells(self) -> None:
        dense = [make_poi(f"lahore-{i}", 31.58 + i * 0.001, 74.31, rating=i / 2) for i in range(8)]
        elsewhere = make_poi("islamabad", 33.7, 73.05, rating=1.0)

        selected = POIDiscoveryService.select_with_area_quota(dense + [elsewhere], 25, area_quota=5)

        lahore = [p for p in selected if p.id.startswith("lahore")]
        assert len(lahore) == 5
        assert [p.id for p in lahore] == [f"lahore-{i}" for i in (7, 6, 5, 4, 3)]
        assert selected[-1].id == "islamabad"

    def test_missing_rating_sorts_last(self) -> None:
        pois = [
            make_poi("unrated", 31.0, 74.0, rating=None),
            make_poi("rated", 32.0, 74.0, rating=1.0),
        ]
        selected = POIDiscoveryService.select_with_area_quota(pois, 25)
        assert [p.id for p in selected] == ["rated", "unrated"]

    def test_result_cap(self) -> None:
        pois = [make_poi(f"p{i}", 30 + i, 70.0) for i in range(10)]
        assert len(POIDiscoveryService.select_with_area_quota(pois, 4)) == 4


class TestPOIDiscoveryService:
    """Tests for the end-to-end discovery flow."""

    def setup_method(self) -> None:
        self.route = corridor_route()
        self.points = sampling_points(self.route)
        mid = self.route.geometry[10]
        self.candidates = [
            make_poi("mid-mosque", mid.lat, mid.lng + 0.05, 4.5, POICategory.RELIGIOUS_SITE),
            make_poi("mid-museum", mid.lat + 0.3, mid.lng, 3.0, POICategory.MUSEUM),
            make_poi("far-lake", mid.lat, mid.lng + 2.0, 5.0, POICategory.NATURE),
        ]

    @pytest.mark.asyncio
    async def test_discovers_pois_near_route(self) -> None:
        provider = FakePlacesProvider(self.candidates)
        service = POIDiscoveryService(provider)

        result = await service.discover(self.route, self.points)

        assert not result.from_fallback
        assert [p.id for p in result.pois] == ["mid-mosque", "mid-museum"]

    @pytest.mark.asyncio
    async def test_first_sampling_point_not_queried(self) -> None:
        provider = FakePlacesProvider(self.candidates)

        await POIDiscoveryService(provider).discover(self.route, self.points)

        assert len(provider.centers) == len(self.points) - 1
        assert self.points[0] not in provider.centers

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_successes(self) -> None:
        provider = FakePlacesProvider(self.candidates, fail_first_n=3)

        result = await POIDiscoveryService(provider, max_concurrency=1).discover(
            self.route, self.points
        )

        assert not result.from_fallback
        assert {p.id for p in result.pois} == {"mid-mosque", "mid-museum"}

    @pytest.mark.asyncio
    async def test_total_failure_uses_static_pois(self) -> None:
        provider = FakePlacesProvider(self.candidates, fail_every=True)

        result = await POIDiscoveryService(provider).discover(self.route, self.points)

        assert result.from_fallback
        names = {p.name for p in result.pois}
        assert "Faisal Mosque" in names
        assert "Badshahi Mosque" in names
        assert "K2 Base Camp Trek" not in names
        assert any(p.category == POICategory.RELIGIOUS_SITE for p in result.pois)

    @pytest.mark.asyncio
    async def test_no_provider_uses_static_pois(self) -> None:
        result = await POIDiscoveryService(None).discover(self.route, self.points)
        assert result.from_fallback
        assert result.pois

    @pytest.mark.asyncio
    async def test_empty_successful_search_is_not_fallback(self) -> None:
        result = await POIDiscoveryService(FakePlacesProvider([])).discover(self.route, self.points)
        assert result.pois == []
        assert not result.from_fallback

    @pytest.mark.asyncio
    async def test_fan_out_is_bounded(self) -> None:
        provider = FakePlacesProvider(self.candidates, delay=0.01)

        await POIDiscoveryService(provider, max_concurrency=2).discover(self.route, self.points)

        assert provider.peak <= 2
        assert len(provider.centers) == len(self.points) - 1

    @pytest.mark.asyncio
    async def test_wider_corridor_override(self) -> None:
        provider = FakePlacesProvider(self.candidates)

        result = await POIDiscoveryService(provider).discover(
            self.route, self.points, corridor_km=250
        )

        assert result.pois[0].id == "far-lake"

    @pytest.mark.asyncio
    async def test_single_sampling_point_queries_nothing(self) -> None:
        provider = FakePlacesProvider(self.candidates)
        result = await POIDiscoveryService(provider).discover(self.route, self.points[:1])
        assert result.pois == []
        assert provider.centers == []

    @pytest.mark.asyncio
    async def test_search_near_without_provider_raises(self) -> None:
        with pytest.raises(ProviderUnavailable):
            await POIDiscoveryService(None).search_near(LAHORE, 10)

    def test_static_fallback_respects_radius(self) -> None:
        service = POIDiscoveryService(None)
        skardu = Coordinates(lat=35.2971, lng=75.6333)

        names = {p.name for p in service.static_fallback([skardu])}

        assert names == {"Shangrila Resort", "Deosai Plains"}
