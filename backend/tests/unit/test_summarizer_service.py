"""Unit tests for POI summaries and route tips."""

import asyncio

import pytest

from roadtrip.config import Settings
from roadtrip.models import POI, Coordinates, POICategory
from roadtrip.services.poi import DEFAULT_SUMMARY
from roadtrip.services.summarizer import (
    GroqSummarizerService,
    OfflineSummarizerService,
    SummarizerService,
    create_summarizer,
    fallback_route_tips,
    fallback_summary,
    own_description,
)


class FakeSummarizer(SummarizerService):
    """Scripted provider that records prompts."""

    def __init__(
        self,
        reply: str = "A lovely stop.",
        delay: float = 0.0,
        error: Exception | None = None,
        timeout_seconds: float = 1.0,
    ) -> None:
        super().__init__(cache_size=16, timeout_seconds=timeout_seconds)
        self.reply = reply
        self.delay = delay
        self.error = error
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    async def _generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


def make_poi(
    name: str = "Lahore Fort",
    summary: str = DEFAULT_SUMMARY,
    category: POICategory = POICategory.HISTORICAL_SITE,
) -> POI:
    return POI(
        id=name.lower().replace(" ", "-"),
        name=name,
        summary=summary,
        category=category,
        location=Coordinates(lat=31.5888, lng=74.3142),
    )


class TestFallbackText:
    """Tests for template summaries."""

    def test_known_name(self) -> None:
        assert "Mughal" in fallback_summary(make_poi("Lahore Fort"))

    def test_category_template(self) -> None:
        poi = make_poi("Rohtas Fort", category=POICategory.HISTORICAL_SITE)
        assert fallback_summary(poi).startswith("Discover the rich history of Rohtas Fort")

    def test_generic_template(self) -> None:
        poi = make_poi("Somewhere", category=POICategory.ATTRACTION)
        assert fallback_summary(poi).startswith("Somewhere is an interesting destination")

    def test_own_description_prefers_provider_text(self) -> None:
        poi = make_poi("Rohtas Fort", summary="16th-century fortress near Jhelum.")
        assert own_description(poi) == "16th-century fortress near Jhelum."
        assert own_description(make_poi("Rohtas Fort")) == fallback_summary(make_poi("Rohtas Fort"))

    def test_route_tips_mention_both_ends(self) -> None:
        tips = fallback_route_tips("Islamabad", "Lahore")
        assert "Islamabad" in tips and "Lahore" in tips


class TestPrompt:
    """Tests for prompt construction."""

    def setup_method(self) -> None:
        self.service = FakeSummarizer()

    def test_prompt_includes_category_and_description(self) -> None:
        poi = make_poi("Rohtas Fort", summary="16th-century fortress.")
        prompt = self.service.build_summary_prompt(poi)
        assert '"Rohtas Fort"' in prompt
        assert "historical site" in prompt
        assert "16th-century fortress." in prompt

    def test_prompt_omits_default_description(self) -> None:
        prompt = self.service.build_summary_prompt(make_poi())
        assert DEFAULT_SUMMARY not in prompt

    def test_sanitize_strips_control_characters(self) -> None:
        assert SummarizerService._sanitize_input("Fort\x00\x07 Road ") == "Fort Road"
        assert len(SummarizerService._sanitize_input("x" * 900)) == 500


class TestSummarizePOI:
    """Tests for caching, deduplication and fallbacks."""

    @pytest.mark.asyncio
    async def test_returns_generated_text(self) -> None:
        service = FakeSummarizer(reply="  Grand Mughal citadel.  ")
        assert await service.summarize_poi(make_poi()) == "Grand Mughal citadel."

    @pytest.mark.asyncio
    async def test_cached_by_name_and_category(self) -> None:
        service = FakeSummarizer()

        await service.summarize_poi(make_poi())
        await service.summarize_poi(make_poi())
        await service.summarize_poi(make_poi(category=POICategory.MUSEUM))

        assert len(service.prompts) == 2

    @pytest.mark.asyncio
    async def test_concurrent_requests_share_one_call(self) -> None:
        service = FakeSummarizer(delay=0.05)

        results = await asyncio.gather(*(service.summarize_poi(make_poi()) for _ in range(5)))

        assert len(service.prompts) == 1
        assert set(results) == {"A lovely stop."}

    @pytest.mark.asyncio
    async def test_timeout_falls_back_to_own_description(self) -> None:
        service = FakeSummarizer(delay=1.0, timeout_seconds=0.01)
        poi = make_poi("Rohtas Fort", summary="16th-century fortress.")

        assert await service.summarize_poi(poi) == "16th-century fortress."

    @pytest.mark.asyncio
    async def test_error_falls_back_to_template(self) -> None:
        service = FakeSummarizer(error=RuntimeError("rate limited"))
        poi = make_poi()

        assert await service.summarize_poi(poi) == fallback_summary(poi)

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self) -> None:
        service = FakeSummarizer(reply="   ")

        await service.summarize_poi(make_poi())
        await service.summarize_poi(make_poi())

        assert len(service.prompts) == 2

    @pytest.mark.asyncio
    async def test_summarize_pois_fills_ai_summary(self) -> None:
        service = FakeSummarizer()
        pois = [make_poi("Lahore Fort"), make_poi("Badshahi Mosque", category=POICategory.RELIGIOUS_SITE)]

        enriched = await service.summarize_pois(pois)

        assert [p.name for p in enriched] == ["Lahore Fort", "Badshahi Mosque"]
        assert all(p.ai_summary == "A lovely stop." for p in enriched)
        assert pois[0].ai_summary is None


class TestRouteTips:
    """Tests for generate_route_tips()."""

    @pytest.mark.asyncio
    async def test_generated_tips(self) -> None:
        service = FakeSummarizer(reply="Take the M-2 motorway.")

        tips = await service.generate_route_tips("Islamabad", "Lahore", [make_poi()])

        assert tips == "Take the M-2 motorway."
        assert "Lahore Fort" in service.prompts[0]

    @pytest.mark.asyncio
    async def test_error_returns_fallback_tips(self) -> None:
        service = FakeSummarizer(error=RuntimeError("down"))

        tips = await service.generate_route_tips("Islamabad", "Lahore", [])

        assert tips == fallback_route_tips("Islamabad", "Lahore")


class TestOfflineSummarizer:
    """Tests for the template-only summarizer and the factory."""

    @pytest.mark.asyncio
    async def test_offline_uses_templates(self) -> None:
        service = OfflineSummarizerService()
        poi = make_poi()

        assert not service.is_live
        assert await service.summarize_poi(poi) == fallback_summary(poi)
        assert await service.generate_route_tips("A", "B", [poi]) == fallback_route_tips("A", "B")

    def test_factory_without_keys_is_offline(self) -> None:
        service = create_summarizer(Settings())
        assert isinstance(service, OfflineSummarizerService)
        assert service.provider_name == "Offline"


class TestClose:
    """Tests for releasing provider clients."""

    @pytest.mark.asyncio
    async def test_groq_client_is_closed(self) -> None:
        class FakeClient:
            closed = False

            async def close(self) -> None:
                self.closed = True

        service = GroqSummarizerService(api_key="test-key")
        fake = FakeClient()
        service._client = fake  # type: ignore[assignment]

        await service.close()

        assert fake.closed

    @pytest.mark.asyncio
    async def test_offline_close_is_noop(self) -> None:
        await OfflineSummarizerService().close()
