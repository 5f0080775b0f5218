"""POI summaries and route tips: Groq (primary) + Gemini (fallback).

Provider-agnostic base class with concrete implementations:
- GroqSummarizerService:    Groq LPU, llama-3.1-8b-instant
- GeminiSummarizerService:  Google Gemini, gemma-3-4b-it
- OfflineSummarizerService: no provider; template text only

This is a downstream adapter: it never blocks the pipeline longer than its
timeout and any failure degrades to template text built from the POI's
own description.
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from roadtrip.config import Settings
from roadtrip.models import POI, POICategory, ProviderUnavailable
from roadtrip.services.poi import DEFAULT_SUMMARY
from roadtrip.utils.cache import LRUCache

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a friendly road-trip guide. You write short, accurate, engaging "
    "descriptions of places travellers can stop at along a drive. "
    "Never invent opening hours, prices or coordinates. "
    "Respond with plain text only. No markdown, no lists, no preamble."
)

FALLBACK_SUMMARIES = {
    "Faisal Mosque": (
        "A stunning example of modern Islamic architecture, this iconic mosque is one of "
        "the largest in the world and offers breathtaking views of Islamabad."
    ),
    "Badshahi Mosque": (
        "Step into history at this magnificent 17th-century Mughal mosque, renowned for "
        "its impressive red sandstone architecture and spiritual significance."
    ),
    "Lahore Fort": (
        "Explore centuries of Mughal history in this UNESCO World Heritage site, featuring "
        "beautiful palaces, gardens, and museums."
    ),
    "Shalimar Gardens": (
        "Wander through these exquisite Mughal gardens with terraced lawns, fountains, and "
        "pavilions that showcase the pinnacle of garden design."
    ),
    "Daman-e-Koh": (
        "Enjoy panoramic views of Islamabad from this scenic viewpoint in the Margalla "
        "Hills, perfect for photography and relaxation."
    ),
    "Deosai Plains": (
        'Experience the "Land of Giants", a high-altitude plateau famous for its '
        "wildflower blooms and unique wildlife."
    ),
    "Shangrila Resort": (
        "Discover this picturesque lakeside retreat offering stunning mountain views and "
        "serene natural beauty."
    ),
    "K2 Base Camp Trek": (
        "Embark on the adventure of a lifetime with this world-famous trek to the base of "
        "the second highest mountain on Earth."
    ),
}

CATEGORY_SUMMARIES = {
    POICategory.RELIGIOUS_SITE: (
        "{name} is a significant religious site offering spiritual experiences and "
        "beautiful architecture."
    ),
    POICategory.HISTORICAL_SITE: (
        "Discover the rich history of {name}, where ancient stories come alive through "
        "preserved architecture and cultural artifacts."
    ),
    POICategory.MUSEUM: (
        "{name} showcases fascinating collections that provide insights into local "
        "culture, history, and traditions."
    ),
    POICategory.NATURE: (
        "Experience the beauty of {name}, where stunning landscapes and outdoor "
        "activities await nature lovers."
    ),
    POICategory.CULTURAL_SITE: (
        "Immerse yourself in the local culture at {name}, celebrating traditions, arts, "
        "and community heritage."
    ),
    POICategory.ARCHITECTURE: (
        "Marvel at the architectural brilliance of {name}, featuring unique design "
        "elements and styles."
    ),
    POICategory.ENTERTAINMENT: (
        "Enjoy leisure and recreation at {name}, perfect for families and fun seekers."
    ),
    POICategory.SPORTS_RECREATION: (
        "{name} offers outdoor activities and recreation for active travellers."
    ),
}


def fallback_summary(poi: POI) -> str:
    """Template summary: per-name table, then per-category, then generic."""
    if poi.name in FALLBACK_SUMMARIES:
        return FALLBACK_SUMMARIES[poi.name]
    template = CATEGORY_SUMMARIES.get(poi.category)
    if template:
        return template.format(name=poi.name)
    return (
        f"{poi.name} is an interesting destination worth exploring during your journey. "
        "Discover what makes this place special."
    )


def own_description(poi: POI) -> str:
    """The POI's provider description, or template text when it has none."""
    if poi.summary and poi.summary != DEFAULT_SUMMARY:
        return poi.summary
    return fallback_summary(poi)


def fallback_route_tips(start: str, end: str) -> str:
    return (
        f"For your journey from {start} to {end}, plan rest stops every 2-3 hours and "
        "check weather conditions beforehand. Carry water, snacks, and ensure your vehicle "
        "is road-ready. Start early for the best views and smoother traffic."
    )


class SummarizerService(ABC):
    """Base class for text-summarization providers.

    Prompt construction, caching and fallbacks live here. Subclasses only
    implement ``_generate()`` for their API client.

    Summaries are cached per ``(name, category)``; concurrent requests for
    the same key share one in-flight provider call.
    """

    def __init__(self, cache_size: int = 512, timeout_seconds: float = 8.0) -> None:
        self._timeout = timeout_seconds
        self._cache: LRUCache[str] = LRUCache(max_size=cache_size)
        self._inflight: dict[tuple[str, str], asyncio.Task[str]] = {}

    @abstractmethod
    async def _generate(self, prompt: str) -> str:
        """Send prompt to the provider and return raw text.

        Callers bound the call with the service timeout.
        """
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name for logging."""
        ...

    @property
    def is_live(self) -> bool:
        return True

    async def close(self) -> None:
        pass

    # ── Utilities ─────────────────────────────────────────────────────

    @staticmethod
    def _sanitize_input(text: str, max_length: int = 500) -> str:
        """Strip control characters and cap length before prompting."""
        cleaned = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)
        return cleaned[:max_length].strip()

    def build_summary_prompt(self, poi: POI) -> str:
        name = self._sanitize_input(poi.name, max_length=200)
        prompt = (
            f'Create an engaging travel summary for "{name}", '
            f"which is a {poi.category.label.lower()}"
        )
        if poi.summary and poi.summary != DEFAULT_SUMMARY:
            prompt += f". Here's some information about it: {self._sanitize_input(poi.summary, 1500)}"
        else:
            prompt += "."
        if poi.address:
            prompt += f" It's located at {self._sanitize_input(poi.address, 200)}."
        prompt += (
            " Focus on what makes this place special, interesting historical facts, and why "
            "travelers should visit. Keep it friendly, informative and under 80 words."
        )
        return prompt

    # ── Shared implementations ────────────────────────────────────────

    async def summarize_poi(self, poi: POI) -> str:
        """Enriched description for ``poi``; falls back to template text."""
        if not self.is_live:
            return fallback_summary(poi)

        key = (poi.name, poi.category.value)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._summarize_uncached(key, poi))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        # Shielded so one cancelled waiter does not cancel the shared call
        return await asyncio.shield(task)

    async def _summarize_uncached(self, key: tuple[str, str], poi: POI) -> str:
        try:
            text = await asyncio.wait_for(
                self._generate(self.build_summary_prompt(poi)), timeout=self._timeout
            )
            text = text.strip()
            if not text:
                raise ValueError("empty summary")
            self._cache.set(key, text)
            return text
        except asyncio.TimeoutError:
            logger.info(f"[{self.provider_name}] Timeout summarizing {poi.name}")
        except Exception as e:
            logger.info(f"[{self.provider_name}] Summary error for {poi.name}: {e}")
        return own_description(poi)

    async def summarize_pois(self, pois: list[POI]) -> list[POI]:
        """Copies of ``pois`` with ``ai_summary`` filled in, settling all."""
        results = await asyncio.gather(
            *(self.summarize_poi(p) for p in pois), return_exceptions=True
        )
        enriched = []
        for poi, result in zip(pois, results):
            if isinstance(result, str):
                summary = result
            elif isinstance(result, Exception):
                summary = own_description(poi)
            else:
                raise result
            enriched.append(poi.model_copy(update={"ai_summary": summary}))
        return enriched

    async def generate_route_tips(self, start: str, end: str, pois: list[POI]) -> str:
        if not self.is_live:
            return fallback_route_tips(start, end)

        start = self._sanitize_input(start, max_length=100)
        end = self._sanitize_input(end, max_length=100)
        stops = ", ".join(p.name for p in pois[:10]) or "none found"
        prompt = (
            f"Write 2-3 sentences of practical travel tips for a road trip from {start} "
            f"to {end}. Notable stops along the way: {stops}.\n"
            f"Be friendly and helpful. No specific times or prices."
        )
        try:
            text = await asyncio.wait_for(self._generate(prompt), timeout=self._timeout)
            return text.strip() or fallback_route_tips(start, end)
        except Exception as e:
            logger.info(f"[{self.provider_name}] Route tips error: {e}")
            return fallback_route_tips(start, end)


# ═══════════════════════════════════════════════════════════════════════
# Provider: Groq  (primary, fast LPU inference)
# ═══════════════════════════════════════════════════════════════════════

class GroqSummarizerService(SummarizerService):
    """Groq LPU with Llama 3.1 8B Instant."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "llama-3.1-8b-instant",
        timeout_seconds: float = 8.0,
        cache_size: int = 512,
    ) -> None:
        from groq import AsyncGroq

        if not api_key:
            raise ValueError("GROQ_API_KEY not provided")
        super().__init__(cache_size=cache_size, timeout_seconds=timeout_seconds)
        self._client = AsyncGroq(api_key=api_key)
        self._model_name = model_name
        logger.info(f"[AI] Groq ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Groq"

    async def _generate(self, prompt: str) -> str:
        completion = await self._client.chat.completions.create(
            model=self._model_name,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.6,
            max_tokens=220,
        )
        return completion.choices[0].message.content or ""

    async def close(self) -> None:
        await self._client.close()


# ═══════════════════════════════════════════════════════════════════════
# Provider: Gemini  (fallback)
# ═══════════════════════════════════════════════════════════════════════

class GeminiSummarizerService(SummarizerService):
    """Google Gemini with Gemma 3 4B."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemma-3-4b-it",
        timeout_seconds: float = 8.0,
        cache_size: int = 512,
    ) -> None:
        from google import genai

        if not api_key:
            raise ValueError("GEMINI_API_KEY not provided")
        super().__init__(cache_size=cache_size, timeout_seconds=timeout_seconds)
        self._client = genai.Client(api_key=api_key)
        self._model_name = model_name
        logger.info(f"[AI] Gemini ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Gemini"

    async def _generate(self, prompt: str) -> str:
        # Gemma models have no system role
        response = await self._client.aio.models.generate_content(
            model=self._model_name,
            contents=f"{SYSTEM_PROMPT}\n\n{prompt}",
        )
        return response.text or ""


class OfflineSummarizerService(SummarizerService):
    """Template-only summaries, used when no provider key is configured."""

    @property
    def provider_name(self) -> str:
        return "Offline"

    @property
    def is_live(self) -> bool:
        return False

    async def _generate(self, prompt: str) -> str:
        raise ProviderUnavailable("summarizer", "no text-generation provider configured")


# ═══════════════════════════════════════════════════════════════════════
# Factory: Groq → Gemini → Offline
# ═══════════════════════════════════════════════════════════════════════

def create_summarizer(settings: Optional[Settings] = None) -> SummarizerService:
    """Create the best available summarizer. Groq first, Gemini fallback."""
    settings = settings or Settings()
    common = {
        "timeout_seconds": settings.summary_timeout_seconds,
        "cache_size": settings.summary_cache_size,
    }
    if settings.groq_api_key:
        try:
            return GroqSummarizerService(api_key=settings.groq_api_key, **common)
        except Exception as e:
            logger.info(f"[AI] Groq init failed: {e}")

    if settings.gemini_api_key:
        try:
            return GeminiSummarizerService(api_key=settings.gemini_api_key, **common)
        except Exception as e:
            logger.info(f"[AI] Gemini init failed: {e}")

    logger.info("[AI] No summarization provider configured, using templates")
    return OfflineSummarizerService(
        cache_size=settings.summary_cache_size, timeout_seconds=settings.summary_timeout_seconds
    )
