"""POI summaries and route tips: Groq (primary) + Gemini (fallback)."""

from .service import (
    GeminiSummarizerService,
    GroqSummarizerService,
    OfflineSummarizerService,
    SummarizerService,
    create_summarizer,
    fallback_route_tips,
    fallback_summary,
    own_description,
)

__all__ = [
    "GeminiSummarizerService",
    "GroqSummarizerService",
    "OfflineSummarizerService",
    "SummarizerService",
    "create_summarizer",
    "fallback_route_tips",
    "fallback_summary",
    "own_description",
]
