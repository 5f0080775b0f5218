"""Runtime configuration loaded from the environment (and ``.env``).

Provider API keys double as feature toggles: a provider whose key is
missing is left out of its fallback chain.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[CONFIG] Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


def _env_str(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


@dataclass
class Settings:
    """All tunables of the planning pipeline."""

    # Provider credentials
    openrouteservice_api_key: Optional[str] = None
    graphhopper_api_key: Optional[str] = None
    opentripmap_api_key: Optional[str] = None
    groq_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    redis_url: Optional[str] = None
    nominatim_user_agent: str = "RoadTripPlanner/1.0 (contact@roadtrip.app)"

    # Network
    http_timeout_seconds: float = 10.0

    # Route & sampling
    routing_profile: str = "driving-car"
    synthetic_route_points: int = 20
    synthetic_speed_kmh: float = 60.0
    sampling_interval_km: float = 30.0
    min_samples: int = 8
    max_samples: int = 20

    # POI discovery
    poi_search_radius_km: float = 15.0
    poi_corridor_km: float = 25.0
    poi_result_cap: int = 25
    poi_area_quota: int = 5
    poi_candidates_per_point: int = 10
    poi_query_concurrency: int = 5
    static_poi_radius_km: float = 100.0

    # Coarse retry tier
    coarse_sampling_interval_km: float = 50.0
    coarse_search_radius_km: float = 20.0
    coarse_corridor_km: float = 40.0

    # Caches & summaries
    geocode_cache_size: int = 256
    geocode_cache_ttl_seconds: float = 86400
    summary_cache_size: int = 512
    summary_timeout_seconds: float = 8.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, loading ``.env`` first."""
        load_dotenv()
        defaults = cls()
        return cls(
            openrouteservice_api_key=_env_str("OPENROUTESERVICE_API_KEY"),
            graphhopper_api_key=_env_str("GRAPHHOPPER_API_KEY"),
            opentripmap_api_key=_env_str("OPENTRIPMAP_API_KEY"),
            groq_api_key=_env_str("GROQ_API_KEY"),
            gemini_api_key=_env_str("GEMINI_API_KEY"),
            redis_url=_env_str("REDIS_URL"),
            nominatim_user_agent=_env_str("NOMINATIM_USER_AGENT") or defaults.nominatim_user_agent,
            http_timeout_seconds=_env_float("HTTP_TIMEOUT_SECONDS", defaults.http_timeout_seconds),
            sampling_interval_km=_env_float("SAMPLING_INTERVAL_KM", defaults.sampling_interval_km),
            poi_search_radius_km=_env_float("POI_SEARCH_RADIUS_KM", defaults.poi_search_radius_km),
            poi_corridor_km=_env_float("POI_CORRIDOR_KM", defaults.poi_corridor_km),
            poi_result_cap=_env_int("POI_RESULT_CAP", defaults.poi_result_cap),
            poi_area_quota=_env_int("POI_AREA_QUOTA", defaults.poi_area_quota),
            poi_query_concurrency=_env_int("POI_QUERY_CONCURRENCY", defaults.poi_query_concurrency),
            geocode_cache_size=_env_int("GEOCODE_CACHE_SIZE", defaults.geocode_cache_size),
            summary_cache_size=_env_int("SUMMARY_CACHE_SIZE", defaults.summary_cache_size),
            summary_timeout_seconds=_env_float(
                "SUMMARY_TIMEOUT_SECONDS", defaults.summary_timeout_seconds
            ),
        )
