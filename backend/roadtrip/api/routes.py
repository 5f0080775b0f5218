"""API routes for the Road Trip planner.

- POST /route/plan      : route + sampled waypoints + POIs + summaries
- GET  /pois/nearby     : POIs around one place, no routing
- GET  /services/status : which providers are configured

Planner errors (``LocationNotFound``, ``PlanningFailed``) are turned into
``{"success": false, "error": ...}`` bodies by the handlers in ``main``.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field, field_validator

from roadtrip.models import AppError, EnrichmentResult, NearbyResult
from roadtrip.services.planner import RoutePlannerService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_planner(request: Request) -> RoutePlannerService:
    """Planner built once in the application lifespan."""
    return request.app.state.planner


class PlanRouteRequest(BaseModel):
    """Request model for planning a road trip."""
    start: str = Field(..., min_length=1, description="Starting place name")
    end: str = Field(..., min_length=1, description="Destination place name")

    @field_validator("start", "end", mode="before")
    @classmethod
    def strip_names(cls, value: object) -> object:
        # Whitespace-only names fail the length check
        return value.strip() if isinstance(value, str) else value


class PlanRouteResponse(BaseModel):
    """Response model for road trip planning."""
    success: bool
    result: Optional[EnrichmentResult] = None
    error: Optional[AppError] = None


class NearbyResponse(BaseModel):
    """Response model for nearby POI search."""
    success: bool
    result: Optional[NearbyResult] = None
    error: Optional[AppError] = None


class ServiceStatusResponse(BaseModel):
    """Configured providers, keyed by provider name."""
    services: dict[str, bool | str]


@router.post("/route/plan", response_model=PlanRouteResponse)
async def plan_route(
    request: PlanRouteRequest,
    planner: RoutePlannerService = Depends(get_planner),
) -> PlanRouteResponse:
    """Plan a road trip between two named places.

    Always returns a route when both places resolve; provider outages
    only show up as ``result.degraded``.
    """
    result = await planner.plan(request.start, request.end)
    logger.info(
        f"[PLAN] {request.start} -> {request.end}: {result.metadata.route_distance}, "
        f"{result.metadata.total_pois} POIs, degraded={result.degraded}"
    )
    return PlanRouteResponse(success=True, result=result)


@router.get("/pois/nearby", response_model=NearbyResponse)
async def nearby_pois(
    location: str = Query(
        ..., min_length=1, pattern=r"\S", description="Place to search around"
    ),
    radius_km: float = Query(20.0, gt=0, le=100, description="Search radius in km"),
    planner: RoutePlannerService = Depends(get_planner),
) -> NearbyResponse:
    """POIs around a single place."""
    result = await planner.search_nearby(location.strip(), radius_km)
    return NearbyResponse(success=True, result=result)


@router.get("/services/status", response_model=ServiceStatusResponse)
async def services_status(
    planner: RoutePlannerService = Depends(get_planner),
) -> ServiceStatusResponse:
    return ServiceStatusResponse(services=planner.service_status())
