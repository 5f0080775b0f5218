"""End-to-end road-trip planning pipeline."""

from .service import PlanTier, RoutePlannerService, create_planner

__all__ = ["PlanTier", "RoutePlannerService", "create_planner"]
