"""Directions provider chain and waypoint sampling."""

from .sampler import WaypointSampler
from .service import (
    GraphHopperRouteProvider,
    HttpRouteProvider,
    OpenRouteServiceProvider,
    OSRMRouteProvider,
    RouteProvider,
    RouteProviderChain,
    build_route_result,
    lnglat_to_coordinates,
)

__all__ = [
    "WaypointSampler",
    "GraphHopperRouteProvider",
    "HttpRouteProvider",
    "OpenRouteServiceProvider",
    "OSRMRouteProvider",
    "RouteProvider",
    "RouteProviderChain",
    "build_route_result",
    "lnglat_to_coordinates",
]
