"""Geodesic helpers shared by routing and POI discovery.

Scalar functions work on plain floats or ``Coordinates``; the ``*_path``
helpers are vectorised with numpy for long route polylines.
"""

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from roadtrip.models import BoundingBox, Coordinates

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)


def project_onto_segment(
    point: Coordinates, seg_start: Coordinates, seg_end: Coordinates
) -> Coordinates:
    """Closest point to ``point`` on the segment, clamped to its endpoints.

    Projection is done in lat/lng degree space, which is accurate enough at
    the corridor widths used for POI filtering.
    """
    d_lat = seg_end.lat - seg_start.lat
    d_lng = seg_end.lng - seg_start.lng
    len_sq = d_lat * d_lat + d_lng * d_lng
    if len_sq == 0:
        return seg_start

    dot = (point.lat - seg_start.lat) * d_lat + (point.lng - seg_start.lng) * d_lng
    t = max(0.0, min(1.0, dot / len_sq))
    return Coordinates(lat=seg_start.lat + t * d_lat, lng=seg_start.lng + t * d_lng)


def distance_to_segment_km(
    point: Coordinates, seg_start: Coordinates, seg_end: Coordinates
) -> float:
    return haversine_km(point, project_onto_segment(point, seg_start, seg_end))


def bounding_box(points: Sequence[Coordinates]) -> BoundingBox:
    """Min/max lat and lng across ``points``.

    Raises:
        ValueError: If ``points`` is empty.
    """
    if not points:
        raise ValueError("Cannot compute a bounding box of no points")
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return BoundingBox(min_lat=min(lats), max_lat=max(lats), min_lng=min(lngs), max_lng=max(lngs))


def interpolate(a: Coordinates, b: Coordinates, ratio: float) -> Coordinates:
    return Coordinates(
        lat=a.lat + (b.lat - a.lat) * ratio,
        lng=a.lng + (b.lng - a.lng) * ratio,
    )


# ── Vectorised helpers ────────────────────────────────────────────────


def to_array(points: Sequence[Coordinates]) -> NDArray[np.float64]:
    """``(n, 2)`` array of ``[lat, lng]`` rows."""
    return np.array([[p.lat, p.lng] for p in points], dtype=np.float64).reshape(-1, 2)


def _haversine_np(
    lat1: NDArray[np.float64],
    lng1: NDArray[np.float64],
    lat2: NDArray[np.float64],
    lng2: NDArray[np.float64],
) -> NDArray[np.float64]:
    lat1, lng1, lat2, lng2 = map(np.radians, (lat1, lng1, lat2, lng2))
    a = (
        np.sin((lat2 - lat1) / 2) ** 2
        + np.cos(lat1) * np.cos(lat2) * np.sin((lng2 - lng1) / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def segment_lengths_km(path: NDArray[np.float64]) -> NDArray[np.float64]:
    """Length of each consecutive segment of an ``(n, 2)`` path."""
    if len(path) < 2:
        return np.zeros(0, dtype=np.float64)
    return _haversine_np(path[:-1, 0], path[:-1, 1], path[1:, 0], path[1:, 1])


def path_length_km(points: Sequence[Coordinates]) -> float:
    return float(segment_lengths_km(to_array(points)).sum())


def distance_to_path_km(point: Coordinates, path: NDArray[np.float64]) -> float:
    """Smallest distance from ``point`` to any segment of ``path``.

    Same projection as ``distance_to_segment_km``, evaluated for every
    segment at once. A single-point path degenerates to point distance.
    """
    if len(path) == 0:
        return math.inf
    if len(path) == 1:
        return haversine_distance(point.lat, point.lng, path[0, 0], path[0, 1])

    starts = path[:-1]
    deltas = path[1:] - starts
    len_sq = (deltas ** 2).sum(axis=1)
    offsets = np.array([point.lat, point.lng]) - starts
    dots = (offsets * deltas).sum(axis=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(len_sq > 0, dots / len_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)
    proj = starts + deltas * t[:, None]
    dists = _haversine_np(
        np.full(len(proj), point.lat), np.full(len(proj), point.lng), proj[:, 0], proj[:, 1]
    )
    return float(dists.min())
