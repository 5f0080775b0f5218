"""Reduce a dense route polyline to evenly spaced POI search centres."""

import logging
import math
from typing import Sequence

import numpy as np

from roadtrip.models import Coordinates
from roadtrip.utils.geo import segment_lengths_km, to_array

logger = logging.getLogger(__name__)


class WaypointSampler:
    """Picks sampling points spaced equally by distance along a route.

    The number of samples is ``total_km // interval_km`` clamped to
    ``[min_samples, max_samples]``; the first sample is the route start and
    the last is the route end.
    """

    def __init__(
        self,
        interval_km: float = 30.0,
        min_samples: int = 8,
        max_samples: int = 20,
    ) -> None:
        if interval_km <= 0:
            raise ValueError("interval_km must be positive")
        if min_samples < 2 or max_samples < min_samples:
            raise ValueError("need 2 <= min_samples <= max_samples")
        self._interval_km = interval_km
        self._min_samples = min_samples
        self._max_samples = max_samples

    def sample_count(self, total_km: float, interval_km: float | None = None) -> int:
        interval = interval_km or self._interval_km
        return max(self._min_samples, min(self._max_samples, math.floor(total_km / interval)))

    def sample(
        self,
        geometry: Sequence[Coordinates],
        interval_km: float | None = None,
    ) -> list[Coordinates]:
        """Sampling points along ``geometry``.

        Returns an empty list for fewer than two points, and just the start
        point for a zero-length route.
        """
        if len(geometry) < 2:
            return []

        path = to_array(geometry)
        lengths = segment_lengths_km(path)
        # np.interp needs strictly increasing x, so drop zero-length segments
        keep = np.concatenate(([True], lengths > 0))
        path = path[keep]
        lengths = lengths[lengths > 0]

        total_km = float(lengths.sum())
        if total_km == 0:
            return [geometry[0]]

        count = self.sample_count(total_km, interval_km)
        cumulative = np.concatenate(([0.0], np.cumsum(lengths)))
        targets = np.linspace(0.0, total_km, count)
        lats = np.interp(targets, cumulative, path[:, 0])
        lngs = np.interp(targets, cumulative, path[:, 1])

        logger.info(f"[ROUTE] Sampled {count} waypoints over {total_km:.1f} km")
        return [Coordinates(lat=float(lat), lng=float(lng)) for lat, lng in zip(lats, lngs)]
