"""Correlation scoring for speed and elevation profiles of two tracks.

Both profiles go through the same routine: resample the longer series down to
the shorter one's length by linear interpolation over index position, take the
Pearson coefficient and map ``r`` in ``[-1, 1]`` onto a 0-100 score. Missing
sensor data is evidentially neutral and scores 50.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np
from numpy.typing import NDArray

from .geometry import haversine_m
from .models import Track

_LOG = logging.getLogger(__name__)

SeriesArray = NDArray[np.float64]

NEUTRAL_SCORE = 50.0

# Denominators at or below this count as zero variance (a constant series with
# rounding noise).
_VARIANCE_EPSILON = 1e-12


def resample(values: Sequence[float], length: int) -> SeriesArray:
    """Linearly interpolate ``values`` at ``length`` evenly spaced index positions."""

    array = np.asarray(values, dtype=float)
    if length <= 0 or array.size == 0:
        return np.empty(0, dtype=float)
    if array.size == length:
        return array.copy()
    positions = np.linspace(0.0, float(array.size - 1), num=length)
    return np.interp(positions, np.arange(array.size, dtype=float), array)


def pearson_correlation(values_a: Sequence[float], values_b: Sequence[float]) -> float:
    """Return the Pearson coefficient after resampling both series to equal length.

    Empty input and zero-variance series yield 0.
    """

    n = min(len(values_a), len(values_b))
    if n == 0:
        return 0.0
    a = resample(values_a, n)
    b = resample(values_b, n)
    diff_a = a - a.mean()
    diff_b = b - b.mean()
    denominator = float(np.sqrt(np.dot(diff_a, diff_a) * np.dot(diff_b, diff_b)))
    if not np.isfinite(denominator) or denominator <= _VARIANCE_EPSILON:
        return 0.0
    r = float(np.dot(diff_a, diff_b)) / denominator
    return float(min(max(r, -1.0), 1.0))


def correlation_score(values_a: Sequence[float], values_b: Sequence[float]) -> float:
    """Map the correlation of two series to 0-100; 50 when either is empty."""

    if len(values_a) == 0 or len(values_b) == 0:
        return NEUTRAL_SCORE
    r = pearson_correlation(values_a, values_b)
    return float(min(max((r + 1.0) * 50.0, 0.0), 100.0))


def speed_series(track: Track) -> List[float]:
    """Return km/h speeds between consecutive points with a positive time step."""

    speeds: List[float] = []
    points = track.points
    for prev, curr in zip(points, points[1:]):
        delta_s = (curr.timestamp - prev.timestamp).total_seconds()
        if delta_s <= 0:
            continue
        distance_m = haversine_m(
            prev.latitude, prev.longitude, curr.latitude, curr.longitude
        )
        speeds.append(distance_m / delta_s * 3.6)
    return speeds


def elevation_series(track: Track) -> List[float]:
    """Return recorded elevations, dropping points without one."""

    return track.elevations()


def temporal_alignment(reference: Track, uploaded: Track) -> float:
    """Score how closely the two speed patterns move together."""

    ref_speeds = speed_series(reference)
    up_speeds = speed_series(uploaded)
    if not ref_speeds or not up_speeds:
        _LOG.debug("Speed data unavailable; temporal alignment is neutral")
    return correlation_score(ref_speeds, up_speeds)


def elevation_correlation(reference: Track, uploaded: Track) -> float:
    """Score how closely the two elevation profiles move together."""

    ref_elevations = elevation_series(reference)
    up_elevations = elevation_series(uploaded)
    if not ref_elevations or not up_elevations:
        _LOG.debug("Elevation data unavailable; elevation correlation is neutral")
    return correlation_score(ref_elevations, up_elevations)


__all__ = [
    "NEUTRAL_SCORE",
    "correlation_score",
    "elevation_correlation",
    "elevation_series",
    "pearson_correlation",
    "resample",
    "speed_series",
    "temporal_alignment",
]
