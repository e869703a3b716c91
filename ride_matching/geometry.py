"""Great-circle distances and Hausdorff-based shape similarity."""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import HAUSDORFF_BLOCK_SIZE
from .models import LatLon, Track

MetricArray = NDArray[np.float64]

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance in metres between two lat/lon points."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2.0) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    )
    a = min(max(a, 0.0), 1.0)
    return EARTH_RADIUS_M * 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def pairwise_haversine_m(
    points_a: Sequence[Sequence[float]],
    points_b: Sequence[Sequence[float]],
) -> MetricArray:
    """Return the ``len(a) x len(b)`` matrix of great-circle distances in metres."""

    a = _as_latlon_array(points_a)
    b = _as_latlon_array(points_b)
    return _distance_block(np.radians(a), np.radians(b))


def directed_hausdorff_m(
    points_a: Sequence[Sequence[float]],
    points_b: Sequence[Sequence[float]],
) -> float:
    """Return the worst nearest-neighbour distance from ``a`` to ``b``."""

    forward, _ = _hausdorff_pair(points_a, points_b)
    return forward


def hausdorff_distance_m(
    points_a: Sequence[Sequence[float]],
    points_b: Sequence[Sequence[float]],
) -> float:
    """Return the symmetric Hausdorff distance between two point sets.

    A single point of either set that sits far from the other set dominates
    the result, so a short excursion off the planned line is always visible.
    Returns ``inf`` when either set is empty.
    """

    forward, backward = _hausdorff_pair(points_a, points_b)
    return max(forward, backward)


def geometric_similarity(
    reference: Track | Sequence[LatLon],
    uploaded: Track | Sequence[LatLon],
    max_distance_deviation: float,
) -> float:
    """Convert the Hausdorff distance between two tracks into a 0-100 score."""

    ref_points = _coordinates(reference)
    up_points = _coordinates(uploaded)
    if len(ref_points) == 0 or len(up_points) == 0:
        return 0.0
    distance = hausdorff_distance_m(ref_points, up_points)
    return distance_to_score(distance, max_distance_deviation)


def distance_to_score(distance_m: float, max_distance_deviation: float) -> float:
    """Map a deviation in metres to a score that reaches 0 at the maximum."""

    if not math.isfinite(distance_m):
        return 0.0
    if max_distance_deviation <= 0:
        return 100.0 if distance_m == 0 else 0.0
    score = 100.0 - (distance_m / max_distance_deviation) * 100.0
    return float(min(max(score, 0.0), 100.0))


def _hausdorff_pair(
    points_a: Sequence[Sequence[float]],
    points_b: Sequence[Sequence[float]],
) -> Tuple[float, float]:
    """Return both directed Hausdorff distances from one pass over the matrix."""

    a = _as_latlon_array(points_a)
    b = _as_latlon_array(points_b)
    if a.shape[0] == 0 or b.shape[0] == 0:
        return float("inf"), float("inf")
    a_rad = np.radians(a)
    b_rad = np.radians(b)

    forward = 0.0
    # Nearest distance from each point of b to any point of a, filled blockwise.
    column_min = np.full(b.shape[0], np.inf, dtype=float)
    block = HAUSDORFF_BLOCK_SIZE
    for start in range(0, a.shape[0], block):
        distances = _distance_block(a_rad[start : start + block], b_rad)
        forward = max(forward, float(np.max(np.min(distances, axis=1))))
        np.minimum(column_min, np.min(distances, axis=0), out=column_min)
    backward = float(np.max(column_min))
    return forward, backward


def _distance_block(a_rad: MetricArray, b_rad: MetricArray) -> MetricArray:
    lat_a = a_rad[:, 0][:, np.newaxis]
    lon_a = a_rad[:, 1][:, np.newaxis]
    lat_b = b_rad[:, 0][np.newaxis, :]
    lon_b = b_rad[:, 1][np.newaxis, :]
    hav = (
        np.sin((lat_b - lat_a) / 2.0) ** 2
        + np.cos(lat_a) * np.cos(lat_b) * np.sin((lon_b - lon_a) / 2.0) ** 2
    )
    hav = np.clip(hav, 0.0, 1.0)
    return EARTH_RADIUS_M * 2.0 * np.arctan2(np.sqrt(hav), np.sqrt(1.0 - hav))


def _coordinates(track: Track | Sequence[LatLon]) -> Sequence[LatLon]:
    if isinstance(track, Track):
        return track.coordinates()
    return track


def _as_latlon_array(points: Sequence[Sequence[float]]) -> MetricArray:
    array = np.asarray(points, dtype=float)
    if array.size == 0:
        return np.empty((0, 2), dtype=float)
    if array.ndim != 2 or array.shape[1] != 2:
        raise ValueError("Expected a sequence of (lat, lon) pairs")
    return array


__all__ = [
    "EARTH_RADIUS_M",
    "MetricArray",
    "directed_hausdorff_m",
    "distance_to_score",
    "geometric_similarity",
    "hausdorff_distance_m",
    "haversine_m",
    "pairwise_haversine_m",
]
