"""Distance, elevation, timing and heart-rate summaries for a single track."""

from __future__ import annotations

from typing import Optional

from .config import STATS_STOP_SPEED_KMH
from .geometry import haversine_m
from .models import Coordinate, GPXStats, Track


def calculate_stats(
    track: Track, *, stop_speed_kmh: float = STATS_STOP_SPEED_KMH
) -> GPXStats:
    """Summarise a track; empty input yields zeroed stats."""

    points = track.points
    if not points:
        return GPXStats()

    distance_km = 0.0
    for prev, curr in zip(points, points[1:]):
        distance_km += (
            haversine_m(prev.latitude, prev.longitude, curr.latitude, curr.longitude)
            / 1000.0
        )

    gain_m = 0.0
    previous_elevation: Optional[float] = None
    for point in points:
        if point.elevation is None:
            continue
        if previous_elevation is not None and point.elevation > previous_elevation:
            gain_m += point.elevation - previous_elevation
        previous_elevation = point.elevation

    coordinates = track.coordinates()
    first, last = coordinates[0], coordinates[-1]
    duration_s, moving_time_s = _timing(track, stop_speed_kmh)
    average_speed: Optional[float] = None
    if moving_time_s and distance_km > 0:
        average_speed = round(distance_km / (moving_time_s / 3600.0), 2)

    heart_rates = [point.heart_rate for point in points if point.heart_rate]
    average_hr: Optional[int] = None
    max_hr: Optional[int] = None
    if heart_rates:
        average_hr = int(sum(heart_rates) / len(heart_rates) + 0.5)
        max_hr = max(heart_rates)

    return GPXStats(
        distance=max(round(distance_km, 2), 0.0),
        elevation_gain=max(int(round(gain_m)), 0),
        coordinates=coordinates,
        start_coords=Coordinate(first[0], first[1]),
        end_coords=Coordinate(last[0], last[1]),
        duration_s=duration_s,
        moving_time_s=moving_time_s,
        average_speed_kmh=average_speed,
        average_heart_rate=average_hr,
        max_heart_rate=max_hr,
    )


def _timing(
    track: Track, stop_speed_kmh: float
) -> tuple[Optional[float], Optional[float]]:
    """Return elapsed and moving seconds using only real timestamps."""

    timed = [point for point in track.points if not point.fallback_timestamp]
    if len(timed) < 2:
        return None, None
    times = [point.timestamp for point in timed]
    duration_s = (max(times) - min(times)).total_seconds()

    moving_time_s = 0.0
    for prev, curr in zip(timed, timed[1:]):
        delta_s = (curr.timestamp - prev.timestamp).total_seconds()
        if delta_s <= 0:
            continue
        distance_m = haversine_m(
            prev.latitude, prev.longitude, curr.latitude, curr.longitude
        )
        if distance_m / delta_s * 3.6 > stop_speed_kmh:
            moving_time_s += delta_s
    return duration_s, (moving_time_s if moving_time_s > 0 else None)


__all__ = ["calculate_stats"]
