"""Check that a participant actually rode alongside the ride organizer."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import List, Optional

import numpy as np

from .geometry import EARTH_RADIUS_M
from .models import (
    MatchedSegment,
    ProximityConfig,
    ProximityResult,
    Track,
    TrackPoint,
)

_LOG = logging.getLogger(__name__)


def check_participant_proximity(
    organizer: Track,
    participant: Track,
    config: Optional[ProximityConfig] = None,
) -> ProximityResult:
    """Measure the share of organizer samples the participant stayed close to.

    An organizer sample counts as matched when any participant sample lies
    within ``time_window_s`` seconds and ``proximity_radius_m`` metres of it.
    Samples whose timestamp was substituted during parsing are ignored.
    """

    cfg = config or ProximityConfig()
    org_points = _timed_points(organizer)
    part_points = _timed_points(participant)
    if not org_points or not part_points:
        return ProximityResult(
            matched_points=0,
            total_organizer_points=len(org_points),
            proximity_score=0.0,
            is_completed=False,
        )

    part_times = np.asarray([p.timestamp.timestamp() for p in part_points], dtype=float)
    order = np.argsort(part_times, kind="stable")
    part_times = part_times[order]
    part_lat = np.radians([part_points[i].latitude for i in order])
    part_lon = np.radians([part_points[i].longitude for i in order])

    matched_flags: List[bool] = []
    for point in org_points:
        org_time = point.timestamp.timestamp()
        lo = int(np.searchsorted(part_times, org_time - cfg.time_window_s, side="left"))
        hi = int(np.searchsorted(part_times, org_time + cfg.time_window_s, side="right"))
        if lo >= hi:
            matched_flags.append(False)
            continue
        distances = _distances_from(point, part_lat[lo:hi], part_lon[lo:hi])
        matched_flags.append(bool(np.any(distances <= cfg.proximity_radius_m)))

    matched = sum(matched_flags)
    segments = _matched_segments(org_points, matched_flags)
    score = matched / len(org_points) * 100.0
    is_completed = score >= cfg.min_match_percentage
    _LOG.info(
        "Proximity: %d/%d organizer points matched (%.2f%%), %d segment(s), completed=%s",
        matched,
        len(org_points),
        score,
        len(segments),
        is_completed,
    )
    return ProximityResult(
        matched_points=matched,
        total_organizer_points=len(org_points),
        proximity_score=score,
        is_completed=is_completed,
        matched_segments=segments,
    )


def _timed_points(track: Track) -> List[TrackPoint]:
    return [point for point in track.points if not point.fallback_timestamp]


def _distances_from(
    point: TrackPoint, lat_rad: np.ndarray, lon_rad: np.ndarray
) -> np.ndarray:
    lat0 = np.radians(point.latitude)
    lon0 = np.radians(point.longitude)
    hav = (
        np.sin((lat_rad - lat0) / 2.0) ** 2
        + np.cos(lat0) * np.cos(lat_rad) * np.sin((lon_rad - lon0) / 2.0) ** 2
    )
    hav = np.clip(hav, 0.0, 1.0)
    return EARTH_RADIUS_M * 2.0 * np.arctan2(np.sqrt(hav), np.sqrt(1.0 - hav))


def _matched_segments(
    points: List[TrackPoint], flags: List[bool]
) -> List[MatchedSegment]:
    """Group consecutive matched organizer samples into timed segments."""

    segments: List[MatchedSegment] = []
    seg_start: Optional[datetime] = None
    seg_end: Optional[datetime] = None
    for point, matched in zip(points, flags):
        if matched:
            if seg_start is None:
                seg_start = point.timestamp
            seg_end = point.timestamp
            continue
        if seg_start is not None and seg_end is not None:
            segments.append(_segment(seg_start, seg_end))
        seg_start = seg_end = None
    if seg_start is not None and seg_end is not None:
        segments.append(_segment(seg_start, seg_end))
    return segments


def _segment(start: datetime, end: datetime) -> MatchedSegment:
    return MatchedSegment(
        start_time=start,
        end_time=end,
        duration_s=(end - start).total_seconds(),
    )


__all__ = ["check_participant_proximity"]
