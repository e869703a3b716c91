"""Global pytest fixtures & helpers.

Adds project root to path and provides synthetic track builders shared by the
parser, statistics and matcher tests.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ride_matching.models import Track, TrackPoint

T0 = datetime(2026, 5, 3, 8, 0, tzinfo=timezone.utc)

# Degrees of latitude per kilometre on the 6371 km sphere.
DEG_PER_KM = 1.0 / 111.19492664455873


# --- Factory helpers -------------------------------------------------
def make_track(
    count: int = 100,
    *,
    start: datetime = T0,
    length_km: float = 10.0,
    lat0: float = 45.0,
    lon0: float = 7.0,
    lon_offset: float = 0.0,
    interval_s: float = 20.0,
    intervals: Optional[Sequence[float]] = None,
    elevations: Optional[Sequence[Optional[float]]] = None,
) -> Track:
    """Build a straight north-bound track of ``count`` evenly spaced points."""

    step = length_km * DEG_PER_KM / max(count - 1, 1)
    if elevations is None:
        elevations = [200.0 * idx / max(count - 1, 1) for idx in range(count)]
    points = []
    elapsed = 0.0
    for idx in range(count):
        if idx and intervals is not None:
            elapsed += intervals[idx - 1]
        elif idx:
            elapsed += interval_s
        points.append(
            TrackPoint(
                latitude=lat0 + idx * step,
                longitude=lon0 + lon_offset,
                timestamp=start + timedelta(seconds=elapsed),
                elevation=elevations[idx],
            )
        )
    return Track(points=tuple(points))


def shift_track(track: Track, delta: timedelta) -> Track:
    """Return a copy of ``track`` with every timestamp moved by ``delta``."""

    points = tuple(
        TrackPoint(
            latitude=p.latitude,
            longitude=p.longitude,
            timestamp=p.timestamp + delta,
            elevation=p.elevation,
            speed=p.speed,
            fallback_timestamp=p.fallback_timestamp,
        )
        for p in track.points
    )
    return Track(points=points, name=track.name)


def build_gpx(track: Track, *, name: str = "Morning Ride", with_time: bool = True) -> str:
    """Serialise a track as a GPX 1.1 document."""

    rows = []
    for point in track.points:
        parts = [f'<trkpt lat="{point.latitude!r}" lon="{point.longitude!r}">']
        if point.elevation is not None:
            parts.append(f"<ele>{point.elevation!r}</ele>")
        if with_time:
            parts.append(f"<time>{point.timestamp.isoformat()}</time>")
        parts.append("</trkpt>")
        rows.append("".join(parts))
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">'
        f"<trk><name>{name}</name><trkseg>{''.join(rows)}</trkseg></trk></gpx>"
    )


def varied_intervals(count: int) -> list[float]:
    """Return non-constant sample intervals so speed has real variance."""

    return [10.0 + (idx % 7) * 3.0 for idx in range(count - 1)]


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def start_time() -> datetime:
    return T0


@pytest.fixture
def reference_track() -> Track:
    """100 points along a 10 km straight line climbing 0 to 200 m."""

    return make_track()


@pytest.fixture
def varied_track() -> Track:
    """Track with uneven speed and a non-monotonic elevation profile."""

    count = 120
    elevations = [100.0 + 30.0 * ((idx % 17) - 8) / 8.0 + idx * 0.5 for idx in range(count)]
    return make_track(count, intervals=varied_intervals(count), elevations=elevations)
