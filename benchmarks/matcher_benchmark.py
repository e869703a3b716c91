"""Benchmark the route matcher pipeline with large point counts."""

from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from ride_matching.correlation import (  # noqa: E402
    elevation_correlation,
    temporal_alignment,
)
from ride_matching.geometry import hausdorff_distance_m  # noqa: E402
from ride_matching.matcher import compare_routes  # noqa: E402
from ride_matching.models import Track, TrackPoint  # noqa: E402

_START = datetime(2026, 5, 3, 8, 0, tzinfo=timezone.utc)


@dataclass(slots=True)
class StageDurations:
    """Timing measurements (in seconds) for the matcher pipeline."""

    hausdorff: float
    correlation: float
    compare: float

    @property
    def total(self) -> float:
        """Return the aggregate duration for this benchmark iteration."""

        return self.hausdorff + self.correlation + self.compare


@dataclass(slots=True)
class BenchmarkSummary:
    """Aggregated statistics for multiple benchmark iterations."""

    point_count: int
    iterations: int
    mean_hausdorff_ms: float
    mean_correlation_ms: float
    mean_compare_ms: float
    mean_total_ms: float
    worst_total_ms: float


def _build_track(point_count: int, *, lon_offset: float = 0.0) -> Track:
    """Generate a gently curving track with evenly spaced samples."""

    base_lat = 37.0
    base_lon = -122.0
    step_deg = 1.2e-4
    points = [
        TrackPoint(
            latitude=base_lat + idx * step_deg,
            longitude=base_lon + lon_offset + 2e-3 * ((idx % 200) / 200.0),
            elevation=50.0 + (idx % 300) * 0.5,
            timestamp=_START + timedelta(seconds=idx * 2.0),
        )
        for idx in range(point_count)
    ]
    return Track(points=tuple(points))


def _run_iteration(reference: Track, uploaded: Track) -> StageDurations:
    """Execute one benchmark iteration and capture per-stage timings."""

    ref_coords = reference.coordinates()
    up_coords = uploaded.coordinates()

    start = time.perf_counter()
    distance = hausdorff_distance_m(ref_coords, up_coords)
    _ = distance  # guard against optimisation stripping the call
    hausdorff = time.perf_counter() - start

    start = time.perf_counter()
    _ = temporal_alignment(reference, uploaded)
    _ = elevation_correlation(reference, uploaded)
    correlation = time.perf_counter() - start

    start = time.perf_counter()
    result = compare_routes(reference, uploaded, _START)
    _ = result
    compare = time.perf_counter() - start

    return StageDurations(hausdorff=hausdorff, correlation=correlation, compare=compare)


def run_benchmark(point_count: int, iterations: int) -> BenchmarkSummary:
    """Benchmark the matcher pipeline and return aggregated timings."""

    if point_count < 100:
        raise ValueError("point_count must be at least 100")
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    reference = _build_track(point_count)
    uploaded = _build_track(point_count, lon_offset=1e-5)

    durations: List[StageDurations] = []
    for _ in range(iterations):
        durations.append(_run_iteration(reference, uploaded))

    return BenchmarkSummary(
        point_count=point_count,
        iterations=iterations,
        mean_hausdorff_ms=statistics.fmean(d.hausdorff for d in durations) * 1000.0,
        mean_correlation_ms=statistics.fmean(d.correlation for d in durations)
        * 1000.0,
        mean_compare_ms=statistics.fmean(d.compare for d in durations) * 1000.0,
        mean_total_ms=statistics.fmean(d.total for d in durations) * 1000.0,
        worst_total_ms=max(d.total for d in durations) * 1000.0,
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    """Return a JSON-friendly representation of the benchmark summary."""

    return {
        "point_count": summary.point_count,
        "iterations": summary.iterations,
        "mean_hausdorff_ms": summary.mean_hausdorff_ms,
        "mean_correlation_ms": summary.mean_correlation_ms,
        "mean_compare_ms": summary.mean_compare_ms,
        "mean_total_ms": summary.mean_total_ms,
        "worst_total_ms": summary.worst_total_ms,
    }


def _parse_args() -> argparse.Namespace:
    """Parse command-line arguments for the benchmark utility."""

    parser = argparse.ArgumentParser(
        description="Benchmark the route matcher with long synthetic tracks",
    )
    parser.add_argument(
        "--points",
        type=int,
        default=3000,
        help="Number of points in each synthetic track",
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=5,
        help="Number of repetitions for averaging",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point when running the module as a script."""

    args = _parse_args()
    summary = run_benchmark(args.points, args.iterations)
    formatted = _format_summary(summary)
    for key, value in formatted.items():
        if key in {"point_count", "iterations"}:
            print(f"{key}: {value}")
        else:
            print(f"{key}: {value:.3f}")


if __name__ == "__main__":
    main()
