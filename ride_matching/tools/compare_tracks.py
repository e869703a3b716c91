#!/usr/bin/env python3
"""Compare an uploaded GPX track against a reference route from the shell.

Usage examples:

    # Use the reference file's own start time as the planned start
    python -m ride_matching.tools.compare_tracks planned.gpx ride.gpx

    # Supply the planned start and a stricter policy, print JSON
    python -m ride_matching.tools.compare_tracks planned.gpx ride.gpx \
        --reference-start 2026-05-03T08:00:00+00:00 \
        --threshold 90 --json

Exit status is 0 for a valid match, 1 for no match and 2 for unreadable input.
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Sequence

from ride_matching.errors import TrackParseError
from ride_matching.matcher import compare_routes
from ride_matching.models import RouteMatchingConfig, RouteMatchResult, Track
from ride_matching.parser import load_track, parse_iso8601
from ride_matching.stats import calculate_stats
from ride_matching.utils import json_dumps_sorted

LOGGER = logging.getLogger("compare_tracks")

EXIT_MATCH = 0
EXIT_NO_MATCH = 1
EXIT_INPUT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    defaults = RouteMatchingConfig.from_settings()
    parser = argparse.ArgumentParser(
        description="Decide whether an uploaded GPX track is the same ride as a reference route."
    )
    parser.add_argument("reference", type=Path, help="Planned or organizer GPX file")
    parser.add_argument("uploaded", type=Path, help="Recorded GPX file to check")
    parser.add_argument(
        "--reference-start",
        help=(
            "ISO timestamp of the planned start (e.g. 2026-05-03T08:00:00+00:00). "
            "Defaults to the reference track's own start time."
        ),
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=defaults.similarity_threshold,
        help="Similarity score (0-100) required for a match (default: %(default)s)",
    )
    parser.add_argument(
        "--time-window-minutes",
        type=float,
        default=defaults.time_window_minutes,
        help="Maximum start-time offset in minutes (default: %(default)s)",
    )
    parser.add_argument(
        "--min-points",
        type=int,
        default=defaults.minimum_track_points,
        help="Minimum uploaded track points (default: %(default)s)",
    )
    parser.add_argument(
        "--max-deviation-m",
        type=float,
        default=defaults.max_distance_deviation,
        help="Hausdorff distance in metres that scores zero (default: %(default)s)",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Include distance/elevation statistics for both tracks",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON instead of a text summary",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity (default: WARNING)",
    )
    return parser


def read_track(path: Path) -> Track:
    """Read and strictly parse a GPX file, raising ``TrackParseError``."""

    try:
        data = path.read_bytes()
    except OSError as exc:
        raise TrackParseError(f"Cannot read {path}: {exc}") from exc
    track = load_track(data)
    for message in track.diagnostics:
        LOGGER.warning("%s: %s", path.name, message)
    return track


def build_report(
    result: RouteMatchResult,
    reference: Track,
    uploaded: Track,
    *,
    include_stats: bool,
) -> Dict[str, Any]:
    report: Dict[str, Any] = {"result": result.to_dict()}
    if include_stats:
        report["stats"] = {
            "reference": dataclasses.asdict(calculate_stats(reference)),
            "uploaded": dataclasses.asdict(calculate_stats(uploaded)),
        }
        for entry in report["stats"].values():
            entry.pop("coordinates", None)
    return report


def format_summary(report: Dict[str, Any]) -> str:
    result = report["result"]
    details = result["details"]
    lines = [
        f"Match:        {'yes' if result['isValid'] else 'no'}",
        f"Similarity:   {result['similarity']:.2f}",
        f"Time window:  {'ok' if result['timeWindowMatch'] else 'outside'}",
        f"Points:       {result['matchedPoints']}/{result['totalPoints']}",
        f"  geometric   {details['geometricSimilarity']:.2f}",
        f"  temporal    {details['temporalAlignment']:.2f}",
        f"  elevation   {details['elevationCorrelation']:.2f}",
    ]
    if result.get("reason"):
        lines.append(f"Reason:       {result['reason']}")
    if not result["timestampsReliable"]:
        lines.append("Warning:      some points had no timestamp")
    for label, stats in report.get("stats", {}).items():
        lines.append(
            f"{label.capitalize():<13} {stats['distance']:.2f} km, "
            f"{stats['elevation_gain']} m gain"
        )
        if stats.get("average_heart_rate"):
            lines[-1] += (
                f", {stats['average_heart_rate']} bpm avg"
                f" / {stats['max_heart_rate']} bpm max"
            )
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, args.log_level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    try:
        reference = read_track(args.reference)
        uploaded = read_track(args.uploaded)
        reference_start = _resolve_reference_start(args.reference_start, reference)
    except TrackParseError as exc:
        LOGGER.error("%s", exc)
        return EXIT_INPUT_ERROR

    config = RouteMatchingConfig(
        similarity_threshold=args.threshold,
        time_window_minutes=args.time_window_minutes,
        minimum_track_points=args.min_points,
        max_distance_deviation=args.max_deviation_m,
    )
    result = compare_routes(reference, uploaded, reference_start, config)
    report = build_report(result, reference, uploaded, include_stats=args.stats)
    if args.json:
        print(json_dumps_sorted(report, indent=2))
    else:
        print(format_summary(report))
    return EXIT_MATCH if result.is_valid else EXIT_NO_MATCH


def _resolve_reference_start(value: str | None, reference: Track) -> datetime:
    if value:
        try:
            return parse_iso8601(value)
        except ValueError as exc:
            raise TrackParseError(f"Invalid ISO timestamp: {value}") from exc
    start = reference.start_time
    untimed = reference.declared_start_time is None and all(
        point.fallback_timestamp for point in reference.points
    )
    if start is None or untimed:
        raise TrackParseError(
            "Reference track has no start time; pass --reference-start"
        )
    return start


if __name__ == "__main__":  # pragma: no cover - CLI entry
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
