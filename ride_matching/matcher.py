"""Decide whether an uploaded track is the same ride as a reference route.

The verdict combines three component scores under a start-time gate:

* geometric similarity from the symmetric Hausdorff distance (weight 0.60),
* temporal alignment of the two speed profiles (weight 0.25),
* elevation profile correlation (weight 0.15).

A match is valid only when the weighted score reaches the configured
threshold *and* the uploaded track started inside the time window. Every call
is a pure function of its inputs and the immutable config, so one matcher can
serve concurrent requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import logging
from typing import Iterable, Optional

from .correlation import elevation_correlation, temporal_alignment
from .geometry import geometric_similarity
from .models import (
    MatchDetails,
    PlannedRoute,
    PlannedRouteMatch,
    RouteMatchingConfig,
    RouteMatchResult,
    Track,
)

_LOG = logging.getLogger(__name__)

GEOMETRIC_WEIGHT = 0.60
TEMPORAL_WEIGHT = 0.25
ELEVATION_WEIGHT = 0.15


def compare_routes(
    reference: Track,
    uploaded: Track,
    reference_start_time: datetime,
    config: Optional[RouteMatchingConfig] = None,
) -> RouteMatchResult:
    """Compare an uploaded track against a reference route and return a verdict."""

    cfg = config or RouteMatchingConfig()
    total_points = len(uploaded)
    timestamps_reliable = not (
        reference.has_fallback_timestamps or uploaded.has_fallback_timestamps
    )

    if total_points < cfg.minimum_track_points:
        _LOG.info(
            "Rejecting upload with %d point(s); at least %d required",
            total_points,
            cfg.minimum_track_points,
        )
        return _failed_result(
            total_points,
            reason=(
                f"Insufficient track points in uploaded activity "
                f"({total_points} < {cfg.minimum_track_points})"
            ),
            timestamps_reliable=timestamps_reliable,
        )

    window_match = check_time_window(
        uploaded.start_time, reference_start_time, cfg.time_window_minutes
    )
    details = MatchDetails(
        geometric_similarity=geometric_similarity(
            reference, uploaded, cfg.max_distance_deviation
        ),
        temporal_alignment=temporal_alignment(reference, uploaded),
        elevation_correlation=elevation_correlation(reference, uploaded),
    )
    overall = combine_scores(details)
    matched_points = _round_half_up(overall / 100.0 * total_points)
    is_valid = overall >= cfg.similarity_threshold and window_match

    _LOG.debug(
        "Component scores: geometric=%.2f temporal=%.2f elevation=%.2f",
        details.geometric_similarity,
        details.temporal_alignment,
        details.elevation_correlation,
    )
    _LOG.info(
        "Route match similarity=%.2f time_window=%s valid=%s",
        overall,
        window_match,
        is_valid,
    )
    if not timestamps_reliable:
        _LOG.warning(
            "Match computed with substituted timestamps; treat the verdict "
            "with reduced confidence"
        )
    return RouteMatchResult(
        similarity=overall,
        matched_points=matched_points,
        total_points=total_points,
        time_window_match=window_match,
        is_valid=is_valid,
        details=details,
        timestamps_reliable=timestamps_reliable,
    )


def combine_scores(details: MatchDetails) -> float:
    """Return the weighted overall score for a set of component scores."""

    return (
        GEOMETRIC_WEIGHT * details.geometric_similarity
        + TEMPORAL_WEIGHT * details.temporal_alignment
        + ELEVATION_WEIGHT * details.elevation_correlation
    )


def check_time_window(
    start_time: Optional[datetime],
    reference_start_time: Optional[datetime],
    window_minutes: float,
) -> bool:
    """Return True when the two starts differ by at most ``window_minutes``."""

    if start_time is None or reference_start_time is None:
        return False
    offset = abs(_as_utc(start_time) - _as_utc(reference_start_time))
    return offset <= timedelta(minutes=window_minutes)


@dataclass(frozen=True, slots=True)
class RouteMatcher:
    """Route comparison bound to one immutable matching config."""

    config: RouteMatchingConfig = field(default_factory=RouteMatchingConfig)

    def compare_routes(
        self,
        reference: Track,
        uploaded: Track,
        reference_start_time: datetime,
    ) -> RouteMatchResult:
        return compare_routes(reference, uploaded, reference_start_time, self.config)

    def find_best_planned_match(
        self,
        uploaded: Track,
        planned_routes: Iterable[PlannedRoute],
    ) -> Optional[PlannedRouteMatch]:
        return find_best_planned_match(uploaded, planned_routes, self.config)


def find_best_planned_match(
    uploaded: Track,
    planned_routes: Iterable[PlannedRoute],
    config: Optional[RouteMatchingConfig] = None,
) -> Optional[PlannedRouteMatch]:
    """Link an organizer's recording to the best valid plan on the same day."""

    start = uploaded.start_time
    if start is None:
        return None
    activity_date = _as_utc(start).date()

    best: Optional[PlannedRouteMatch] = None
    for route in planned_routes:
        if _as_utc(route.start_time).date() != activity_date:
            continue
        result = compare_routes(route.track, uploaded, route.start_time, config)
        _LOG.debug(
            "Planned ride %s (%s) similarity=%.2f valid=%s",
            route.ride_id,
            route.name,
            result.similarity,
            result.is_valid,
        )
        if not result.is_valid:
            continue
        if best is None or result.similarity > best.result.similarity:
            best = PlannedRouteMatch(route=route, result=result)
    return best


def _failed_result(
    total_points: int, *, reason: str, timestamps_reliable: bool
) -> RouteMatchResult:
    return RouteMatchResult(
        similarity=0.0,
        matched_points=0,
        total_points=total_points,
        time_window_match=False,
        is_valid=False,
        details=MatchDetails(),
        timestamps_reliable=timestamps_reliable,
        reason=reason,
    )


def _round_half_up(value: float) -> int:
    return int(value + 0.5) if value > 0 else 0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = [
    "ELEVATION_WEIGHT",
    "GEOMETRIC_WEIGHT",
    "TEMPORAL_WEIGHT",
    "RouteMatcher",
    "check_time_window",
    "combine_scores",
    "compare_routes",
    "find_best_planned_match",
]
