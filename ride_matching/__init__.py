"""Route similarity matching engine for planned and recorded rides."""

from .errors import RideMatchingError, TrackParseError
from .matcher import RouteMatcher, compare_routes, find_best_planned_match
from .models import (
    Coordinate,
    GPXStats,
    MatchDetails,
    PlannedRoute,
    PlannedRouteMatch,
    ProximityConfig,
    ProximityResult,
    RouteMatchingConfig,
    RouteMatchResult,
    Track,
    TrackPoint,
)
from .parser import load_track, parse_track
from .proximity import check_participant_proximity
from .stats import calculate_stats

__all__ = [
    "Coordinate",
    "GPXStats",
    "MatchDetails",
    "PlannedRoute",
    "PlannedRouteMatch",
    "ProximityConfig",
    "ProximityResult",
    "RideMatchingError",
    "RouteMatcher",
    "RouteMatchingConfig",
    "RouteMatchResult",
    "Track",
    "TrackParseError",
    "TrackPoint",
    "calculate_stats",
    "check_participant_proximity",
    "compare_routes",
    "find_best_planned_match",
    "load_track",
    "parse_track",
]
