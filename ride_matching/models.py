"""Dataclasses describing GPS tracks, matching policy and match outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple

from . import config


LatLon = Tuple[float, float]


class Coordinate(NamedTuple):
    """Latitude/longitude pair reported for track endpoints."""

    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class TrackPoint:
    """One GPS sample as captured by a device or route planner."""

    latitude: float
    longitude: float
    timestamp: datetime
    elevation: Optional[float] = None
    speed: Optional[float] = None
    heart_rate: Optional[int] = None
    # True when the source had no usable time and the parse instant was used.
    fallback_timestamp: bool = False


@dataclass(frozen=True, slots=True)
class Track:
    """Ordered GPS samples in capture order plus parse metadata."""

    points: Tuple[TrackPoint, ...] = ()
    name: Optional[str] = None
    declared_start_time: Optional[datetime] = None
    diagnostics: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[TrackPoint]:
        return iter(self.points)

    def __getitem__(self, index: int) -> TrackPoint:
        return self.points[index]

    @property
    def start_time(self) -> Optional[datetime]:
        """Return the earliest recorded sample time.

        The declared start from the file header is used only when no sample
        carries a real timestamp.
        """

        recorded = [
            point.timestamp for point in self.points if not point.fallback_timestamp
        ]
        if recorded:
            return min(recorded)
        if self.declared_start_time is not None:
            return self.declared_start_time
        if self.points:
            return self.points[0].timestamp
        return None

    @property
    def has_fallback_timestamps(self) -> bool:
        """Return True when any point lacked a real timestamp in the source."""

        return any(point.fallback_timestamp for point in self.points)

    def coordinates(self) -> List[LatLon]:
        return [(point.latitude, point.longitude) for point in self.points]

    def elevations(self) -> List[float]:
        return [point.elevation for point in self.points if point.elevation is not None]


@dataclass(slots=True)
class GPXStats:
    """Aggregate distance/elevation summary derived from a track."""

    distance: float = 0.0
    elevation_gain: int = 0
    coordinates: List[LatLon] = field(default_factory=list)
    start_coords: Optional[Coordinate] = None
    end_coords: Optional[Coordinate] = None
    duration_s: Optional[float] = None
    moving_time_s: Optional[float] = None
    average_speed_kmh: Optional[float] = None
    average_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None


@dataclass(frozen=True, slots=True)
class RouteMatchingConfig:
    """Policy used when deciding whether a track matches a reference route."""

    similarity_threshold: float = 85.0
    time_window_minutes: float = 60.0
    minimum_track_points: int = 50
    max_distance_deviation: float = 100.0

    @classmethod
    def from_settings(cls) -> "RouteMatchingConfig":
        """Build a config from the environment-backed module settings."""

        return cls(
            similarity_threshold=config.ROUTE_MATCH_SIMILARITY_THRESHOLD,
            time_window_minutes=config.ROUTE_MATCH_TIME_WINDOW_MINUTES,
            minimum_track_points=config.ROUTE_MATCH_MINIMUM_TRACK_POINTS,
            max_distance_deviation=config.ROUTE_MATCH_MAX_DISTANCE_DEVIATION_M,
        )


@dataclass(frozen=True, slots=True)
class MatchDetails:
    """Component scores (0-100) that make up the overall similarity."""

    geometric_similarity: float = 0.0
    temporal_alignment: float = 0.0
    elevation_correlation: float = 0.0


@dataclass(slots=True)
class RouteMatchResult:
    """Outcome of comparing an uploaded track against a reference route."""

    similarity: float
    matched_points: int
    total_points: int
    time_window_match: bool
    is_valid: bool
    details: MatchDetails = field(default_factory=MatchDetails)
    timestamps_reliable: bool = True
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the record shape stored alongside a ride for auditing."""

        return {
            "similarity": self.similarity,
            "matchedPoints": self.matched_points,
            "totalPoints": self.total_points,
            "timeWindowMatch": self.time_window_match,
            "isValid": self.is_valid,
            "details": {
                "geometricSimilarity": self.details.geometric_similarity,
                "temporalAlignment": self.details.temporal_alignment,
                "elevationCorrelation": self.details.elevation_correlation,
            },
            "timestampsReliable": self.timestamps_reliable,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class PlannedRoute:
    """A planned ride that an uploaded track may be linked to."""

    ride_id: int
    name: str
    start_time: datetime
    track: Track


@dataclass(slots=True)
class PlannedRouteMatch:
    """Best planned ride found for an uploaded track."""

    route: PlannedRoute
    result: RouteMatchResult


@dataclass(frozen=True, slots=True)
class ProximityConfig:
    """Thresholds for checking that a participant rode with the organizer."""

    proximity_radius_m: float = 50.0
    time_window_s: float = 15.0
    min_match_percentage: float = 80.0

    @classmethod
    def from_settings(cls) -> "ProximityConfig":
        """Build a config from the environment-backed module settings."""

        return cls(
            proximity_radius_m=config.PROXIMITY_RADIUS_M,
            time_window_s=config.PROXIMITY_TIME_WINDOW_S,
            min_match_percentage=config.PROXIMITY_MIN_MATCH_PERCENTAGE,
        )


@dataclass(frozen=True, slots=True)
class MatchedSegment:
    """Contiguous stretch of organizer points the participant stayed close to."""

    start_time: datetime
    end_time: datetime
    duration_s: float


@dataclass(slots=True)
class ProximityResult:
    """Aggregate outcome of an organizer/participant proximity check."""

    matched_points: int
    total_organizer_points: int
    proximity_score: float
    is_completed: bool
    matched_segments: List[MatchedSegment] = field(default_factory=list)


__all__ = [
    "Coordinate",
    "GPXStats",
    "LatLon",
    "MatchDetails",
    "MatchedSegment",
    "PlannedRoute",
    "PlannedRouteMatch",
    "ProximityConfig",
    "ProximityResult",
    "RouteMatchResult",
    "RouteMatchingConfig",
    "Track",
    "TrackPoint",
]
