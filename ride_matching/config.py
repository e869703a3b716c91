"""Central configuration for the ride matching engine.

All values are constants imported by the rest of the package. Adjust them
through environment variables (optionally via a local `.env`). The dataclass
defaults in :mod:`ride_matching.models` stay fixed; these settings only feed
callers that opt in through ``RouteMatchingConfig.from_settings()``.
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except ImportError:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Route matching policy
# ---------------------------------------------------------------------------
# Overall score (0-100) at or above which a track counts as the same ride.
ROUTE_MATCH_SIMILARITY_THRESHOLD = _env_float("ROUTE_MATCH_SIMILARITY_THRESHOLD", 85.0)

# Maximum offset (minutes) between the planned start and the track start.
ROUTE_MATCH_TIME_WINDOW_MINUTES = _env_float("ROUTE_MATCH_TIME_WINDOW_MINUTES", 60.0)

# Uploaded tracks with fewer points are rejected before any geometry runs.
ROUTE_MATCH_MINIMUM_TRACK_POINTS = _env_int("ROUTE_MATCH_MINIMUM_TRACK_POINTS", 50)

# Hausdorff distance (metres) at which the geometric score reaches zero.
ROUTE_MATCH_MAX_DISTANCE_DEVIATION_M = _env_float(
    "ROUTE_MATCH_MAX_DISTANCE_DEVIATION_M", 100.0
)


# ---------------------------------------------------------------------------
# Organizer/participant proximity
# ---------------------------------------------------------------------------
# Distance (metres) within which a participant counts as riding alongside.
PROXIMITY_RADIUS_M = _env_float("PROXIMITY_RADIUS_M", 50.0)

# Allowed clock difference (seconds) between paired organizer/participant samples.
PROXIMITY_TIME_WINDOW_S = _env_float("PROXIMITY_TIME_WINDOW_S", 15.0)

# Share of organizer points (percent) that must be matched to complete a ride.
PROXIMITY_MIN_MATCH_PERCENTAGE = _env_float("PROXIMITY_MIN_MATCH_PERCENTAGE", 80.0)


# ---------------------------------------------------------------------------
# Statistics and performance tuning
# ---------------------------------------------------------------------------
# Speeds (km/h) at or below this value count as stopped for moving time.
STATS_STOP_SPEED_KMH = _env_float("STATS_STOP_SPEED_KMH", 0.5)

# Rows of the pairwise distance matrix evaluated per Hausdorff block. Bounds
# peak memory to roughly block_size * len(other_track) * 8 bytes per array.
HAUSDORFF_BLOCK_SIZE = max(1, _env_int("HAUSDORFF_BLOCK_SIZE", 1024))
