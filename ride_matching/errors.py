"""Central error types used across the matching engine."""

from __future__ import annotations


class RideMatchingError(RuntimeError):
    """Base error for route matching failures."""


class TrackParseError(RideMatchingError):
    """Raised when raw track data cannot be read as a GPX document."""


__all__ = [
    "RideMatchingError",
    "TrackParseError",
]
