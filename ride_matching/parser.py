"""Extract ordered track points from raw GPX documents.

The parser walks the XML tree rather than pattern-matching text, so attribute
order, namespaces (GPX 1.0/1.1, Garmin extensions) and whitespace do not
matter. Track points (``trkpt``) are preferred; files that only carry a
planned route fall back to route points (``rtept``).

Malformed input never raises from :func:`parse_track`: the caller receives an
empty :class:`~ride_matching.models.Track` whose ``diagnostics`` explain what
went wrong, and the minimum point-count check downstream turns that into an
ordinary "no match" verdict. :func:`load_track` is the strict variant for
tools that prefer an exception.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple
from xml.etree.ElementTree import Element

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as ET

from .errors import TrackParseError
from .models import Track, TrackPoint

_LOG = logging.getLogger(__name__)

TrackData = str | bytes


def parse_track(data: TrackData, *, now: Optional[datetime] = None) -> Track:
    """Parse GPX text into a Track, returning an empty Track on failure."""

    parse_instant = _resolve_now(now)
    try:
        root = _parse_document(data)
    except TrackParseError as exc:
        _LOG.warning("Unable to parse track data: %s", exc)
        return Track(diagnostics=(str(exc),))
    return _build_track(root, parse_instant)


def load_track(data: TrackData, *, now: Optional[datetime] = None) -> Track:
    """Parse GPX text into a Track, raising ``TrackParseError`` on bad input."""

    root = _parse_document(data)
    return _build_track(root, _resolve_now(now))


def parse_iso8601(value: str) -> datetime:
    """Parse ISO timestamps, normalising a trailing Z and naive values to UTC."""

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _resolve_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def _parse_document(data: TrackData) -> Element:
    """Return the <gpx> root element or raise ``TrackParseError``."""

    if data is None or not data.strip():
        raise TrackParseError("Track data is empty")
    try:
        root = ET.fromstring(data)
    except (ET.ParseError, DefusedXmlException) as exc:
        raise TrackParseError(f"Malformed GPX document: {exc}") from exc
    tag = _local_name(root.tag)
    if tag != "gpx":
        raise TrackParseError(f"Unexpected root element <{tag}>; expected <gpx>")
    return root


def _build_track(root: Element, parse_instant: datetime) -> Track:
    elements = _find_all(root, "trkpt") or _find_all(root, "rtept")
    points: List[TrackPoint] = []
    skipped = 0
    for element in elements:
        point = _parse_point(element, parse_instant)
        if point is None:
            skipped += 1
            continue
        points.append(point)

    fallback_count = sum(1 for point in points if point.fallback_timestamp)
    diagnostics: List[str] = []
    if not elements:
        diagnostics.append("No track or route points found")
    if skipped:
        diagnostics.append(f"Skipped {skipped} point(s) without valid coordinates")
    if fallback_count:
        diagnostics.append(
            f"{fallback_count} point(s) had no usable timestamp; parse time substituted"
        )
    _LOG.debug(
        "Parsed %d point(s) (%d skipped, %d fallback timestamps)",
        len(points),
        skipped,
        fallback_count,
    )
    return Track(
        points=tuple(points),
        name=_track_name(root),
        declared_start_time=_declared_start(root),
        diagnostics=tuple(diagnostics),
    )


def _parse_point(element: Element, parse_instant: datetime) -> Optional[TrackPoint]:
    """Convert a trkpt/rtept element, or return None when coordinates are unusable."""

    lat = _parse_float(element.get("lat"))
    lon = _parse_float(element.get("lon"))
    if lat is None or lon is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None

    elevation = _parse_float(_child_text(element, "ele"))
    speed = _parse_float(_descendant_text(element, "speed"))
    heart_rate = _parse_heart_rate(_descendant_text(element, "hr"))
    timestamp, fallback = _parse_time(_child_text(element, "time"), parse_instant)
    return TrackPoint(
        latitude=lat,
        longitude=lon,
        timestamp=timestamp,
        elevation=elevation,
        speed=speed,
        heart_rate=heart_rate,
        fallback_timestamp=fallback,
    )


def _parse_time(text: Optional[str], parse_instant: datetime) -> Tuple[datetime, bool]:
    if not text:
        return parse_instant, True
    try:
        return parse_iso8601(text), False
    except ValueError:
        return parse_instant, True


def _parse_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        value = float(text.strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def _parse_heart_rate(text: Optional[str]) -> Optional[int]:
    value = _parse_float(text)
    if value is None or value <= 0:
        return None
    return int(value)


def _track_name(root: Element) -> Optional[str]:
    for container in ("trk", "rte", "metadata"):
        for element in _find_all(root, container):
            name = _child_text(element, "name")
            if name:
                return name
    return None


def _declared_start(root: Element) -> Optional[datetime]:
    # GPX 1.1 keeps the file time in <metadata>; GPX 1.0 puts it under <gpx>.
    for container in [*_find_all(root, "metadata"), root]:
        text = _child_text(container, "time")
        if not text:
            continue
        try:
            return parse_iso8601(text)
        except ValueError:
            _LOG.debug("Ignoring unparseable header time %r", text)
    return None


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _find_all(root: Element, name: str) -> List[Element]:
    return [element for element in root.iter() if _local_name(element.tag) == name]


def _children(element: Element, name: str) -> Iterable[Element]:
    return (child for child in element if _local_name(child.tag) == name)


def _child_text(element: Element, name: str) -> Optional[str]:
    for child in _children(element, name):
        text = (child.text or "").strip()
        if text:
            return text
    return None


def _descendant_text(element: Element, name: str) -> Optional[str]:
    for descendant in element.iter():
        if descendant is element or _local_name(descendant.tag) != name:
            continue
        text = (descendant.text or "").strip()
        if text:
            return text
    return None


__all__ = ["TrackData", "load_track", "parse_iso8601", "parse_track"]
