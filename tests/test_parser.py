"""Tests for GPX track parsing."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest

from ride_matching.errors import TrackParseError
from ride_matching.parser import load_track, parse_iso8601, parse_track

from conftest import T0, build_gpx, make_track

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)

GPX_MIXED = """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1"
     xmlns:gpxtpx="http://www.garmin.com/xmlschemas/TrackPointExtension/v2">
  <metadata>
    <name>Metadata name</name>
    <time>2026-05-03T07:58:00Z</time>
  </metadata>
  <trk>
    <name>Sunday Loop</name>
    <trkseg>
      <trkpt lon="7.0001" lat="45.0001">
        <ele>250.5</ele>
        <time>2026-05-03T08:00:00Z</time>
        <extensions><gpxtpx:TrackPointExtension><gpxtpx:hr>142</gpxtpx:hr><gpxtpx:speed>5.5</gpxtpx:speed></gpxtpx:TrackPointExtension></extensions>
      </trkpt>
      <trkpt lat="45.0002" lon="7.0002">
        <time>2026-05-03T10:00:05+02:00</time>
        <extensions><gpxtpx:TrackPointExtension><gpxtpx:hr>0</gpxtpx:hr></gpxtpx:TrackPointExtension></extensions>
      </trkpt>
      <trkpt lat="45.0003" lon="7.0003">
        <ele>251</ele>
      </trkpt>
      <trkpt lat="45.0004">
        <ele>252</ele>
      </trkpt>
      <trkpt lat="not-a-number" lon="7.0005"/>
      <trkpt lat="45.0006" lon="7.0006">
        <time>yesterday-ish</time>
      </trkpt>
    </trkseg>
  </trk>
</gpx>
"""


def test_parses_points_in_capture_order() -> None:
    track = parse_track(build_gpx(make_track(5)), now=NOW)

    assert len(track) == 5
    assert track.name == "Morning Ride"
    lats = [point.latitude for point in track]
    assert lats == sorted(lats)
    assert track[0].elevation == pytest.approx(0.0)
    assert track[-1].elevation == pytest.approx(200.0)
    assert not track.has_fallback_timestamps
    assert track.diagnostics == ()


def test_optional_fields_and_skipped_points() -> None:
    track = parse_track(GPX_MIXED, now=NOW)

    # Two points lack a usable coordinate and are dropped entirely.
    assert len(track) == 4
    first, second, third, fourth = track.points
    assert (first.latitude, first.longitude) == (45.0001, 7.0001)
    assert first.elevation == pytest.approx(250.5)
    assert first.speed == pytest.approx(5.5)
    assert first.heart_rate == 142
    assert first.timestamp == datetime(2026, 5, 3, 8, 0, tzinfo=timezone.utc)
    assert not first.fallback_timestamp

    assert second.elevation is None
    # Non-positive readings are dropped.
    assert second.heart_rate is None
    assert second.timestamp == datetime(2026, 5, 3, 8, 0, 5, tzinfo=timezone.utc)

    assert third.elevation == pytest.approx(251.0)
    assert third.timestamp == NOW
    assert third.fallback_timestamp

    assert fourth.timestamp == NOW
    assert fourth.fallback_timestamp

    assert track.has_fallback_timestamps
    assert any("Skipped 2" in message for message in track.diagnostics)
    assert any("2 point(s) had no usable timestamp" in m for m in track.diagnostics)


def test_track_name_and_declared_start() -> None:
    track = parse_track(GPX_MIXED, now=NOW)

    assert track.name == "Sunday Loop"
    assert track.declared_start_time == datetime(2026, 5, 3, 7, 58, tzinfo=timezone.utc)
    # Recorded point times take precedence over the header time.
    assert track.start_time == datetime(2026, 5, 3, 8, 0, tzinfo=timezone.utc)


def test_header_time_ignored_when_points_are_timed() -> None:
    exported = T0 + timedelta(days=2)
    gpx = build_gpx(make_track(3)).replace(
        "<trk>", f"<metadata><time>{exported.isoformat()}</time></metadata><trk>", 1
    )

    track = parse_track(gpx, now=NOW)

    assert track.declared_start_time == exported
    assert track.start_time == T0


def test_gpx_10_root_time_used_for_untimed_points() -> None:
    gpx = """<gpx version="1.0"><time>2026-05-03T07:30:00Z</time>
      <trk><trkseg>
        <trkpt lat="1.5" lon="2.5"/>
        <trkpt lat="1.6" lon="2.6"/>
      </trkseg></trk></gpx>"""

    track = parse_track(gpx, now=NOW)

    assert track.declared_start_time == datetime(2026, 5, 3, 7, 30, tzinfo=timezone.utc)
    assert track.start_time == track.declared_start_time


def test_start_time_falls_back_to_first_point() -> None:
    track = parse_track(build_gpx(make_track(3)), now=NOW)

    assert track.declared_start_time is None
    assert track.start_time == track[0].timestamp


def test_route_points_used_when_no_track_points() -> None:
    gpx = """<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">
      <rte><name>Planned</name>
        <rtept lat="45.1" lon="7.1"><ele>10</ele></rtept>
        <rtept lat="45.2" lon="7.2"><ele>20</ele></rtept>
      </rte></gpx>"""

    track = parse_track(gpx, now=NOW)

    assert track.name == "Planned"
    assert track.coordinates() == [(45.1, 7.1), (45.2, 7.2)]
    assert track.elevations() == [10.0, 20.0]


def test_gpx_10_without_namespace_reads_speed() -> None:
    gpx = b"""<?xml version="1.0"?>
    <gpx version="1.0"><trk><trkseg>
      <trkpt lat="1.5" lon="2.5"><time>2026-05-03T08:00:00</time><speed>3.2</speed></trkpt>
    </trkseg></trk></gpx>"""

    track = parse_track(gpx, now=NOW)

    assert len(track) == 1
    assert track[0].speed == pytest.approx(3.2)
    # Naive timestamps are read as UTC.
    assert track[0].timestamp == datetime(2026, 5, 3, 8, 0, tzinfo=timezone.utc)


def test_out_of_range_coordinates_are_skipped() -> None:
    gpx = """<gpx><trk><trkseg>
      <trkpt lat="91" lon="0"/><trkpt lat="0" lon="-181"/><trkpt lat="10" lon="20"/>
    </trkseg></trk></gpx>"""

    track = parse_track(gpx, now=NOW)

    assert track.coordinates() == [(10.0, 20.0)]


def test_zero_points_is_empty_not_error() -> None:
    track = parse_track('<gpx version="1.1"><trk><name>x</name></trk></gpx>', now=NOW)

    assert len(track) == 0
    assert track.start_time is None
    assert track.diagnostics == ("No track or route points found",)


@pytest.mark.parametrize(
    "payload",
    [
        "",
        "   ",
        b"",
        "<gpx><trk><trkseg><trkpt lat='1' lon='2'>",
        "not xml at all",
        "<kml><Document/></kml>",
    ],
)
def test_malformed_input_returns_empty_track(
    payload: str | bytes, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING, logger="ride_matching.parser"):
        track = parse_track(payload, now=NOW)

    assert len(track) == 0
    assert len(track.diagnostics) == 1
    assert "Unable to parse track data" in caplog.text


def test_entity_expansion_is_rejected() -> None:
    payload = """<?xml version="1.0"?>
    <!DOCTYPE gpx [<!ENTITY lol "lol"><!ENTITY lol2 "&lol;&lol;&lol;&lol;">]>
    <gpx><trk><name>&lol2;</name></trk></gpx>"""

    track = parse_track(payload, now=NOW)

    assert len(track) == 0
    assert track.diagnostics


def test_load_track_raises_on_malformed_input() -> None:
    with pytest.raises(TrackParseError):
        load_track("<gpx><unclosed>")
    with pytest.raises(TrackParseError, match="expected <gpx>"):
        load_track("<kml/>")


def test_load_track_accepts_empty_documents() -> None:
    track = load_track("<gpx/>", now=NOW)

    assert len(track) == 0


def test_parse_instant_defaults_to_current_utc_time() -> None:
    before = datetime.now(timezone.utc)
    track = parse_track('<gpx><trk><trkseg><trkpt lat="1" lon="2"/></trkseg></trk></gpx>')
    after = datetime.now(timezone.utc)

    assert before <= track[0].timestamp <= after
    assert track[0].fallback_timestamp


def test_parse_iso8601_normalises_to_utc() -> None:
    parsed = parse_iso8601("2026-05-03T10:00:00.250+02:00")

    assert parsed.tzinfo == timezone.utc
    assert parsed == datetime(2026, 5, 3, 8, 0, 0, 250000, tzinfo=timezone.utc)
    assert parse_iso8601("2026-05-03T08:00:00Z") - parsed == timedelta(milliseconds=-250)
