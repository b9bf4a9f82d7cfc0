"""
Pytest configuration and fixtures for chance encounter tests.

Markers:
    @pytest.mark.decoders - Location history decoder tests
    @pytest.mark.index - Spatial-temporal index tests
    @pytest.mark.matching - Nearest-pair engine and pipeline tests
    @pytest.mark.cli - Command line tests
    @pytest.mark.slow - Tests that take longer to run

Usage:
    pytest -m decoders           # Run only decoder tests
    pytest -m "not slow"         # Skip slow tests
    pytest -m "index and not slow"  # Fast index tests only
"""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from encounters.model import SpaceTimePoint  # noqa: E402

BASE_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "decoders: Location history decoder tests")
    config.addinivalue_line("markers", "index: Spatial-temporal index tests")
    config.addinivalue_line("markers", "matching: Nearest-pair engine tests")
    config.addinivalue_line("markers", "cli: Command line tests")
    config.addinivalue_line("markers", "slow: Slow-running tests")


def pytest_collection_modifyitems(config, items):
    """Auto-apply markers based on test file names and test names."""
    for item in items:
        # Mark based on file name
        basename = item.fspath.basename
        if "decoder" in basename or "parsing" in basename:
            item.add_marker(pytest.mark.decoders)
        if "index" in basename or "metric" in basename:
            item.add_marker(pytest.mark.index)
        if "matching" in basename or "pipeline" in basename:
            item.add_marker(pytest.mark.matching)
        if "cli" in basename:
            item.add_marker(pytest.mark.cli)

        # Mark slow tests
        test_name = item.name.lower()
        if "large" in test_name or "stress" in test_name or "brute_force" in test_name:
            item.add_marker(pytest.mark.slow)


def make_point(lat, lon, start_offset_s, end_offset_s=None):
    """Point at (lat, lon) held from BASE_TIME + start to BASE_TIME + end seconds."""
    if end_offset_s is None:
        end_offset_s = start_offset_s
    return SpaceTimePoint(
        latitude=lat,
        longitude=lon,
        start_time=BASE_TIME + timedelta(seconds=start_offset_s),
        end_time=BASE_TIME + timedelta(seconds=end_offset_s),
    )


@pytest.fixture
def point_factory():
    """Provide the point builder used throughout the tests."""
    return make_point


@pytest.fixture
def flat_timeline_json():
    """On-device Timeline export with one entry of each kind."""
    return json.dumps([
        {
            "startTime": "2024-03-01T08:00:00.000-08:00",
            "endTime": "2024-03-01T09:00:00.000-08:00",
            "visit": {
                "hierarchyLevel": "0",
                "topCandidate": {
                    "probability": "0.9",
                    "semanticType": "Home",
                    "placeLocation": "geo:37.421999,-122.084000",
                },
            },
        },
        {
            "startTime": "2024-03-01T09:00:00.000-08:00",
            "endTime": "2024-03-01T09:30:00.000-08:00",
            "activity": {
                "start": "geo:37.421999,-122.084000",
                "end": "geo:37.386051,-122.083855",
                "topCandidate": {"type": "walking"},
            },
        },
        {
            "startTime": "2024-03-01T09:30:00.000-08:00",
            "endTime": "2024-03-01T10:30:00.000-08:00",
            "timelinePath": [
                {"point": "geo:37.386051,-122.083855", "durationMinutesOffsetFromStartTime": "10"},
                {"point": "geo:37.390000,-122.080000", "durationMinutesOffsetFromStartTime": "40"},
                {"point": "geo:37.395000,-122.075000", "durationMinutesOffsetFromStartTime": "55"},
            ],
        },
    ])


@pytest.fixture
def semantic_history_json():
    """Semantic location history with a place visit and an activity segment."""
    return json.dumps({
        "timelineObjects": [
            {
                "placeVisit": {
                    "location": {"latitudeE7": 374219999, "longitudeE7": -1220840000},
                    "duration": {
                        "startTimestamp": "2015-01-25T09:11:16.547-08:00",
                        "endTimestamp": "2015-01-25T10:00:00.000-08:00",
                    },
                }
            },
            {
                "activitySegment": {
                    "startLocation": {"latitudeE7": 374219999, "longitudeE7": -1220840000},
                    "endLocation": {"latitudeE7": 373860510, "longitudeE7": -1220838550},
                    "duration": {
                        "startTimestamp": "2015-01-25T10:00:00.000-08:00",
                        "endTimestamp": "2015-01-25T10:20:00.000-08:00",
                    },
                }
            },
        ]
    })


@pytest.fixture
def location_records_json():
    """Raw location records, newest first."""
    return json.dumps({
        "locations": [
            {"latitudeE7": 374000000, "longitudeE7": -1220000000, "timestamp": "2024-03-01T12:10:00Z"},
            {"latitudeE7": 374100000, "longitudeE7": -1220100000, "timestamp": "2024-03-01T12:05:00Z"},
            {"latitudeE7": 374200000, "longitudeE7": -1220200000, "timestamp": "2024-03-01T12:00:00Z"},
        ]
    })


@pytest.fixture
def gpx_track():
    """Two-segment GPX 1.1 track."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
  <trk>
    <name>Morning ride</name>
    <trkseg>
      <trkpt lat="37.4220" lon="-122.0840"><ele>10.0</ele><time>2024-03-01T12:00:00Z</time></trkpt>
      <trkpt lat="37.4230" lon="-122.0850"><time>2024-03-01T12:01:00Z</time></trkpt>
      <trkpt lat="37.4240" lon="-122.0860"><time>2024-03-01T12:02:30Z</time></trkpt>
    </trkseg>
    <trkseg>
      <trkpt lat="37.4300" lon="-122.0900"><time>2024-03-01T12:10:00Z</time></trkpt>
    </trkseg>
  </trk>
</gpx>
"""
