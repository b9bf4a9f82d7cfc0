"""
Google Location History JSON Decoder.

Three export schemas are recognized, sniffed in order:

1. Flat entry list (on-device Timeline export): a JSON array of entries,
   each carrying exactly one of ``activity``, ``visit`` or ``timelinePath``.
2. Semantic location history: ``{"timelineObjects": [...]}`` of
   ``placeVisit`` / ``activitySegment`` objects with E7 coordinates.
3. Raw records: ``{"locations": [...]}`` of instantaneous E7 samples,
   newest first.

Raw JSON objects are first classified into explicit entry variants (one
dataclass per schema construct); each variant then expands itself into
canonical points. Classification is the only place that inspects field
presence.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from encounters.decoders.parsing import (
    check_coordinates,
    make_point,
    offset_time,
    parse_e7,
    parse_geo,
    parse_offset_minutes,
    parse_timestamp,
    require,
)
from encounters.exceptions import DeserializeError, EmptyEntryError
from encounters.model import SpaceTimePoint

logger = logging.getLogger(__name__)

Coordinate = Tuple[float, float]


def midpoint(start: datetime, end: datetime) -> datetime:
    return start + (end - start) / 2


# =============================================================================
# Shape 1: flat entry list
# =============================================================================


@dataclass(frozen=True)
class ActivityEntry:
    """Movement from one place to another during the entry interval."""

    start_time: datetime
    end_time: datetime
    start: Coordinate
    end: Coordinate

    def to_points(self) -> List[SpaceTimePoint]:
        middle = midpoint(self.start_time, self.end_time)
        return [
            make_point(self.start, self.start_time, middle),
            make_point(self.end, middle, self.end_time),
        ]


@dataclass(frozen=True)
class VisitEntry:
    """Stay at a single place for the whole entry interval."""

    start_time: datetime
    end_time: datetime
    place: Coordinate

    def to_points(self) -> List[SpaceTimePoint]:
        return [make_point(self.place, self.start_time, self.end_time)]


@dataclass(frozen=True)
class PathVertex:
    """A timelinePath vertex; offset_minutes is relative to the entry start."""

    coordinate: Coordinate
    offset_minutes: int


@dataclass(frozen=True)
class TimelinePathEntry:
    """Sequence of positions, each held until its minute offset."""

    start_time: datetime
    end_time: datetime
    vertices: Tuple[PathVertex, ...]

    def to_points(self) -> List[SpaceTimePoint]:
        points = []
        cursor = self.start_time
        last = len(self.vertices) - 1
        for i, vertex in enumerate(self.vertices):
            if i == last:
                end = self.end_time
            else:
                end = offset_time(self.start_time, vertex.offset_minutes)
            points.append(make_point(vertex.coordinate, cursor, end))
            cursor = end
        return points


FlatEntry = Union[ActivityEntry, VisitEntry, TimelinePathEntry]

FLAT_VARIANTS = ("activity", "visit", "timelinePath")


def classify_flat_entry(raw: Any, position: int) -> FlatEntry:
    """
    Turn one raw flat-list entry into its variant.

    Raises:
        EmptyEntryError: If no content variant is present
        DeserializeError: If more than one variant is present or a
            required field is missing
    """
    context = f"entry {position}"
    if not isinstance(raw, dict):
        raise DeserializeError(f"{context} is not an object")

    present = [key for key in FLAT_VARIANTS if raw.get(key) is not None]
    if not present:
        raise EmptyEntryError(f"{context} has none of {', '.join(FLAT_VARIANTS)}")
    if len(present) > 1:
        raise DeserializeError(f"{context} has conflicting content: {', '.join(present)}")

    start_time = parse_timestamp(require(raw, "startTime", context))
    end_time = parse_timestamp(require(raw, "endTime", context))
    kind = present[0]

    if kind == "activity":
        activity = raw["activity"]
        return ActivityEntry(
            start_time=start_time,
            end_time=end_time,
            start=parse_geo(require(activity, "start", f"{context} activity")),
            end=parse_geo(require(activity, "end", f"{context} activity")),
        )

    if kind == "visit":
        candidate = require(raw["visit"], "topCandidate", f"{context} visit")
        return VisitEntry(
            start_time=start_time,
            end_time=end_time,
            place=parse_geo(require(candidate, "placeLocation", f"{context} visit topCandidate")),
        )

    path = raw["timelinePath"]
    if not isinstance(path, list):
        raise DeserializeError(f"{context} timelinePath is not a list")
    vertices = tuple(
        PathVertex(
            coordinate=parse_geo(require(vertex, "point", f"{context} timelinePath[{i}]")),
            offset_minutes=parse_offset_minutes(
                require(vertex, "durationMinutesOffsetFromStartTime", f"{context} timelinePath[{i}]")
            ),
        )
        for i, vertex in enumerate(path)
    )
    return TimelinePathEntry(start_time=start_time, end_time=end_time, vertices=vertices)


# =============================================================================
# Shape 2: semantic location history
# =============================================================================


def _e7_coordinate(obj: Any, lat_key: str, lon_key: str, context: str) -> Optional[Coordinate]:
    """E7 pair from obj, or None when either member is absent."""
    if not isinstance(obj, dict):
        return None
    if obj.get(lat_key) is None or obj.get(lon_key) is None:
        return None
    return check_coordinates(
        parse_e7(obj[lat_key], f"{context} {lat_key}"),
        parse_e7(obj[lon_key], f"{context} {lon_key}"),
    )


def _timestamp_field(obj: Any, key: str, context: str) -> datetime:
    """Timestamp stored under key or its legacy ``<key>Ms`` variant."""
    if isinstance(obj, dict) and obj.get(key) is None and obj.get(f"{key}Ms") is not None:
        return parse_timestamp(obj[f"{key}Ms"])
    return parse_timestamp(require(obj, key, context))


def _duration(obj: Dict[str, Any], context: str) -> Tuple[datetime, datetime]:
    duration = require(obj, "duration", context)
    return (
        _timestamp_field(duration, "startTimestamp", f"{context} duration"),
        _timestamp_field(duration, "endTimestamp", f"{context} duration"),
    )


@dataclass(frozen=True)
class PlaceVisit:
    """A stay; location is None when the export omitted its coordinates."""

    start_time: datetime
    end_time: datetime
    location: Optional[Coordinate]

    def to_points(self) -> List[SpaceTimePoint]:
        if self.location is None:
            return []
        return [make_point(self.location, self.start_time, self.end_time)]


@dataclass(frozen=True)
class WaypointPath:
    """Intermediate positions without timestamps; None marks a waypoint lacking coordinates."""

    waypoints: Tuple[Optional[Coordinate], ...]


@dataclass(frozen=True)
class RawPathSample:
    """A timestamped intermediate position; coordinate may be missing."""

    coordinate: Optional[Coordinate]
    timestamp: datetime


@dataclass(frozen=True)
class RawPath:
    samples: Tuple[RawPathSample, ...]


@dataclass(frozen=True)
class ActivitySegment:
    """
    Movement between two locations, optionally with an intermediate path.

    Attributes:
        start_time: Segment start
        end_time: Segment end
        start_location: Where the movement began
        end_location: Where the movement ended
        path: Waypoint path, simplified raw path, or None
    """

    start_time: datetime
    end_time: datetime
    start_location: Coordinate
    end_location: Coordinate
    path: Union[WaypointPath, RawPath, None] = None

    def to_points(self) -> List[SpaceTimePoint]:
        if isinstance(self.path, RawPath):
            return self._raw_path_points(self.path)
        waypoints = self.path.waypoints if isinstance(self.path, WaypointPath) else ()
        return self._even_points(waypoints)

    def _even_points(self, waypoints: Sequence[Optional[Coordinate]]) -> List[SpaceTimePoint]:
        """Apportion the duration evenly across start, waypoints and end."""
        locations = [self.start_location, *waypoints, self.end_location]
        step = (self.end_time - self.start_time) / len(locations)
        points = []
        cursor = self.start_time
        for k, location in enumerate(locations):
            end = self.end_time if k == len(locations) - 1 else self.start_time + step * (k + 1)
            if location is not None:
                points.append(make_point(location, cursor, end))
            cursor = end
        return points

    def _raw_path_points(self, path: RawPath) -> List[SpaceTimePoint]:
        """Split time at midpoints between consecutive sample instants."""
        locations = [self.start_location, *(s.coordinate for s in path.samples), self.end_location]
        instants = [self.start_time, *(s.timestamp for s in path.samples), self.end_time]
        points = []
        cursor = self.start_time
        for k, location in enumerate(locations):
            if k == len(locations) - 1:
                end = self.end_time
            else:
                # Clamp so that out-of-order samples cannot invert an interval
                end = min(max(midpoint(instants[k], instants[k + 1]), cursor), self.end_time)
            if location is not None:
                points.append(make_point(location, cursor, end))
            cursor = end
        return points


TimelineObject = Union[PlaceVisit, ActivitySegment]


def classify_timeline_object(raw: Any, position: int) -> TimelineObject:
    """
    Turn one raw ``timelineObjects`` member into its variant.

    Raises:
        EmptyEntryError: If neither placeVisit nor activitySegment is present
        DeserializeError: If both are present or a required field is missing
    """
    context = f"timelineObjects[{position}]"
    if not isinstance(raw, dict):
        raise DeserializeError(f"{context} is not an object")

    visit = raw.get("placeVisit")
    segment = raw.get("activitySegment")
    if visit is None and segment is None:
        raise EmptyEntryError(f"{context} has neither placeVisit nor activitySegment")
    if visit is not None and segment is not None:
        raise DeserializeError(f"{context} has both placeVisit and activitySegment")

    if visit is not None:
        start_time, end_time = _duration(visit, f"{context} placeVisit")
        return PlaceVisit(
            start_time=start_time,
            end_time=end_time,
            location=_e7_coordinate(visit.get("location"), "latitudeE7", "longitudeE7", f"{context} location"),
        )

    seg_context = f"{context} activitySegment"
    start_time, end_time = _duration(segment, seg_context)
    start_location = _e7_coordinate(
        require(segment, "startLocation", seg_context), "latitudeE7", "longitudeE7", f"{seg_context} startLocation"
    )
    end_location = _e7_coordinate(
        require(segment, "endLocation", seg_context), "latitudeE7", "longitudeE7", f"{seg_context} endLocation"
    )
    if start_location is None or end_location is None:
        raise DeserializeError(f"{seg_context} start or end location has no coordinates")

    return ActivitySegment(
        start_time=start_time,
        end_time=end_time,
        start_location=start_location,
        end_location=end_location,
        path=_segment_path(segment, seg_context),
    )


def _segment_path(segment: Dict[str, Any], context: str) -> Union[WaypointPath, RawPath, None]:
    waypoint_path = segment.get("waypointPath")
    if waypoint_path is not None:
        waypoints = require(waypoint_path, "waypoints", f"{context} waypointPath")
        if not isinstance(waypoints, list):
            raise DeserializeError(f"{context} waypointPath waypoints is not a list")
        return WaypointPath(
            waypoints=tuple(
                _e7_coordinate(w, "latE7", "lngE7", f"{context} waypoint {i}")
                for i, w in enumerate(waypoints)
            )
        )

    raw_path = segment.get("simplifiedRawPath")
    if raw_path is not None:
        samples = require(raw_path, "points", f"{context} simplifiedRawPath")
        if not isinstance(samples, list):
            raise DeserializeError(f"{context} simplifiedRawPath points is not a list")
        return RawPath(
            samples=tuple(
                RawPathSample(
                    coordinate=_e7_coordinate(s, "latE7", "lngE7", f"{context} raw point {i}"),
                    timestamp=_timestamp_field(s, "timestamp", f"{context} raw point {i}"),
                )
                for i, s in enumerate(samples)
            )
        )

    return None


# =============================================================================
# Shape 3: raw location records
# =============================================================================


@dataclass(frozen=True)
class LocationSample:
    """An instantaneous fix."""

    coordinate: Coordinate
    timestamp: datetime

    def to_points(self) -> List[SpaceTimePoint]:
        return [make_point(self.coordinate, self.timestamp, self.timestamp)]


def classify_location(raw: Any, position: int) -> LocationSample:
    context = f"locations[{position}]"
    coordinate = check_coordinates(
        parse_e7(require(raw, "latitudeE7", context), f"{context} latitudeE7"),
        parse_e7(require(raw, "longitudeE7", context), f"{context} longitudeE7"),
    )
    return LocationSample(coordinate=coordinate, timestamp=_timestamp_field(raw, "timestamp", context))


# =============================================================================
# Schema sniffing
# =============================================================================


def _expand(entries: Iterable[Any]) -> List[SpaceTimePoint]:
    points: List[SpaceTimePoint] = []
    for entry in entries:
        points.extend(entry.to_points())
    return points


def _members(document: Dict[str, Any], key: str) -> List[Any]:
    members = document[key]
    if not isinstance(members, list):
        raise DeserializeError(f"'{key}' is not a list")
    return members


def decode_timeline_json(text: str) -> List[SpaceTimePoint]:
    """
    Decode a Google location history JSON document.

    Args:
        text: Raw JSON text

    Returns:
        Points in non-decreasing time order

    Raises:
        DecoderError: On any malformed entry; nothing is returned partially
    """
    try:
        document = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise DeserializeError(f"invalid JSON: {e}") from e

    if isinstance(document, list):
        logger.debug(f"Decoding flat timeline with {len(document)} entries")
        entries = [classify_flat_entry(raw, i) for i, raw in enumerate(document)]
        return _expand(entries)

    if isinstance(document, dict) and "timelineObjects" in document:
        members = _members(document, "timelineObjects")
        logger.debug(f"Decoding semantic location history with {len(members)} timeline objects")
        objects = [classify_timeline_object(raw, i) for i, raw in enumerate(members)]
        return _expand(objects)

    if isinstance(document, dict) and "locations" in document:
        members = _members(document, "locations")
        logger.debug(f"Decoding location records with {len(members)} samples")
        # Records are stored newest first
        samples = [classify_location(members[i], i) for i in reversed(range(len(members)))]
        return _expand(samples)

    raise DeserializeError("unrecognized location history layout")
