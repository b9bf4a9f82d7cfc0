"""
Canonical Space-Time Model.

Value types shared by every decoder and by the matching engine:
- SpaceTimePoint: "the subject was at (latitude, longitude) at some instant
  within [start_time, end_time]"
- SpaceTimeRecord: a time-ordered, non-overlapping sequence of points
- ChanceEncounter: one ranked cross-record pair

Also hosts the natural-unit distance functions (great-circle distance in
kilometres, temporal gap in seconds) used both by the index metric and by
the reported encounter distances.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from encounters.exceptions import TimeOrderError

EARTH_RADIUS_KM = 6371.0


class InputFormat(Enum):
    """Supported raw location history formats."""

    JSON = "json"
    GPX = "gpx"

    @classmethod
    def parse(cls, value: str) -> "InputFormat":
        """
        Resolve a format tag name.

        Args:
            value: Tag such as "json" or "GPX"

        Returns:
            Matching InputFormat

        Raises:
            ValueError: If the tag is not a supported format
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            supported = ", ".join(f.value for f in cls)
            raise ValueError(f"Unsupported format '{value}' (expected one of: {supported})")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates on a spherical earth."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lat = math.radians(lat1 - lat2)
    delta_lon = math.radians(lon1 - lon2)

    a = math.sin(delta_lat / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def planar_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Equirectangular approximation of the great-circle distance.

    Cheaper than haversine and accurate for short separations; used only
    for pruning.
    """
    delta_lat = math.radians(lat1 - lat2)
    delta_lon = math.radians(lon1 - lon2)
    mean_lat = math.radians((lat1 + lat2) / 2)
    return EARTH_RADIUS_KM * math.hypot(delta_lat, math.cos(mean_lat) * delta_lon)


def intervals_overlap(start1: float, end1: float, start2: float, end2: float) -> bool:
    """True if either interval's start lies strictly inside the other."""
    return (start1 < start2 < end1) or (start2 < start1 < end2)


def temporal_gap(start1: float, end1: float, start2: float, end2: float) -> float:
    """
    Seconds between two closed intervals.

    Zero when the intervals overlap or touch, otherwise the distance
    between the later interval's start and the earlier interval's end.
    """
    if intervals_overlap(start1, end1, start2, end2):
        return 0.0
    return max(0.0, max(start1, start2) - min(end1, end2))


@dataclass(frozen=True)
class SpaceTimePoint:
    """
    A position held during a time interval.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        start_time: Interval start (timezone-aware UTC)
        end_time: Interval end (timezone-aware UTC), never before start_time
    """

    latitude: float
    longitude: float
    start_time: datetime
    end_time: datetime

    def __post_init__(self):
        """Validate the interval."""
        if self.start_time.tzinfo is None or self.end_time.tzinfo is None:
            raise ValueError("SpaceTimePoint timestamps must be timezone-aware")
        if self.start_time > self.end_time:
            raise ValueError(
                f"start_time ({self.start_time.isoformat()}) must be <= "
                f"end_time ({self.end_time.isoformat()})"
            )

    @property
    def start_epoch(self) -> float:
        """Start as epoch seconds."""
        return self.start_time.timestamp()

    @property
    def end_epoch(self) -> float:
        """End as epoch seconds."""
        return self.end_time.timestamp()

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    def coordinates(self) -> Tuple[float, float, float, float]:
        """Embedding in 4-D index space: (lat, lon, start_epoch, end_epoch)."""
        return (self.latitude, self.longitude, self.start_epoch, self.end_epoch)

    def haversine_distance(self, latitude: float, longitude: float) -> float:
        """Great-circle distance in km to a coordinate."""
        return haversine_km(self.latitude, self.longitude, latitude, longitude)

    def euclidean_distance(self, latitude: float, longitude: float) -> float:
        """Planar approximation of the distance in km to a coordinate."""
        return planar_km(self.latitude, self.longitude, latitude, longitude)

    def temporal_overlap(self, start_time: float, end_time: float) -> bool:
        """Whether [start_time, end_time] (epoch seconds) overlaps this interval."""
        return intervals_overlap(self.start_epoch, self.end_epoch, start_time, end_time)

    def temporal_distance(self, start_time: float, end_time: float) -> float:
        """Temporal gap in seconds to [start_time, end_time] (epoch seconds)."""
        return temporal_gap(self.start_epoch, self.end_epoch, start_time, end_time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpaceTimePoint":
        """Create from dictionary produced by to_dict()."""
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            start_time=datetime.fromisoformat(data["start_time"]).astimezone(timezone.utc),
            end_time=datetime.fromisoformat(data["end_time"]).astimezone(timezone.utc),
        )


class SpaceTimeRecord:
    """
    Time-ordered sequence of points decoded from one input.

    Adjacent points never overlap: ``points[i].end_time <=
    points[i + 1].start_time``. The constructor performs no sorting; it
    rejects any sequence that breaks the invariant.
    """

    def __init__(self, points: Sequence[SpaceTimePoint], source: Optional[str] = None):
        """
        Build a record.

        Args:
            points: Points in non-decreasing time order
            source: Optional name of the originating input

        Raises:
            TimeOrderError: If two adjacent points are out of order
        """
        self._points: Tuple[SpaceTimePoint, ...] = tuple(points)
        self.source = source
        self._validate_order()

    def _validate_order(self) -> None:
        for i in range(1, len(self._points)):
            previous, current = self._points[i - 1], self._points[i]
            if previous.end_time > current.start_time:
                raise TimeOrderError(
                    f"point ends at {previous.end_time.isoformat()} after the next "
                    f"point starts at {current.start_time.isoformat()}",
                    index=i,
                )

    @property
    def points(self) -> Tuple[SpaceTimePoint, ...]:
        return self._points

    @property
    def is_empty(self) -> bool:
        return not self._points

    def time_span(self) -> Optional[Tuple[datetime, datetime]]:
        """First start and last end, or None for an empty record."""
        if not self._points:
            return None
        return (self._points[0].start_time, self._points[-1].end_time)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[SpaceTimePoint]:
        return iter(self._points)

    def __getitem__(self, index: int) -> SpaceTimePoint:
        return self._points[index]

    def __repr__(self) -> str:
        return f"SpaceTimeRecord(points={len(self._points)}, source={self.source!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        span = self.time_span()
        return {
            "source": self.source,
            "total_points": len(self._points),
            "start_time": span[0].isoformat() if span else None,
            "end_time": span[1].isoformat() if span else None,
            "points": [p.to_dict() for p in self._points],
        }


@dataclass(frozen=True)
class ChanceEncounter:
    """
    A ranked cross-record pair.

    Attributes:
        point1: Point from the indexed record (A)
        point2: Point from the query record (B)
        distance_km: Great-circle distance between the two points
        distance_s: Temporal gap between the two intervals in seconds
    """

    point1: SpaceTimePoint
    point2: SpaceTimePoint
    distance_km: float
    distance_s: float

    @classmethod
    def between(cls, point1: SpaceTimePoint, point2: SpaceTimePoint) -> "ChanceEncounter":
        """Build an encounter with distances measured in natural units."""
        return cls(
            point1=point1,
            point2=point2,
            distance_km=point1.haversine_distance(point2.latitude, point2.longitude),
            distance_s=point1.temporal_distance(point2.start_epoch, point2.end_epoch),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "point1": self.point1.to_dict(),
            "point2": self.point2.to_dict(),
            "distance_km": self.distance_km,
            "distance_s": self.distance_s,
        }


def encounters_to_list(encounters: List[ChanceEncounter]) -> List[Dict[str, Any]]:
    """Serialize a ranked encounter list, adding 1-based ranks."""
    return [dict(rank=i + 1, **e.to_dict()) for i, e in enumerate(encounters)]
