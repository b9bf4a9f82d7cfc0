"""
Combined Spatial-Temporal Distance Metric.

Points live in a 4-D coordinate space ``(lat, lon, start_epoch, end_epoch)``.
The distance between an indexed point P and a query Q is

    D(P, Q) = w_s * haversine_km(P, Q)^2 + w_t * temporal_gap_s(P, Q)^2

Both terms are non-negative, so either one alone is a lower bound on D.
That gives two pruning tests:
- per entry: the temporal term and a planar approximation of the spatial
  term are checked against the current threshold before computing D;
- per tree node: bounds over the node's envelope (minimum latitude gap,
  minimum longitude gap, widest-latitude cosine; earliest start / latest
  end) bound every point below the node.
"""

import math
from typing import Optional, Sequence, Tuple, Union

from encounters.model import EARTH_RADIUS_KM, SpaceTimePoint, haversine_km, planar_km, temporal_gap

Coordinates = Tuple[float, float, float, float]

TEMPORAL_WEIGHT = 0.5
SPATIAL_WEIGHT = 1.0 - TEMPORAL_WEIGHT

LATITUDE, LONGITUDE, START, END = range(4)
DIMENSIONS = 4

# Absorbs rounding differences between envelope bounds and the exact metric
_BOUND_SLACK = 1.0 - 1e-12


def as_coordinates(query: Union[SpaceTimePoint, Sequence[float]]) -> Coordinates:
    """Normalize a point or 4-sequence to a coordinate tuple."""
    if isinstance(query, SpaceTimePoint):
        return query.coordinates()
    if len(query) != DIMENSIONS:
        raise ValueError(f"Expected {DIMENSIONS} coordinates, got {len(query)}")
    return (float(query[0]), float(query[1]), float(query[2]), float(query[3]))


def spatial_term(km: float) -> float:
    return SPATIAL_WEIGHT * km * km


def temporal_term(seconds: float) -> float:
    return TEMPORAL_WEIGHT * seconds * seconds


def combined_distance(point: Coordinates, query: Coordinates) -> float:
    """Exact D(P, Q)."""
    km = haversine_km(point[LATITUDE], point[LONGITUDE], query[LATITUDE], query[LONGITUDE])
    seconds = temporal_gap(point[START], point[END], query[START], query[END])
    return spatial_term(km) + temporal_term(seconds)


def distance_if_less_or_equal(point: Coordinates, query: Coordinates, max_distance: float) -> Optional[float]:
    """
    D(P, Q) if it can be within max_distance, else None.

    The temporal term and the planar spatial term are each checked alone
    first; either exceeding the threshold rules the point out without
    evaluating haversine.
    """
    seconds = temporal_gap(point[START], point[END], query[START], query[END])
    if temporal_term(seconds) > max_distance:
        return None

    planar = planar_km(point[LATITUDE], point[LONGITUDE], query[LATITUDE], query[LONGITUDE])
    if spatial_term(planar) > max_distance:
        return None

    return combined_distance(point, query)


def contains_point(point: Coordinates, query: Coordinates) -> bool:
    """Exact equality on all four coordinates."""
    return tuple(point) == tuple(query)


def _longitude_gap(low: float, high: float, longitude: float) -> float:
    """Smallest angular distance (degrees, <= 180) from longitude to [low, high]."""
    if low <= longitude <= high:
        return 0.0
    return min((low - longitude) % 360.0, (longitude - high) % 360.0, 180.0)


def spatial_lower_bound_km(lower: Coordinates, upper: Coordinates, latitude: float, longitude: float) -> float:
    """
    Lower bound on the great-circle distance from a coordinate to any
    point inside the envelope's latitude/longitude box.
    """
    if lower[LATITUDE] <= latitude <= upper[LATITUDE]:
        lat_gap = 0.0
    else:
        lat_gap = min(abs(latitude - lower[LATITUDE]), abs(latitude - upper[LATITUDE]))
    lon_gap = _longitude_gap(lower[LONGITUDE], upper[LONGITUDE], longitude)

    # cos is concave on [-90, 90]: its minimum over the band is at an edge
    min_cos = max(0.0, min(math.cos(math.radians(lower[LATITUDE])), math.cos(math.radians(upper[LATITUDE]))))
    h = (
        math.sin(math.radians(lat_gap) / 2) ** 2
        + math.cos(math.radians(latitude)) * min_cos * math.sin(math.radians(lon_gap) / 2) ** 2
    )
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def temporal_lower_bound_s(lower: Coordinates, upper: Coordinates, start: float, end: float) -> float:
    """Lower bound on the temporal gap from [start, end] to any interval in the envelope."""
    return max(0.0, lower[START] - end, start - upper[END])


def envelope_lower_bound(lower: Coordinates, upper: Coordinates, query: Coordinates) -> float:
    """Lower bound on D(P, Q) over every point P inside the envelope."""
    km = spatial_lower_bound_km(lower, upper, query[LATITUDE], query[LONGITUDE])
    seconds = temporal_lower_bound_s(lower, upper, query[START], query[END])
    return (spatial_term(km) + temporal_term(seconds)) * _BOUND_SLACK


def envelope_exceeds(lower: Coordinates, upper: Coordinates, query: Coordinates, max_distance: float) -> bool:
    """True if either weighted term alone already puts the whole envelope beyond max_distance."""
    seconds = temporal_lower_bound_s(lower, upper, query[START], query[END])
    if temporal_term(seconds) * _BOUND_SLACK > max_distance:
        return True
    km = spatial_lower_bound_km(lower, upper, query[LATITUDE], query[LONGITUDE])
    return spatial_term(km) * _BOUND_SLACK > max_distance
