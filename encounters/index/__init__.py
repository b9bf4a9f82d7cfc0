"""
Spatial-Temporal Index.

Embeds record points in 4-D space and answers nearest-neighbour queries
under the combined spatial-temporal metric.
"""

from encounters.index.metric import (
    SPATIAL_WEIGHT,
    TEMPORAL_WEIGHT,
    combined_distance,
    contains_point,
    distance_if_less_or_equal,
    envelope_lower_bound,
)
from encounters.index.rtree import DEFAULT_NODE_CAPACITY, SpaceTimeIndex

__all__ = [
    "DEFAULT_NODE_CAPACITY",
    "SPATIAL_WEIGHT",
    "SpaceTimeIndex",
    "TEMPORAL_WEIGHT",
    "combined_distance",
    "contains_point",
    "distance_if_less_or_equal",
    "envelope_lower_bound",
]
