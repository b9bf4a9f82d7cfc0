"""
Bulk-Loaded Spatial-Temporal R-tree.

Each point of a record is embedded as a degenerate box in 4-D space
``(lat, lon, start_epoch, end_epoch)`` and packed once with
Sort-Tile-Recursive (STR) bulk loading in O(n log n). The tree is
immutable after construction.

Queries:
- nearest_neighbor_iter: lazily evaluated stream of entries in ascending
  combined distance (best-first search)
- nearest_neighbor: single closest entry (branch and bound)
- locate_within_distance: all entries within a distance threshold
- contains: exact 4-coordinate membership
"""

import heapq
import itertools
import logging
import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from encounters.index.metric import (
    DIMENSIONS,
    Coordinates,
    as_coordinates,
    combined_distance,
    contains_point,
    distance_if_less_or_equal,
    envelope_exceeds,
    envelope_lower_bound,
)
from encounters.model import SpaceTimePoint

logger = logging.getLogger(__name__)

DEFAULT_NODE_CAPACITY = 16

Query = Union[SpaceTimePoint, Sequence[float]]
Neighbor = Tuple[int, SpaceTimePoint, float]


@dataclass
class _Node:
    """
    R-tree node.

    Attributes:
        lower: Minimum corner of the envelope
        upper: Maximum corner of the envelope
        children: Child nodes (internal nodes only)
        entries: Record positions (leaf nodes only)
    """

    lower: Coordinates
    upper: Coordinates
    children: List["_Node"] = field(default_factory=list)
    entries: List[int] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def envelope_contains(self, coordinates: Coordinates) -> bool:
        return all(lo <= c <= hi for lo, c, hi in zip(self.lower, coordinates, self.upper))


class SpaceTimeIndex:
    """
    Static 4-D R-tree over the points of one record.

    Entries are identified by their position in the input sequence, so
    equal points remain distinct entries.
    """

    def __init__(self, points: Sequence[SpaceTimePoint], node_capacity: int = DEFAULT_NODE_CAPACITY):
        """
        Bulk-load the index.

        Args:
            points: Points to index
            node_capacity: Maximum fan-out of a node (>= 2)
        """
        if node_capacity < 2:
            raise ValueError(f"node_capacity must be >= 2, got {node_capacity}")

        self.node_capacity = node_capacity
        self._points: Tuple[SpaceTimePoint, ...] = tuple(points)
        self._coordinates: List[Coordinates] = [p.coordinates() for p in self._points]
        self._root: Optional[_Node] = None
        self._height = 0

        if self._points:
            array = np.asarray(self._coordinates, dtype=np.float64).reshape(-1, DIMENSIONS)
            self._root = self._build(array, np.arange(len(self._points)))
            self._height = self._measure_height()

        logger.debug(
            f"SpaceTimeIndex bulk-loaded {len(self._points)} points "
            f"(capacity={node_capacity}, height={self._height})"
        )

    @classmethod
    def bulk_load(cls, points: Sequence[SpaceTimePoint], node_capacity: int = DEFAULT_NODE_CAPACITY) -> "SpaceTimeIndex":
        """Build an index over points."""
        return cls(points, node_capacity=node_capacity)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def height(self) -> int:
        """Number of levels (0 for an empty index)."""
        return self._height

    @property
    def points(self) -> Tuple[SpaceTimePoint, ...]:
        return self._points

    # -------------------------------------------------------------------------
    # Bulk loading
    # -------------------------------------------------------------------------

    def _build(self, array: np.ndarray, positions: np.ndarray) -> _Node:
        """Recursively pack positions into a subtree."""
        capacity = self.node_capacity
        count = len(positions)

        if count <= capacity:
            return self._leaf(array, positions)

        depth = 1
        while capacity ** depth < count:
            depth += 1
        # max_child_size < count
        max_child_size = capacity ** (depth - 1)
        child_count = math.ceil(count / max_child_size)
        slabs_per_axis = max(1, math.ceil(child_count ** (1.0 / DIMENSIONS)))

        groups = self._partition(array, positions, 0, slabs_per_axis, max_child_size)
        children = [self._build(array, group) for group in groups]
        return _Node(
            lower=tuple(min(c.lower[d] for c in children) for d in range(DIMENSIONS)),
            upper=tuple(max(c.upper[d] for c in children) for d in range(DIMENSIONS)),
            children=children,
        )

    def _partition(
        self,
        array: np.ndarray,
        positions: np.ndarray,
        axis: int,
        slabs_per_axis: int,
        max_child_size: int,
    ) -> List[np.ndarray]:
        """Sort-tile along axis, then recurse into the next axis for each slab."""
        order = positions[np.argsort(array[positions, axis], kind="stable")]
        remaining_axes = DIMENSIONS - axis
        slab_size = max_child_size * slabs_per_axis ** (remaining_axes - 1)
        slabs = [order[i:i + slab_size] for i in range(0, len(order), slab_size)]

        if axis == DIMENSIONS - 1:
            return slabs

        groups: List[np.ndarray] = []
        for slab in slabs:
            groups.extend(self._partition(array, slab, axis + 1, slabs_per_axis, max_child_size))
        return groups

    @staticmethod
    def _leaf(array: np.ndarray, positions: np.ndarray) -> _Node:
        block = array[positions]
        return _Node(
            lower=tuple(float(v) for v in block.min(axis=0)),
            upper=tuple(float(v) for v in block.max(axis=0)),
            entries=[int(p) for p in positions],
        )

    def _measure_height(self) -> int:
        height, node = 1, self._root
        while not node.is_leaf:
            node = node.children[0]
            height += 1
        return height

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def nearest_neighbor_iter(self, query: Query) -> Iterator[Neighbor]:
        """
        Stream entries in non-decreasing combined distance from query.

        Work is done lazily: each ``next()`` expands only as much of the
        tree as needed to certify the next entry.

        Yields:
            (position, point, distance) tuples
        """
        if self._root is None:
            return
        target = as_coordinates(query)
        counter = itertools.count()
        # (key, tiebreak, node-or-position)
        heap: List[Tuple[float, int, Union[_Node, int]]] = [(0.0, next(counter), self._root)]

        while heap:
            key, _, item = heapq.heappop(heap)
            if not isinstance(item, _Node):
                yield item, self._points[item], key
                continue
            if item.is_leaf:
                for position in item.entries:
                    distance = combined_distance(self._coordinates[position], target)
                    heapq.heappush(heap, (distance, next(counter), position))
            else:
                for child in item.children:
                    bound = envelope_lower_bound(child.lower, child.upper, target)
                    heapq.heappush(heap, (bound, next(counter), child))

    def nearest_neighbor(self, query: Query) -> Optional[Neighbor]:
        """
        Closest entry to query, or None for an empty index.

        Branch and bound: subtrees and entries whose spatial or temporal
        term alone exceeds the best distance found so far are skipped.
        """
        if self._root is None:
            return None
        target = as_coordinates(query)
        best: Optional[Neighbor] = None
        best_distance = math.inf
        counter = itertools.count()
        heap: List[Tuple[float, int, _Node]] = [(0.0, next(counter), self._root)]

        while heap:
            bound, _, node = heapq.heappop(heap)
            if bound > best_distance:
                break
            if node.is_leaf:
                for position in node.entries:
                    distance = distance_if_less_or_equal(self._coordinates[position], target, best_distance)
                    if distance is not None and distance < best_distance:
                        best_distance = distance
                        best = (position, self._points[position], distance)
                continue
            for child in node.children:
                if envelope_exceeds(child.lower, child.upper, target, best_distance):
                    continue
                heapq.heappush(heap, (envelope_lower_bound(child.lower, child.upper, target), next(counter), child))

        return best

    def locate_within_distance(self, query: Query, max_distance: float) -> Iterator[Neighbor]:
        """
        All entries with combined distance <= max_distance, in tree order.

        Yields:
            (position, point, distance) tuples
        """
        if self._root is None:
            return
        target = as_coordinates(query)
        stack = [self._root]
        while stack:
            node = stack.pop()
            if envelope_exceeds(node.lower, node.upper, target, max_distance):
                continue
            if node.is_leaf:
                for position in node.entries:
                    distance = distance_if_less_or_equal(self._coordinates[position], target, max_distance)
                    if distance is not None and distance <= max_distance:
                        yield position, self._points[position], distance
            else:
                stack.extend(node.children)

    def contains(self, query: Query) -> bool:
        """True if an entry matches query on all four coordinates."""
        if self._root is None:
            return False
        target = as_coordinates(query)
        stack = [self._root]
        while stack:
            node = stack.pop()
            if not node.envelope_contains(target):
                continue
            if node.is_leaf:
                if any(contains_point(self._coordinates[p], target) for p in node.entries):
                    return True
            else:
                stack.extend(node.children)
        return False
