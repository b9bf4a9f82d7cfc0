"""
Nearest-Pair Engine.

Finds the globally closest cross-record pairs between an indexed record A
and a query record B as an incremental k-way merge:

- every point b of B opens a lazy ascending-distance neighbour stream
  against A's index;
- the streams' current heads sit in one min-priority queue keyed by
  distance;
- the smallest head is accepted if its A-point is still unused, otherwise
  its stream advances and is re-queued with the next candidate.

Each A-point and each B-point appears in at most one accepted pair, and
pairs are accepted in non-decreasing distance order.
"""

import heapq
import itertools
import logging
from dataclasses import dataclass
from typing import Iterator, List, Set

from encounters.index.rtree import DEFAULT_NODE_CAPACITY, Neighbor, SpaceTimeIndex
from encounters.model import ChanceEncounter, SpaceTimePoint, SpaceTimeRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENCOUNTERS = 10


@dataclass
class _NeighborStream:
    """
    A query point together with its neighbour stream over record A.

    Attributes:
        point: The B-point issuing the query
        stream: Remaining neighbours in ascending distance
        head: Current (position, point, distance) candidate
    """

    point: SpaceTimePoint
    stream: Iterator[Neighbor]
    head: Neighbor

    @property
    def distance(self) -> float:
        return self.head[2]

    def advance(self) -> bool:
        """Move to the next candidate; False when the stream is exhausted."""
        following = next(self.stream, None)
        if following is None:
            return False
        self.head = following
        return True


def match_index(
    index: SpaceTimeIndex,
    record_b: SpaceTimeRecord,
    max_encounters: int = DEFAULT_MAX_ENCOUNTERS,
) -> List[ChanceEncounter]:
    """
    Closest cross-pairs between an already indexed record and record_b.

    Args:
        index: Index over record A
        record_b: Query record
        max_encounters: Maximum number of pairs to report

    Returns:
        Encounters ordered by non-decreasing combined distance
    """
    if max_encounters < 1:
        raise ValueError(f"max_encounters must be >= 1, got {max_encounters}")

    counter = itertools.count()
    queue = []
    for point in record_b:
        stream = index.nearest_neighbor_iter(point)
        head = next(stream, None)
        if head is None:
            continue
        queue.append((head[2], next(counter), _NeighborStream(point=point, stream=stream, head=head)))
    heapq.heapify(queue)

    used: Set[int] = set()
    encounters: List[ChanceEncounter] = []
    while queue and len(encounters) < max_encounters:
        _, _, entry = heapq.heappop(queue)
        position, point_a, distance = entry.head

        if position not in used:
            used.add(position)
            encounter = ChanceEncounter.between(point_a, entry.point)
            encounters.append(encounter)
            logger.debug(
                f"Accepted encounter #{len(encounters)}: distance={distance:.3f} "
                f"({encounter.distance_km:.3f} km, {encounter.distance_s:.0f} s)"
            )
            continue

        if entry.advance():
            heapq.heappush(queue, (entry.distance, next(counter), entry))

    return encounters


def match(
    record_a: SpaceTimeRecord,
    record_b: SpaceTimeRecord,
    max_encounters: int = DEFAULT_MAX_ENCOUNTERS,
    node_capacity: int = DEFAULT_NODE_CAPACITY,
) -> List[ChanceEncounter]:
    """
    Report the chance encounters between two records.

    Record A is indexed; record B supplies the queries. Matching cannot
    fail for valid records; an empty record on either side yields an empty
    list.

    Args:
        record_a: Record to index
        record_b: Record to query with
        max_encounters: Maximum number of pairs to report
        node_capacity: R-tree fan-out for the index over record_a

    Returns:
        Up to max_encounters encounters, closest first
    """
    index = SpaceTimeIndex.bulk_load(record_a.points, node_capacity=node_capacity)
    encounters = match_index(index, record_b, max_encounters=max_encounters)
    logger.info(
        f"Matched {len(record_a)} x {len(record_b)} points: "
        f"{len(encounters)} encounters"
    )
    return encounters
