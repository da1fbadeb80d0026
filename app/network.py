"""Degrees-of-separation view around a focal person.

The traversal is a level-synchronous BFS over person_relationship rows. Each
level issues a single query for every edge touching the current frontier, and
edge direction is ignored for reachability.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from . import store
from .models import Person, Relationship

logger = logging.getLogger(__name__)

MIN_DEPTH = 1
MAX_DEPTH = 3


class FocalPersonNotFound(LookupError):
    def __init__(self, person_id):
        super().__init__(f"Person {person_id} not found")
        self.person_id = person_id


@dataclass(frozen=True)
class NetworkConnection:
    person: Person
    relationship: Relationship
    connected_through: Person
    depth: int


@dataclass(frozen=True)
class NetworkResult:
    focal_person: Person
    connections_by_depth: dict[int, list[NetworkConnection]] = field(default_factory=dict)
    max_depth: int = MIN_DEPTH
    total_connections: int = 0

    @property
    def depths(self) -> list[int]:
        return sorted(self.connections_by_depth)

    def connections(self, depth: int) -> list[NetworkConnection]:
        return self.connections_by_depth.get(depth, [])


def clamp_depth(depth) -> int:
    return max(MIN_DEPTH, min(int(depth), MAX_DEPTH))


def build_network(db: Session, focal_person_id: int, max_depth: int = MIN_DEPTH) -> NetworkResult:
    """Expand outward from ``focal_person_id`` for up to ``max_depth`` hops.

    ``max_depth`` is clamped to [1, 3]. Raises FocalPersonNotFound when the
    id does not resolve to a person.
    """
    max_depth = clamp_depth(max_depth)

    focal = store.find_person_by_id(db, focal_person_id)
    if focal is None:
        logger.info("Network requested for unknown person %s", focal_person_id)
        raise FocalPersonNotFound(focal_person_id)

    visited = {focal.id}
    frontier = {focal.id}
    by_depth: dict[int, list[NetworkConnection]] = {}
    total = 0

    for depth in range(1, max_depth + 1):
        edges = store.find_edges_touching_any_of(db, frontier)
        found = []
        next_frontier = set()

        for e in edges:
            if e.related_person_id not in visited:
                new, through = e.related_person, e.source_person
            elif e.source_person_id not in visited:
                new, through = e.source_person, e.related_person
            else:
                # Both ends already discovered. The view is the discovery
                # tree, so edges among known people are dropped.
                continue

            visited.add(new.id)
            next_frontier.add(new.id)
            found.append(NetworkConnection(new, e.relationship_type, through, depth))

        by_depth[depth] = found
        total += len(found)
        logger.debug("Depth %d: frontier=%d edges=%d discovered=%d",
                      depth, len(frontier), len(edges), len(found))

        frontier = next_frontier
        if not frontier:
            break

    return NetworkResult(focal, by_depth, max_depth, total)
