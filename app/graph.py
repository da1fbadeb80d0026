"""Whole-graph view: people as nodes, deduplicated relationships as edges.

Output is in Cytoscape.js element format, each node and edge wrapped as
``{"data": {...}}``.
"""
import logging
from collections import Counter

from sqlalchemy.orm import Session

from . import store
from .models import Person, PersonRelationship

logger = logging.getLogger(__name__)


def relationship_counts(edges) -> Counter:
    """Degree per person id; an edge counts once for each endpoint."""
    counts = Counter()
    for e in edges:
        counts[e.source_person_id] += 1
        counts[e.related_person_id] += 1
    return counts


def node_data(p: Person, relationship_count: int) -> dict:
    return {
        "id": str(p.id),
        "name": p.display_name,
        "email": p.email,
        "phone": p.phone,
        "dateOfBirth": p.date_of_birth.isoformat() if p.date_of_birth else None,
        "gender": p.gender.description if p.gender else None,
        "genderCode": p.gender.code if p.gender else "X",
        "notes": p.notes,
        # isolated people still get a visible node
        "weight": max(1, relationship_count),
    }


def edge_data(e: PersonRelationship) -> dict:
    return {
        "id": f"e{e.source_person_id}-{e.related_person_id}-{e.relationship_id}",
        "source": str(e.source_person_id),
        "target": str(e.related_person_id),
        "label": e.relationship_type.description,
    }


def dedupe_edges(edges) -> list[PersonRelationship]:
    """Collapse A->B and B->A of the same type into one edge.

    The first edge seen for an unordered pair keeps its stored orientation.
    """
    seen = set()
    kept = []
    for e in edges:
        a, b = sorted((e.source_person_id, e.related_person_id))
        key = (a, b, e.relationship_id)
        if key in seen:
            continue
        seen.add(key)
        kept.append(e)
    return kept


def build_graph(db: Session) -> dict:
    rels = store.list_all_directed_edges(db)
    counts = relationship_counts(rels)

    people = store.list_all_persons(db)
    nodes = [{"data": node_data(p, counts.get(p.id, 0))} for p in people]
    edges = [{"data": edge_data(e)} for e in dedupe_edges(rels)]
    relationship_types = store.list_distinct_relationship_type_descriptions(db)

    logger.debug("Built graph: %d nodes, %d edges (%d directed)", len(nodes), len(edges), len(rels))
    return {"nodes": nodes, "edges": edges, "relationshipTypes": relationship_types}
