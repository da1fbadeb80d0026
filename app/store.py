"""Read-side queries the graph and network views are built from.

Every edge query eagerly joins both endpoint people (with their titles) and the
relationship type, so callers can read ``edge.source_person.display_name`` or
``edge.relationship_type.description`` without triggering further lazy loads.
"""
from collections.abc import Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from .models import Person, PersonRelationship, Relationship

ID_CHUNK_SIZE = 5000


def _edge_loading():
    return (
        joinedload(PersonRelationship.source_person).joinedload(Person.title),
        joinedload(PersonRelationship.related_person).joinedload(Person.title),
        joinedload(PersonRelationship.relationship_type),
    )


def list_all_persons(db: Session) -> list[Person]:
    return (
        db.query(Person)
        .options(joinedload(Person.title), joinedload(Person.gender))
        .order_by(Person.id.asc())
        .all()
    )


def find_person_by_id(db: Session, person_id: int) -> Person | None:
    return db.get(Person, person_id, options=[joinedload(Person.title), joinedload(Person.gender)])


def list_all_directed_edges(db: Session) -> list[PersonRelationship]:
    return (
        db.query(PersonRelationship)
        .options(*_edge_loading())
        .order_by(PersonRelationship.id.asc())
        .all()
    )


def find_edges_touching_any_of(db: Session, person_ids: Iterable[int]) -> list[PersonRelationship]:
    """All edges with either endpoint in ``person_ids``.

    One query per ``ID_CHUNK_SIZE`` ids; each id is bound twice, so chunks stay
    well inside SQLite's bound-parameter limit.
    """
    ids = sorted(set(person_ids))
    if not ids:
        return []
    by_id = {}
    for start in range(0, len(ids), ID_CHUNK_SIZE):
        chunk = ids[start:start + ID_CHUNK_SIZE]
        rows = (
            db.query(PersonRelationship)
            .options(*_edge_loading())
            .filter(or_(
                PersonRelationship.source_person_id.in_(chunk),
                PersonRelationship.related_person_id.in_(chunk),
            ))
            .order_by(PersonRelationship.id.asc())
            .all()
        )
        for e in rows:
            by_id.setdefault(e.id, e)
    return [by_id[k] for k in sorted(by_id)]


def list_distinct_relationship_type_descriptions(db: Session) -> list[str]:
    rows = (
        db.query(Relationship.description)
        .distinct()
        .order_by(Relationship.description.asc())
        .all()
    )
    return [r[0] for r in rows]
